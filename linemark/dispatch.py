"""Render dispatch: single-line fast path, batches, and parallel fan-out."""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Optional, Sequence

from .blocks import classify_lines
from .constants import EngineConstants
from .model import LineStore
from .renderer import (
    LineRenderer,
    RenderRequest,
    RenderResult,
    RenderUnavailableError,
    render_literal,
)

logger = logging.getLogger(__name__)


def build_requests(store: LineStore, indices: Iterable[int],
                   editing_index: Optional[int] = None) -> list[RenderRequest]:
    """Build render requests for ``indices`` sharing one document snapshot.

    Each request carries the line's current generation and its block tag,
    computed once for the whole batch.
    """
    snapshot = store.snapshot_all()
    tags = classify_lines(snapshot)
    requests = []
    for index in indices:
        line = store.get_line(index)
        requests.append(RenderRequest(
            text=line.raw_text,
            line_index=index,
            all_lines=snapshot,
            is_editing=index == editing_index,
            generation=line.generation,
            block_context=tags[index],
        ))
    return requests


class RenderDispatcher:
    """Invoke a render capability for one line or a batch of lines.

    Batches smaller than ``parallel_threshold`` run sequentially; larger
    ones fan out to an executor. Workers share nothing but their own
    request, may finish in any order, and are joined by line index.
    """

    def __init__(
        self,
        renderer: LineRenderer,
        parallel_threshold: int = EngineConstants.PARALLEL_RENDER_THRESHOLD,
        max_workers: Optional[int] = None,
        executor_factory: Callable[..., Executor] = ThreadPoolExecutor,
    ):
        self.renderer = renderer
        self.parallel_threshold = parallel_threshold
        self.max_workers = max_workers
        self._executor_factory = executor_factory
        self._background: Optional[ThreadPoolExecutor] = None

    def render_one(self, request: RenderRequest) -> RenderResult:
        return self._render_safely(request)

    def render_batch(self, requests: Sequence[RenderRequest]) -> list[RenderResult]:
        """Render every request and return results in submission order."""
        if not requests:
            return []
        if len(requests) < self.parallel_threshold:
            return [self._render_safely(r) for r in requests]

        buffered: dict[int, RenderResult] = {}
        with self._executor_factory(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._render_safely, r): r for r in requests}
            for future in as_completed(futures):
                result = future.result()
                buffered[result.line_index] = result
        logger.debug(f"Rendered batch of {len(requests)} lines in parallel")
        return [buffered[r.line_index] for r in requests]

    def submit_batch(self, requests: Sequence[RenderRequest]) -> "Future[list[RenderResult]]":
        """Render a batch in the background.

        There is no cancellation: callers apply the results through
        ``LineStore.apply_render_result``, which drops any result whose line
        was edited after the request was built.
        """
        if self._background is None:
            self._background = ThreadPoolExecutor(max_workers=1, thread_name_prefix="linemark-render")
        return self._background.submit(self.render_batch, list(requests))

    def shutdown(self) -> None:
        if self._background is not None:
            self._background.shutdown(wait=True)
            self._background = None

    def _render_safely(self, request: RenderRequest) -> RenderResult:
        try:
            result = self.renderer.render_line(request)
        except RenderUnavailableError as e:
            logger.warning(f"Renderer unavailable for line {request.line_index}: {e}")
            return RenderResult(request.line_index, None, request.generation)
        except Exception as e:
            logger.warning(f"Rendering line {request.line_index} failed, showing literal text: {e}")
            return self._fallback(request)

        if (
            not isinstance(result, RenderResult)
            or result.line_index != request.line_index
            or not isinstance(result.html, str)
        ):
            logger.warning(f"Renderer returned malformed output for line {request.line_index}")
            return self._fallback(request)
        if result.generation != request.generation:
            result = RenderResult(result.line_index, result.html, request.generation)
        return result

    @staticmethod
    def _fallback(request: RenderRequest) -> RenderResult:
        return RenderResult(request.line_index, render_literal(request.text), request.generation)
