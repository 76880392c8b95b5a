"""Linemark CLI entry point.

Allows running via `python -m linemark` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from .version import get_version_string

USAGE = "usage: linemark [--version | --render FILE | --export FILE [OUTPUT] | FILE]"


def _open_editor(filename: str, renderer=None):
    from .config import load_config
    from .editor import LineEditor

    editor = LineEditor(renderer=renderer, config=load_config())
    if not editor.load_file(filename):
        print(editor.status_message, file=sys.stderr)
        editor.shutdown()
        return None
    return editor


def render_file(filename: str, renderer=None) -> int:
    """Print the preview HTML of every line of ``filename``, one per line.

    Lines the renderer could not produce are printed as escaped literal text.
    """
    from .renderer import render_literal

    editor = _open_editor(filename, renderer)
    if editor is None:
        return 1
    try:
        for line in editor.store:
            html = line.fresh_html
            print(html if html is not None else render_literal(line.raw_text))
    finally:
        editor.shutdown()
    return 0


def export_file(filename: str, output: Optional[str] = None, renderer=None) -> int:
    """Export ``filename`` as a standalone HTML page to ``output`` or stdout."""
    editor = _open_editor(filename, renderer)
    if editor is None:
        return 1
    try:
        if output is None:
            sys.stdout.write(editor.export_html())
            return 0
        if not editor.export_file(output):
            print(editor.status_message, file=sys.stderr)
            return 1
    finally:
        editor.shutdown()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    # Very small arg parsing: version, render or export to stdout, or optional filename
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.WARNING)
    if args and args[0] in ("--version", "-V"):
        print(get_version_string())
        return 0
    if args and args[0] == "--render":
        if len(args) != 2:
            print(USAGE, file=sys.stderr)
            return 2
        return render_file(args[1])
    if args and args[0] == "--export":
        if len(args) not in (2, 3):
            print(USAGE, file=sys.stderr)
            return 2
        return export_file(*args[1:])
    if len(args) > 1 or (args and args[0].startswith("-")):
        print(USAGE, file=sys.stderr)
        return 2

    # Lazy import to avoid importing UI deps for --version
    from .textual_app import LinemarkApp
    LinemarkApp(filename=args[0] if args else None).run()
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
