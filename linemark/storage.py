"""Atomic file writes shared by document saving, export and config."""

import logging
import os
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


def atomic_write_text(filename, content: str) -> None:
    """Write ``content`` to ``filename`` so readers never see a partial file.

    The data goes to a temporary file in the target's directory, is synced
    to disk and then renamed over the target. On failure the temporary file
    is removed and the ``OSError`` propagates.
    """
    filename = os.fspath(filename)
    # Temp file in the target directory so the rename stays on one filesystem
    dir_name = os.path.dirname(filename) or '.'
    suffix = os.path.splitext(filename)[1]
    temp_filename = None
    try:
        with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8',
                                         dir=dir_name, suffix=suffix,
                                         delete=False) as temp_file:
            temp_filename = temp_file.name
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_filename, filename)
    except OSError:
        _remove_temp(temp_filename)
        raise


def _remove_temp(temp_filename: Optional[str]) -> None:
    if temp_filename and os.path.exists(temp_filename):
        try:
            os.remove(temp_filename)
        except OSError as e:
            logger.warning(f"Could not remove temporary file {temp_filename}: {e}")
