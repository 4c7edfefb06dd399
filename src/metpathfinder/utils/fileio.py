"""
Atomic file-write utilities.

A failed or interrupted run must never leave a partial result table or
handoff file behind. Every writer here writes to a temporary file in
the destination directory and moves it into place with ``os.replace()``
(atomic rename on POSIX): readers see the old file or the new file,
never a half-written one.
"""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager
from typing import IO, Any, Iterator

import pandas as pd

__all__ = ['atomic_write_json', 'atomic_write_frame']


@contextmanager
def _atomic_target(path: str | os.PathLike) -> Iterator[IO[str]]:
    """Yield a temp file handle that replaces *path* on clean exit."""
    path = os.fspath(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False, newline=""
        ) as tmp:
            tmp_path = tmp.name
            yield tmp
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename."""
    with _atomic_target(path) as tmp:
        json.dump(data, tmp, indent=indent)


def atomic_write_frame(path: str | os.PathLike, frame: pd.DataFrame, **to_csv_kwargs: Any) -> None:
    """Write *frame* as CSV atomically; keyword arguments go to ``DataFrame.to_csv``."""
    with _atomic_target(path) as tmp:
        frame.to_csv(tmp, **to_csv_kwargs)
