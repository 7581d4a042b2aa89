"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text"]


def atomic_write_text(path: Path, content: str, *, mode: int | None = None, encoding: str = "utf-8") -> None:
    """Write ``content`` to ``path`` through a sibling temp file.

    The temp file is renamed over the target, so readers see either the old
    or the new ledger, never a truncated one. When ``mode`` is None the
    permissions of an existing target are kept (0o644 for new files).
    """
    if mode is None:
        mode = path.stat().st_mode & 0o777 if path.exists() else 0o644

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
