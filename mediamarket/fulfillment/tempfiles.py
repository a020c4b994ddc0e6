"""
Temp artifacts: unique naming under tmp_dir and a guard that deletes every
registered path on exit unless ownership was released to the caller.
"""
from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from mediamarket.fulfillment.config import get_tmp_dir

logger = logging.getLogger(__name__)


def ensure_tmp_dir(tmp_dir: str | None = None) -> str:
    path = tmp_dir or get_tmp_dir()
    os.makedirs(path, exist_ok=True)
    return path


def build_tmp_path(base: str, ext: str, tmp_dir: str | None = None) -> str:
    """
    Reserve {tmp_dir}/{base}-{timestamp_ms}.{ext}. The file is created empty
    (O_EXCL) so two calls in the same millisecond never share a name.
    """
    directory = ensure_tmp_dir(tmp_dir)
    ts = time.time_ns() // 1_000_000
    while True:
        path = os.path.join(directory, f"{base}-{ts}.{ext}")
        try:
            fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            ts += 1
            continue
        os.close(fd)
        return path


def safe_remove(path: str | None) -> bool:
    """Best-effort delete. Returns True if a file was removed."""
    if not path:
        return False
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("tmp_remove_failed", extra={"path": path}, exc_info=True)
        return False


class TempArtifacts:
    """
    with TempArtifacts() as tmp:
        path = tmp.register(build_tmp_path(...))
        ...
        tmp.release(path)   # caller now owns the file
    Anything still registered at exit is deleted, on success and on error alike.
    """

    def __init__(self) -> None:
        self._paths: list[str] = []

    def register(self, path: str) -> str:
        if path not in self._paths:
            self._paths.append(path)
        return path

    def release(self, path: str) -> str:
        self._paths.remove(path)
        return path

    def discard(self, path: str) -> None:
        if path in self._paths:
            self._paths.remove(path)
        safe_remove(path)

    @property
    def paths(self) -> list[str]:
        return list(self._paths)

    def cleanup(self) -> None:
        while self._paths:
            safe_remove(self._paths.pop())

    def __enter__(self) -> "TempArtifacts":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


def _stale_files(tmp_dir: str, older_than_hours: int) -> list[str]:
    if not os.path.isdir(tmp_dir):
        return []
    threshold = (datetime.now(timezone.utc) - timedelta(hours=older_than_hours)).timestamp()
    stale = []
    for name in os.listdir(tmp_dir):
        path = os.path.join(tmp_dir, name)
        if os.path.isfile(path) and os.path.getmtime(path) <= threshold:
            stale.append(path)
    return stale


def preview_stale_artifacts(older_than_hours: int, tmp_dir: str | None = None) -> dict[str, Any]:
    """Dry-run: count temp files that sweep_stale_artifacts would delete."""
    files = _stale_files(tmp_dir or get_tmp_dir(), older_than_hours)
    return {"files_count": len(files), "older_than_hours": older_than_hours}


def sweep_stale_artifacts(older_than_hours: int, tmp_dir: str | None = None) -> dict[str, Any]:
    """Delete deliverables the HTTP layer never cleaned up."""
    removed = 0
    for path in _stale_files(tmp_dir or get_tmp_dir(), older_than_hours):
        if safe_remove(path):
            removed += 1
    logger.info("tmp_sweep_done", extra={"count": removed})
    return {"removed_files": removed, "older_than_hours": older_than_hours}
