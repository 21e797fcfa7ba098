"""Adapter that performs every action on the local filesystem.

Filesystem errors propagate as ``OSError``; the ring manager turns them into
``RotationError``. rsync failures are reported through the return code of
``run_copy`` and never raise, except when the binary itself is missing.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path

from host_backup.adapters.base import (
    describe_copy,
    describe_delete,
    describe_mkdir,
    describe_rename,
    describe_touch,
)

logger = logging.getLogger(__name__)


class ExecuteAdapter:
    """Real execution: ``shutil``/``pathlib`` for directories, ``subprocess`` for rsync.

    Example:
        adapter = ExecuteAdapter()
        adapter.mkdir(Path("/home/backups/web17/0"))
        rc = adapter.run_copy(["rsync", "-a", "src/", "dst/"])
    """

    def __init__(self) -> None:
        self.actions: list[str] = []

    def _record(self, line: str) -> None:
        self.actions.append(line)
        logger.debug("exec: %s", line)

    def delete(self, path: Path) -> None:
        self._record(describe_delete(path))
        shutil.rmtree(path)

    def rename(self, src: Path, dst: Path) -> None:
        self._record(describe_rename(src, dst))
        if dst.exists():
            raise FileExistsError(f"Rename target already exists: {dst}")
        src.rename(dst)

    def mkdir(self, path: Path) -> None:
        self._record(describe_mkdir(path))
        path.mkdir(parents=True, exist_ok=True)

    def touch(self, path: Path) -> None:
        self._record(describe_touch(path))
        os.utime(path)

    def run_copy(self, argv: list[str]) -> int:
        self._record(describe_copy(argv))
        result = subprocess.run(argv)
        return result.returncode
