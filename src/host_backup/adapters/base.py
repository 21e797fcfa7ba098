"""Action adapter protocol definition.

Defines the ``ActionAdapter`` Protocol that every execution mode implements.
Each mutating step of a backup run (deleting, renaming or creating a
generation directory, stamping generation 0, running rsync) goes through
exactly one adapter call, so a whole run can either be performed or only
described.

Usage:
    from host_backup.adapters.base import ActionAdapter

    def prepare(adapter: ActionAdapter, ring: Path) -> None:
        adapter.delete(ring / "7")
        adapter.rename(ring / "6", ring / "7")
        adapter.mkdir(ring / "0")
"""

import shlex
from pathlib import Path
from typing import Protocol


class ActionAdapter(Protocol):
    """Execution mode interface used by the ring manager and transfer executor.

    ``actions`` holds one human-readable line per call, in call order, for
    both real and simulated execution.
    """

    actions: list[str]

    def delete(self, path: Path) -> None:
        """Remove a directory tree.

        Raises:
            OSError: If the tree cannot be removed.
        """
        ...

    def rename(self, src: Path, dst: Path) -> None:
        """Rename ``src`` to ``dst``; ``dst`` must not exist.

        Raises:
            OSError: If the rename fails.
        """
        ...

    def mkdir(self, path: Path) -> None:
        """Create a directory and any missing parents (no error if present).

        Raises:
            OSError: If the directory cannot be created.
        """
        ...

    def touch(self, path: Path) -> None:
        """Set the modification time of ``path`` to now."""
        ...

    def run_copy(self, argv: list[str]) -> int:
        """Run one rsync invocation and return its exit status."""
        ...


# ------------------------------------------------------------------
# Textual renderings shared by all adapters
# ------------------------------------------------------------------


def _dir(path: Path) -> str:
    return shlex.quote(f"{path}/")


def describe_delete(path: Path) -> str:
    return f"rm -rf {_dir(path)}"


def describe_rename(src: Path, dst: Path) -> str:
    return f"mv {_dir(src)} {_dir(dst)}"


def describe_mkdir(path: Path) -> str:
    return f"mkdir -p {_dir(path)}"


def describe_touch(path: Path) -> str:
    return f"touch {_dir(path)}"


def describe_copy(argv: list[str]) -> str:
    return shlex.join(argv)
