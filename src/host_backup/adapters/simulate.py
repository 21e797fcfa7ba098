"""Dry-run adapter: describes actions instead of performing them."""

from pathlib import Path

from host_backup.adapters.base import (
    describe_copy,
    describe_delete,
    describe_mkdir,
    describe_rename,
    describe_touch,
)


class SimulateAdapter:
    """Record what would run and report success for every step.

    Nothing on disk or on the network is touched, so the rotation and
    transfer logic proceed exactly as if each step had succeeded.

    Example:
        adapter = SimulateAdapter()
        adapter.rename(Path("/b/web17/0"), Path("/b/web17/1"))
        adapter.actions
        # ['mv /b/web17/0/ /b/web17/1/']
    """

    def __init__(self) -> None:
        self.actions: list[str] = []

    def delete(self, path: Path) -> None:
        self.actions.append(describe_delete(path))

    def rename(self, src: Path, dst: Path) -> None:
        self.actions.append(describe_rename(src, dst))

    def mkdir(self, path: Path) -> None:
        self.actions.append(describe_mkdir(path))

    def touch(self, path: Path) -> None:
        self.actions.append(describe_touch(path))

    def run_copy(self, argv: list[str]) -> int:
        self.actions.append(describe_copy(argv))
        return 0
