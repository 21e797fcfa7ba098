"""Per-directory incremental transfer with rsync.

Each requested directory is copied into generation 0 of the ring. When the
ring has a generation 1, rsync hard-links files that did not change against
it (``--link-dest``), so every generation is a full snapshot that only costs
the space of what changed.

Usage:
    from host_backup.backup.transfer import transfer_directories

    done = transfer_directories(entries, host, ring, config, adapter, incremental=True)
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from host_backup.adapters.base import ActionAdapter
from host_backup.backup.models import (
    BackupError,
    DirectoryEntry,
    Host,
    Stage,
    TransferOperation,
)
from host_backup.backup.probe import remote_spec, ssh_command
from host_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)

ROOT_DEVICE_EXCLUDE = "/dev/*"
CONTAINER_DEVICE_EXCLUDE = "/*/dev/*"


class TransferError(BackupError):
    """Raised when rsync fails for one directory; later ones are not attempted."""

    stage: Stage = "transfer"

    def __init__(
        self, message: str, directory: str, completed: list[str] | None = None
    ) -> None:
        super().__init__(message)
        self.directory = directory
        self.completed = list(completed or [])


def build_excludes(
    entry: DirectoryEntry,
    config: BackupConfig,
    extra_excludes: Iterable[str] = (),
) -> list[str]:
    """Baseline excludes, then caller excludes, then the device-path rule.

    The whole remote filesystem skips ``/dev/*``; a container such as
    ``/vservers/web1`` skips its own ``dev`` (``/*/dev/*`` relative to the
    transfer root).
    """
    excludes = list(dict.fromkeys([*config.excludes, *extra_excludes]))
    if entry.is_root:
        excludes.append(ROOT_DEVICE_EXCLUDE)
    elif entry.is_container(config.container_roots):
        excludes.append(CONTAINER_DEVICE_EXCLUDE)
    return excludes


def build_operation(
    entry: DirectoryEntry,
    host: Host,
    ring_path: Path,
    config: BackupConfig,
    incremental: bool,
    extra_excludes: Iterable[str] = (),
) -> TransferOperation:
    """Assemble the rsync invocation for one directory entry.

    rsync copies the leaf (no trailing slash on the source) into
    ``0/<parent>/``, so the link-dest reference is ``1/<parent>/`` and
    files are matched under ``1/<parent>/<leaf>``.
    """
    current = ring_path / "0"
    target_dir = current / entry.parent if entry.parent else current
    link_dest = None
    if incremental:
        previous = ring_path / "1"
        link_dest = previous / entry.parent if entry.parent else previous

    return TransferOperation(
        entry=entry,
        source=remote_spec(host, config, entry.remote_path),
        destination=target_dir / entry.leaf if entry.leaf else target_dir,
        target_dir=target_dir,
        link_dest=link_dest,
        ssh_command=ssh_command(host, config),
        bwlimit=config.bwlimit,
        includes=list(config.includes),
        excludes=build_excludes(entry, config, extra_excludes),
        options=list(config.rsync_options),
    )


def transfer_directories(
    entries: Sequence[DirectoryEntry],
    host: Host,
    ring_path: Path,
    config: BackupConfig,
    adapter: ActionAdapter,
    incremental: bool,
    extra_excludes: Iterable[str] = (),
) -> list[str]:
    """Transfer every entry in caller order, stopping at the first failure.

    Args:
        entries: Normalized directory entries, in the order to transfer.
        host: Source host.
        ring_path: ``<backup_root>/<hostname>``, already rotated.
        config: Backup configuration.
        adapter: Execution mode adapter.
        incremental: Link against generation 1.
        extra_excludes: Caller-supplied exclude patterns.

    Returns:
        Remote paths transferred, in order.

    Raises:
        TransferError: On the first non-zero rsync exit or local mkdir
            failure. Generation 0 then holds only the entries before it.
    """
    extra_excludes = list(extra_excludes)
    done: list[str] = []

    for entry in entries:
        op = build_operation(entry, host, ring_path, config, incremental, extra_excludes)
        directory = "/" + entry.full_path

        try:
            adapter.mkdir(op.target_dir)
        except OSError as e:
            raise TransferError(
                f"Cannot create local directory {op.target_dir}: {e}", directory, done
            ) from e

        logger.info(
            "Backing up %s%s",
            directory,
            f" (linked against {op.link_dest})" if op.link_dest else "",
        )
        try:
            rc = adapter.run_copy(op.to_argv())
        except OSError as e:
            raise TransferError(f"Cannot run rsync: {e}", directory, done) from e

        if rc != 0:
            raise TransferError(
                f"rsync ended with error code {rc} for directory '{directory}'",
                directory,
                done,
            )
        done.append(directory)

    return done
