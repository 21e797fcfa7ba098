"""Backup run: probe, rotate, transfer.

``run_backup()`` is the only entry point callers need. Every fatal condition
ends the run immediately and is reported in the returned ``RunOutcome``;
there are no retries.

Known risk, kept on purpose: the oldest generation is deleted during
rotation, before the new transfer is known to succeed. A run that fails
after rotation therefore still costs one generation of history, and leaves
an incomplete generation 0.

Usage:
    from host_backup.backup.engine import run_backup
    from host_backup.adapters import SimulateAdapter

    outcome = run_backup(host, ["/etc", "/var/www"], config, SimulateAdapter())
    for line in outcome.actions:
        print(line)
"""

import logging
import time
from collections.abc import Iterable, Sequence

from host_backup.adapters.base import ActionAdapter
from host_backup.adapters.execute import ExecuteAdapter
from host_backup.backup.models import (
    BackupError,
    ConfigurationError,
    Host,
    RunOutcome,
    Stage,
)
from host_backup.backup.paths import normalize_directory
from host_backup.backup.probe import probe_host
from host_backup.backup.ring import host_ring_path, rotate
from host_backup.backup.transfer import TransferError, transfer_directories
from host_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


class StampError(BackupError):
    """Raised when generation 0 cannot be stamped after every transfer succeeded."""

    stage: Stage = "transfer"


def run_backup(
    host: Host,
    directories: Sequence[str],
    config: BackupConfig,
    adapter: ActionAdapter | None = None,
    extra_excludes: Iterable[str] = (),
) -> RunOutcome:
    """Back up ``directories`` of ``host`` into a freshly rotated generation 0.

    Order of operations:

    1. Normalize every directory (bad input fails before the ring is touched).
    2. Probe the host; an unreachable host leaves the ring untouched.
    3. Rotate the ring.
    4. Transfer each directory in the given order, linked against
       generation 1 when it exists.
    5. Stamp generation 0 with the completion time.

    Args:
        host: Resolved source host.
        directories: Raw remote paths, e.g. ``["/etc", "/usr/local/mysql"]``.
        config: Immutable backup configuration.
        adapter: Execution mode, defaults to ``ExecuteAdapter()``.
        extra_excludes: Exclude patterns added to the configured ones.

    Returns:
        RunOutcome. On failure ``stage`` tells which step failed and, for a
        transfer, ``failed_directory`` which directory.
    """
    if adapter is None:
        adapter = ExecuteAdapter()

    started = time.monotonic()
    outcome = RunOutcome(success=False, hostname=host.hostname)

    def finish(**fields) -> RunOutcome:
        return outcome.model_copy(
            update={
                **fields,
                "actions": list(adapter.actions),
                "duration_sec": round(time.monotonic() - started, 2),
            }
        )

    try:
        if not directories:
            raise ConfigurationError("No directories to back up")
        entries = [normalize_directory(d) for d in directories]

        probe_host(host, config)

        ring_path = host_ring_path(config, host.hostname)
        rotation = rotate(ring_path, adapter, max_generations=config.generations)
        outcome = outcome.model_copy(
            update={
                "previous_depth": rotation.previous_depth,
                "depth": rotation.depth,
                "incremental": rotation.incremental,
            }
        )

        transferred = transfer_directories(
            entries,
            host,
            ring_path,
            config,
            adapter,
            incremental=rotation.incremental,
            extra_excludes=extra_excludes,
        )
        outcome = outcome.model_copy(update={"transferred": transferred})

        try:
            adapter.touch(ring_path / "0")
        except OSError as e:
            raise StampError(
                f"All directories transferred but {ring_path / '0'} "
                f"could not be stamped: {e}"
            ) from e

    except TransferError as e:
        logger.error("%s", e)
        return finish(
            stage=e.stage,
            failed_directory=e.directory,
            transferred=e.completed,
            error=str(e),
        )
    except BackupError as e:
        logger.error("%s", e)
        return finish(stage=e.stage, error=str(e))

    return finish(success=True)
