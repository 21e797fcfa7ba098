"""Generation rotation and transfer engine.

Probes the host, rotates the numbered generation ring under
``<backup_root>/<hostname>/`` and rsyncs every requested directory into the
new generation 0, hard-linked against generation 1.

Usage:
    from host_backup.backup import run_backup, Host, RunOutcome
    from host_backup.backup import current_depth, rotate, normalize_directory
"""

from host_backup.backup.engine import StampError, run_backup
from host_backup.backup.models import (
    BackupError,
    ConfigurationError,
    DirectoryEntry,
    Host,
    RotationResult,
    RunOutcome,
    TransferOperation,
)
from host_backup.backup.paths import normalize_directory
from host_backup.backup.probe import ProbeError, probe_host
from host_backup.backup.ring import (
    Generation,
    RotationError,
    current_depth,
    host_ring_path,
    list_generations,
    rotate,
)
from host_backup.backup.transfer import TransferError, build_operation, transfer_directories

__all__ = [
    "run_backup",
    "BackupError",
    "ConfigurationError",
    "ProbeError",
    "RotationError",
    "StampError",
    "TransferError",
    "DirectoryEntry",
    "Host",
    "RotationResult",
    "RunOutcome",
    "TransferOperation",
    "Generation",
    "normalize_directory",
    "probe_host",
    "current_depth",
    "host_ring_path",
    "list_generations",
    "rotate",
    "build_operation",
    "transfer_directories",
]
