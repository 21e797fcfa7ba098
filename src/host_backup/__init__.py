"""host-backup: rotating, hard-linked rsync backups of remote hosts.

Keeps a ring of numbered generations per host under a local backup root,
each one a complete snapshot of the selected remote directories, with
unchanged files hard-linked against the previous generation.

Usage:
    from host_backup import load_backup_config, resolve_host, run_backup
    from host_backup import ExecuteAdapter, SimulateAdapter

    config = load_backup_config()
    host = resolve_host("web17", config)
    outcome = run_backup(host, ["/etc", "/usr/local/mysql"], config)
"""

__version__ = "0.1.0"

# Adapters
from host_backup.adapters.base import ActionAdapter
from host_backup.adapters.execute import ExecuteAdapter
from host_backup.adapters.simulate import SimulateAdapter

# Config
from host_backup.config.loader import load_backup_config
from host_backup.config.models import BackupConfig, HostProfile

# Factory
from host_backup.factory import (
    HostResolutionError,
    ProfileNotFoundError,
    get_adapter,
    resolve_host,
)

# Engine
from host_backup.backup.engine import run_backup
from host_backup.backup.models import BackupError, Host, RunOutcome

__all__ = [
    # Adapters
    "ActionAdapter",
    "ExecuteAdapter",
    "SimulateAdapter",
    # Config
    "load_backup_config",
    "BackupConfig",
    "HostProfile",
    # Factory
    "get_adapter",
    "resolve_host",
    "HostResolutionError",
    "ProfileNotFoundError",
    # Engine
    "run_backup",
    "BackupError",
    "Host",
    "RunOutcome",
]
