"""Configuration management: host profiles, TOML loading, and config models.

Usage:
    >>> from host_backup.config import load_backup_config, BackupConfig, HostProfile
"""

from host_backup.config.loader import find_config, load_backup_config
from host_backup.config.models import BackupConfig, HostProfile

__all__ = ["find_config", "load_backup_config", "BackupConfig", "HostProfile"]
