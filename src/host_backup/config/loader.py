"""TOML configuration loading and discovery."""

import os
import tomllib
from pathlib import Path

from host_backup.config.models import BackupConfig, HostProfile

CONFIG_ENV_VAR = "HOST_BACKUP_CONFIG"

DEFAULT_CONFIG_PATHS = (
    Path("host-backup.toml"),
    Path("/etc/host-backup.toml"),
)

# TOML table -> {toml key: BackupConfig field}
_SECTION_FIELDS: dict[str, dict[str, str]] = {
    "backup": {
        "root": "backup_root",
        "generations": "generations",
        "bwlimit": "bwlimit",
        "domain": "domain",
    },
    "ssh": {
        "user": "remote_user",
        "key_file": "key_file",
        "port": "ssh_port",
        "connect_timeout": "connect_timeout",
    },
    "rsync": {
        "includes": "includes",
        "excludes": "excludes",
        "container_roots": "container_roots",
        "options": "rsync_options",
    },
}


def find_config(config_path: Path | None = None) -> Path | None:
    """Pick the config file to load.

    Priority:
    1. Explicit path (must exist)
    2. ``HOST_BACKUP_CONFIG`` env var (must exist)
    3. ``./host-backup.toml``, then ``/etc/host-backup.toml``

    Returns:
        Path to the config file, or None when no file is found and the
        built-in defaults should be used.

    Raises:
        FileNotFoundError: If an explicitly requested file doesn't exist
    """
    if config_path is None and os.environ.get(CONFIG_ENV_VAR):
        config_path = Path(os.environ[CONFIG_ENV_VAR])

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Backup config not found: {config_path}")
        return config_path

    for candidate in DEFAULT_CONFIG_PATHS:
        if candidate.exists():
            return candidate
    return None


def load_backup_config(config_path: Path | None = None) -> BackupConfig:
    """Load backup configuration from a TOML file.

    Args:
        config_path: Path to host-backup.toml (default: see ``find_config``)

    Returns:
        BackupConfig with all host profiles

    Raises:
        FileNotFoundError: If an explicitly requested file doesn't exist
        ValueError: If the TOML syntax or a value is invalid
    """
    path = find_config(config_path)
    if path is None:
        return BackupConfig()

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

    values: dict = {}
    for section, fields in _SECTION_FIELDS.items():
        section_data = data.get(section, {})
        unknown = set(section_data) - set(fields)
        if unknown:
            raise ValueError(
                f"Unknown key(s) in [{section}] of {path}: {', '.join(sorted(unknown))}"
            )
        for key, field_name in fields.items():
            if key in section_data:
                values[field_name] = section_data[key]

    # Parse host profiles
    hosts = {}
    for name, profile_data in data.get("hosts", {}).items():
        hosts[name] = HostProfile(**profile_data)
    values["hosts"] = hosts

    return BackupConfig(**values)
