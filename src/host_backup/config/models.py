"""Pydantic models for backup configuration."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Defaults
# ============================================================================

# Paths that are never worth restoring: system, log, cache and ephemeral files.
DEFAULT_EXCLUDES: tuple[str, ...] = (
    "mlocate.db",
    ".bash_history",
    ".nano_history",
    ".mysql_history",
    ".sqlite_history",
    "var/lib/varnish/*",
    "var/spool/postfix/active/*",
    "var/spool/postfix/bounce/*",
    "var/spool/postfix/defer/*/*",
    "var/spool/postfix/deferred/*/*",
    "NOBACKUP/",
    "/boot/*",
    "vservers/templates/*",
    "/vservers/*/dev/*",
    "postfix/dev/*",
    "cache/zend/*",
    "*_log*",
    "*.log",
    "var/log/*",
    "var/lib/vnstat/*",
    "logs-routagenode/*",
    "logs/*",
    "sys/*",
    "proc/*",
    "*.rrd",
    "lost+found",
    "tmp/*",
    "var/lib/arpwatch/*",
    "mnt/*",
    "media/*",
    "lib/udev/devices/*",
    "var/cache/man/*",
    ".svn/",
    "*.iso",
    "var/cache/apt/*",
    "var/lib/apt/lists/*",
)

DEFAULT_INCLUDES: tuple[str, ...] = ("/home/dev",)


# ============================================================================
# Configuration Models
# ============================================================================


class HostProfile(BaseModel):
    """Per-host settings from the ``[hosts.<name>]`` tables."""

    model_config = ConfigDict(frozen=True)

    description: str = ""
    fqdn: str | None = None
    address: str | None = None  # literal IP, skips name resolution
    port: int | None = Field(default=None, ge=1, le=65535)
    directories: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class BackupConfig(BaseModel):
    """Complete backup configuration.

    Immutable for the duration of a run. Command line overrides are applied
    with ``model_copy(update=...)`` before the engine sees the value.
    """

    model_config = ConfigDict(frozen=True)

    # [backup]
    backup_root: Path = Path("/home/backups")
    generations: int | None = Field(default=None, ge=0)  # cap on the highest index
    bwlimit: int = Field(default=51200, ge=0)  # KiB/s, 0 disables the limit
    domain: str = "mycompany.com"

    # [ssh]
    remote_user: str = "root"
    key_file: Path = Path("/root/.ssh/id_rsa_backups")
    ssh_port: int = Field(default=22, ge=1, le=65535)
    connect_timeout: int = Field(default=4, ge=1)

    # [rsync]
    includes: tuple[str, ...] = DEFAULT_INCLUDES
    excludes: tuple[str, ...] = DEFAULT_EXCLUDES
    container_roots: tuple[str, ...] = ("vservers",)
    rsync_options: tuple[str, ...] = ()

    # [hosts.*]
    hosts: dict[str, HostProfile] = Field(default_factory=dict)

    @field_validator("backup_root", "key_file")
    @classmethod
    def _absolute_path(cls, value: Path) -> Path:
        """rsync resolves a relative ``--link-dest`` against the destination."""
        return value.expanduser().absolute()
