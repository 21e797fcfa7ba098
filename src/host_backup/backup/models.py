"""Value types for a backup run: hosts, directory entries, transfers, outcomes.

Usage:
    from host_backup.backup.models import Host, DirectoryEntry, RunOutcome

    host = Host(hostname="web17", fqdn="web17.example.net", address="10.0.0.17")
    entry = DirectoryEntry(raw="/usr/local/mysql", parent="usr/local", leaf="mysql")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Stage = Literal["configuration", "probe", "rotation", "transfer"]


# ============================================================================
# Errors
# ============================================================================


class BackupError(Exception):
    """Base class for every fatal condition of a backup run."""

    stage: Stage = "configuration"


class ConfigurationError(BackupError):
    """Raised for malformed input, before any ring access."""

    stage: Stage = "configuration"


# ============================================================================
# Host
# ============================================================================


class Host(BaseModel):
    """A source host, immutable for the duration of a run."""

    model_config = ConfigDict(frozen=True)

    hostname: str  # short name, also the ring directory name
    fqdn: str
    address: str  # resolved IP
    port: int = Field(default=22, ge=1, le=65535)
    connect_timeout: int = Field(default=4, ge=1)


# ============================================================================
# Directory entries and transfers
# ============================================================================


@dataclass(frozen=True)
class DirectoryEntry:
    """A requested remote directory split into ``(parent, leaf)``.

    ``parent`` is created locally before the transfer; ``leaf`` is the
    tree rsync copies into it. Both are relative, without surrounding
    slashes. The remote root is ``parent == leaf == ""``.
    """

    raw: str
    parent: str
    leaf: str

    @property
    def full_path(self) -> str:
        """``parent/leaf`` without a leading slash (``""`` for the root)."""
        if self.parent:
            return f"{self.parent}/{self.leaf}"
        return self.leaf

    @property
    def remote_path(self) -> str:
        """Absolute remote path with spaces replaced by rsync's ``?`` wildcard.

        rsync splits non-interactive remote paths on whitespace, ``?``
        still matches the single space character.
        """
        return "/" + self.full_path.replace(" ", "?")

    @property
    def is_root(self) -> bool:
        return not self.parent and not self.leaf

    def is_container(self, container_roots: tuple[str, ...]) -> bool:
        """True for a direct child of a container root, e.g. ``/vservers/web1``."""
        return bool(self.leaf) and self.parent in container_roots


@dataclass
class TransferOperation:
    """One rsync invocation for one directory entry.

    Attributes:
        entry: The directory entry being transferred.
        source: ``user@address:/remote/path`` argument.
        destination: Local path the entry lands in (``0/<parent>/<leaf>``).
        target_dir: Local rsync destination argument (``0/<parent>``).
        link_dest: Previous generation's ``1/<parent>`` when incremental.
        includes: ``--include`` patterns, emitted before the excludes.
        excludes: ``--exclude`` patterns.
        bwlimit: KiB/s, 0 disables the limit.
        ssh_command: Value passed to ``rsync -e``.
        options: Extra rsync flags (``-z``, ``--inplace``...).
    """

    entry: DirectoryEntry
    source: str
    destination: Path
    target_dir: Path
    link_dest: Path | None
    ssh_command: str
    bwlimit: int = 0
    includes: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)

    def to_argv(self) -> list[str]:
        """Render the rsync command line.

        Example:
            op.to_argv()
            # ['rsync', '-a', '--delete', '--numeric-ids', '--exclude=*.log',
            #  '--link-dest=/home/backups/web17/1/usr/local/', '--bwlimit=51200',
            #  '-e', 'ssh -i /root/.ssh/id_rsa_backups -p 22 -o ConnectTimeout=4',
            #  'root@10.0.0.17:/usr/local/mysql', '/home/backups/web17/0/usr/local/']
        """
        argv = ["rsync", "-a", "--delete", "--numeric-ids", *self.options]
        argv += [f"--include={p}" for p in self.includes]
        argv += [f"--exclude={p}" for p in self.excludes]
        if self.link_dest is not None:
            argv.append(f"--link-dest={self.link_dest}/")
        if self.bwlimit:
            argv.append(f"--bwlimit={self.bwlimit}")
        argv += ["-e", self.ssh_command, self.source, f"{self.target_dir}/"]
        return argv


# ============================================================================
# Rotation and run results
# ============================================================================


@dataclass
class RotationResult:
    """What a ring rotation did.

    Attributes:
        previous_depth: Highest generation index before rotating, None if
            the ring did not exist.
        depth: Highest generation index after rotating.
        incremental: True when a generation 1 exists to link against.
        deleted: Generation indices removed, oldest first.
    """

    previous_depth: int | None
    depth: int
    incremental: bool
    deleted: list[int] = field(default_factory=list)


class RunOutcome(BaseModel):
    """Result of ``run_backup()``."""

    success: bool
    hostname: str
    stage: Stage | None = None  # set on failure
    failed_directory: str | None = None
    error: str | None = None
    transferred: list[str] = Field(default_factory=list)
    previous_depth: int | None = None
    depth: int | None = None
    incremental: bool = False
    actions: list[str] = Field(default_factory=list)
    duration_sec: float = 0.0

    @property
    def exit_code(self) -> int:
        """Process exit status: 0 on success, 1 on any failure."""
        return 0 if self.success else 1

    def format_report(self) -> str:
        """Format the outcome as a one-line human-readable report."""
        if self.success:
            kind = "incremental" if self.incremental else "full"
            return (
                f"Backup of {self.hostname} done ({kind}, "
                f"{len(self.transferred)} directories, took {self.duration_sec:.0f} secs)"
            )
        if self.stage == "transfer" and self.failed_directory is not None:
            return (
                f"Backup of {self.hostname} failed during transfer of "
                f"'{self.failed_directory}': {self.error}"
            )
        return f"Backup of {self.hostname} failed during {self.stage}: {self.error}"
