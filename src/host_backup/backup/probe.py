"""Reachability probe.

Before a ring is rotated, the host must answer a dry rsync listing of its
root directory. An unreachable host therefore never costs a generation.
The probe is read-only and runs in dry-run mode as well.
"""

import logging
import shlex
import subprocess

from host_backup.backup.models import BackupError, Host, Stage
from host_backup.config.models import BackupConfig

logger = logging.getLogger(__name__)


class ProbeError(BackupError):
    """Raised when the host cannot be reached through rsync over ssh."""

    stage: Stage = "probe"


def ssh_command(host: Host, config: BackupConfig) -> str:
    """Remote shell command handed to ``rsync -e``.

    Example:
        >>> ssh_command(host, config)
        'ssh -i /root/.ssh/id_rsa_backups -p 22 -o ConnectTimeout=4'
    """
    return shlex.join(
        [
            "ssh",
            "-i",
            str(config.key_file),
            "-p",
            str(host.port),
            "-o",
            f"ConnectTimeout={host.connect_timeout}",
        ]
    )


def remote_spec(host: Host, config: BackupConfig, path: str) -> str:
    """``user@address:path`` source argument."""
    return f"{config.remote_user}@{host.address}:{path}"


def probe_host(host: Host, config: BackupConfig) -> None:
    """Check that rsync can list the remote root.

    Args:
        host: Host to probe.
        config: Provides the remote user and key file.

    Raises:
        ProbeError: If rsync exits non-zero or cannot be started.
    """
    argv = [
        "rsync",
        "-q",
        "--dry-run",
        "-e",
        ssh_command(host, config),
        remote_spec(host, config, "/"),
    ]
    logger.debug("probe: %s", shlex.join(argv))

    try:
        result = subprocess.run(argv, capture_output=True, text=True)
    except OSError as e:
        raise ProbeError(f"Cannot run rsync: {e}") from e

    if result.returncode != 0:
        detail = (result.stderr or "").strip().splitlines()
        reason = f" ({detail[-1]})" if detail else ""
        raise ProbeError(
            f"Cannot connect to the distant server "
            f"({config.remote_user}@{host.address}:{host.port}) using rsync, "
            f"exit code {result.returncode}{reason}"
        )
    logger.info("Host %s (%s) is reachable", host.hostname, host.address)
