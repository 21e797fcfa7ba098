"""Host resolution and adapter selection.

Turns a host name from the command line into a resolved ``Host`` using the
configuration's host profiles and domain, and picks the execution mode
adapter for the run. Resolution failures are fatal before the engine runs.
"""

import ipaddress
import logging
import socket

from host_backup.adapters.base import ActionAdapter
from host_backup.adapters.execute import ExecuteAdapter
from host_backup.adapters.simulate import SimulateAdapter
from host_backup.backup.models import Host
from host_backup.config.models import BackupConfig, HostProfile

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================


class ProfileNotFoundError(Exception):
    """Raised when a host has no profile in the configuration."""

    pass


class HostResolutionError(Exception):
    """Raised when the host name is invalid or does not resolve."""

    pass


# ============================================================================
# Host Resolution
# ============================================================================


def get_host_profile(config: BackupConfig, hostname: str) -> HostProfile:
    """Get a host's profile.

    Raises:
        ProfileNotFoundError: If the host is not configured
    """
    if hostname not in config.hosts:
        available = ", ".join(config.hosts.keys()) or "none"
        raise ProfileNotFoundError(
            f"Host '{hostname}' not found in configuration.\n"
            f"Available hosts: {available}"
        )
    return config.hosts[hostname]


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def resolve_fqdn(
    hostname: str,
    config: BackupConfig,
    fullhost: str | None = None,
) -> str:
    """Work out the name (or literal address) to resolve for a host.

    Priority:
    1. ``fullhost`` given: an IP or dotted name is used as is, a bare label
       gets ``.domain`` appended, an empty string means "the host name is
       already fully qualified".
    2. Host profile ``address``, then ``fqdn``.
    3. ``<hostname>.<domain>``.
    """
    if fullhost is not None:
        if fullhost == "":
            return hostname
        if _is_ip(fullhost) or "." in fullhost:
            return fullhost
        return f"{fullhost}.{config.domain}"

    profile = config.hosts.get(hostname)
    if profile is not None:
        if profile.address:
            return profile.address
        if profile.fqdn:
            return profile.fqdn

    return f"{hostname}.{config.domain}"


def lookup_address(fqdn: str) -> str:
    """Resolve a name to one IP address (the last answer, like ``dig +short | tail -1``).

    Raises:
        HostResolutionError: If the name does not resolve
    """
    if _is_ip(fqdn):
        return fqdn
    try:
        infos = socket.getaddrinfo(fqdn, None, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise HostResolutionError(
            f"The DNS {fqdn} does not seem to exist or is not correctly configured: {e}"
        ) from e
    addresses = [info[4][0] for info in infos]
    if not addresses:
        raise HostResolutionError(f"The DNS {fqdn} has no address")
    return addresses[-1]


def resolve_host(
    hostname: str,
    config: BackupConfig,
    fullhost: str | None = None,
    port: int | None = None,
) -> Host:
    """Build the immutable ``Host`` for a run.

    Args:
        hostname: Short name, also the ring directory name.
        config: Backup configuration (domain, profiles, ssh defaults).
        fullhost: ``--fullhost`` value, see ``resolve_fqdn()``.
        port: ssh port override.

    Returns:
        Resolved Host

    Raises:
        HostResolutionError: If the host name is invalid or does not resolve

    Example:
        >>> host = resolve_host("web17", config)
        >>> host.fqdn
        'web17.mycompany.com'
    """
    if not hostname or hostname.startswith("-") or "/" in hostname:
        raise HostResolutionError(f"Invalid server name: {hostname!r}")

    fqdn = resolve_fqdn(hostname, config, fullhost)
    address = lookup_address(fqdn)
    logger.debug("Resolved %s to %s", fqdn, address)

    profile = config.hosts.get(hostname)
    if port is None:
        port = profile.port if profile and profile.port else config.ssh_port

    return Host(
        hostname=hostname,
        fqdn=fqdn,
        address=address,
        port=port,
        connect_timeout=config.connect_timeout,
    )


# ============================================================================
# Adapter Factory
# ============================================================================


def get_adapter(dry_run: bool = False) -> ActionAdapter:
    """Get the execution mode adapter for a run.

    Returns:
        SimulateAdapter in dry-run mode, ExecuteAdapter otherwise
    """
    if dry_run:
        return SimulateAdapter()
    return ExecuteAdapter()
