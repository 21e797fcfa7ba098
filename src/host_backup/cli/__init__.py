"""CLI module for rotating host backups.

Provides commands to back up a host into its generation ring, list the
configured hosts, and show the generations kept for a host.

Usage:
    host-backup run web17 /etc /usr/local/mysql /home/apache
    host-backup run web17 --exclude 'lockfile_*' --port 2222 /etc
    host-backup run web17 --dry-run /etc
    host-backup run db3 --fullhost=10.0.0.3 /var/lib/mysql
    host-backup hosts
    host-backup status web17

Commands:
    run     - Rotate the host's ring and back up the given directories
    hosts   - List configured host profiles
    status  - Show the generations kept for a host
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from host_backup.backup.engine import run_backup
from host_backup.backup.ring import host_ring_path, list_generations
from host_backup.config.loader import load_backup_config
from host_backup.config.models import BackupConfig
from host_backup.factory import (
    HostResolutionError,
    get_adapter,
    resolve_host,
)

console = Console()
err_console = Console(stderr=True)

# --flag -> rsync option passed through unchanged
RSYNC_PASSTHROUGH = {
    "progress": "--progress",
    "rsync_verbose": "--verbose",
    "xattrs": "-X",
    "compress": "-z",
    "sparse": "-S",
    "inplace": "--inplace",
}


# ============================================================================
# Helpers
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%d.%m.%y %X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(args: argparse.Namespace) -> BackupConfig | None:
    """Load the configuration, printing the error and returning None on failure."""
    config_path = Path(args.config) if args.config else None
    try:
        return load_backup_config(config_path)
    except FileNotFoundError as e:
        err_console.print(f"[bold red]x[/bold red] {e}")
        return None
    except ValueError as e:
        err_console.print(f"[bold red]x[/bold red] Invalid configuration: {escape(str(e))}")
        return None


def _apply_overrides(config: BackupConfig, args: argparse.Namespace) -> BackupConfig:
    """Fold command line options into a new, validated config value.

    Raises:
        ValidationError: If an override is out of range (e.g. a negative
            bandwidth limit).
    """
    update: dict = {}
    if args.bwlimit is not None:
        update["bwlimit"] = args.bwlimit

    options = list(config.rsync_options)
    for dest, flag in RSYNC_PASSTHROUGH.items():
        if getattr(args, dest, False) and flag not in options:
            options.append(flag)
    update["rsync_options"] = tuple(options)

    return BackupConfig.model_validate({**config.model_dump(), **update})


# ============================================================================
# Command implementations
# ============================================================================


def cmd_run(args: argparse.Namespace) -> int:
    """Back up a host.

    Args:
        args: Parsed arguments with hostname, directories and run options.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return 1
    try:
        config = _apply_overrides(config, args)
    except ValidationError as e:
        err_console.print(f"[bold red]x[/bold red] Invalid option: {escape(str(e))}")
        return 1

    profile = config.hosts.get(args.hostname)
    directories = args.directories or (profile.directories if profile else [])
    if not directories:
        err_console.print(
            f"[bold red]x[/bold red] No directories given for {args.hostname} "
            f"and none configured in its profile."
        )
        return 1

    try:
        host = resolve_host(
            args.hostname, config, fullhost=args.fullhost, port=args.port
        )
    except HostResolutionError as e:
        err_console.print(f"[bold red]x[/bold red] {e}")
        return 1
    except ValidationError as e:
        err_console.print(f"[bold red]x[/bold red] Invalid host settings: {escape(str(e))}")
        return 1

    extra_excludes = list(profile.exclude) if profile else []
    extra_excludes += args.exclude or []

    # Backups may hold any file of the host, keep them private.
    os.umask(0o077)

    adapter = get_adapter(dry_run=args.dry_run)
    outcome = run_backup(
        host,
        directories,
        config,
        adapter=adapter,
        extra_excludes=extra_excludes,
    )

    if args.dry_run:
        for line in outcome.actions:
            console.print(f"[{line}]", markup=False, highlight=False)

    if outcome.success:
        console.print(f"[bold green]v[/bold green] {outcome.format_report()}")
        return 0

    err_console.print(f"[bold red]x[/bold red] {outcome.format_report()}")
    return outcome.exit_code


def cmd_hosts(args: argparse.Namespace) -> int:
    """List configured host profiles.

    Returns:
        0 on success, 1 if the configuration cannot be loaded.
    """
    config = _load_config(args)
    if config is None:
        return 1

    if not config.hosts:
        console.print("[yellow]No hosts configured.[/yellow]")
        return 0

    table = Table(title="Hosts", show_header=True, header_style="bold")
    table.add_column("Host", style="cyan")
    table.add_column("Address")
    table.add_column("Port")
    table.add_column("Directories")
    table.add_column("Description", style="dim")

    for name, profile in config.hosts.items():
        table.add_row(
            name,
            profile.address or profile.fqdn or f"{name}.{config.domain}",
            str(profile.port or config.ssh_port),
            ", ".join(profile.directories),
            profile.description,
        )

    console.print(table)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show the generation ring of a host.

    Returns:
        0 if the ring exists, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return 1

    ring_path = host_ring_path(config, args.hostname)
    generations = list_generations(ring_path)
    if not generations:
        console.print(f"[yellow]No backups for {args.hostname} in {ring_path}[/yellow]")
        return 1

    table = Table(
        title=f"Generations of {args.hostname}", show_header=True, header_style="bold"
    )
    table.add_column("Generation", justify="right", style="cyan")
    table.add_column("Completed")
    table.add_column("Path", style="dim")

    for gen in generations:
        path = gen.path(ring_path)
        mtime = datetime.fromtimestamp(path.stat().st_mtime)
        table.add_row(gen.name, mtime.strftime("%d.%m.%y %H:%M:%S"), str(path))

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="host-backup",
        description="Rotating, hard-linked rsync backups of remote hosts",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to host-backup.toml (default: $HOST_BACKUP_CONFIG, "
        "./host-backup.toml, /etc/host-backup.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run command
    p_run = subparsers.add_parser(
        "run",
        help="Rotate the host's ring and back up directories",
    )
    p_run.add_argument("hostname", help="Server name, also the backup directory name")
    p_run.add_argument(
        "directories",
        nargs="*",
        help="Remote directories (default: the host profile's list)",
    )
    p_run.add_argument(
        "--exclude",
        action="append",
        metavar="PATTERN",
        help="Extra rsync exclude pattern (can be used multiple times)",
    )
    p_run.add_argument("--port", type=int, default=None, help="ssh port")
    p_run.add_argument(
        "--bwlimit", type=int, default=None, help="Bandwidth limit in KiB/s"
    )
    p_run.add_argument(
        "--fullhost",
        nargs="?",
        const="",
        default=None,
        metavar="NAME|IP",
        help="Connect to NAME (bare names get the configured domain) or IP; "
        "without a value the server name is used as the FQDN",
    )
    p_run.add_argument(
        "--dry-run",
        "--test",
        dest="dry_run",
        action="store_true",
        help="Print the commands that would run without executing them",
    )
    p_run.add_argument("--progress", action="store_true", help="rsync --progress")
    p_run.add_argument(
        "--rsync-verbose", action="store_true", help="rsync --verbose"
    )
    p_run.add_argument("--xattrs", action="store_true", help="rsync -X")
    p_run.add_argument("--compress", action="store_true", help="rsync -z")
    p_run.add_argument("--sparse", action="store_true", help="rsync -S")
    p_run.add_argument("--inplace", action="store_true", help="rsync --inplace")
    p_run.set_defaults(func=cmd_run)

    # hosts command
    p_hosts = subparsers.add_parser("hosts", help="List configured hosts")
    p_hosts.set_defaults(func=cmd_hosts)

    # status command
    p_status = subparsers.add_parser("status", help="Show a host's generations")
    p_status.add_argument("hostname", help="Server name")
    p_status.set_defaults(func=cmd_status)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse the command line, accepting directories after ``run`` options.

    Before Python 3.13 argparse fills ``directories`` when it first meets
    the positionals, so in ``run web17 --port 2222 /etc`` the trailing
    ``/etc`` comes back as an unrecognized argument.
    """
    parser = build_parser()
    args, extras = parser.parse_known_args(argv)
    if extras:
        if args.command != "run" or any(arg.startswith("-") for arg in extras):
            parser.error(f"unrecognized arguments: {' '.join(extras)}")
        args.directories = list(args.directories) + extras
    return args


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = parse_args(argv)
    _setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
