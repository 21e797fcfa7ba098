"""Directory path normalization.

Turns a requested remote path into the ``(parent, leaf)`` pair shared by the
local destination, the remote source and the link-dest reference. The three
must agree exactly or rsync finds nothing to hard-link against.
"""

from host_backup.backup.models import ConfigurationError, DirectoryEntry


def split_directory(raw: str) -> tuple[str, str]:
    """Split a path into ``(parent, leaf)``.

    Trailing and repeated slashes are ignored.

    Example:
        >>> split_directory("/usr/local/mysql/")
        ('usr/local', 'mysql')
        >>> split_directory("/etc")
        ('', 'etc')
        >>> split_directory("/")
        ('', '')

    Raises:
        ConfigurationError: For an empty path or ``.``/``..`` segments.
    """
    if not raw or not raw.strip():
        raise ConfigurationError("Empty directory path")

    segments = [s for s in raw.strip().split("/") if s]
    if any(s in (".", "..") for s in segments):
        raise ConfigurationError(f"Relative segments are not allowed: {raw!r}")

    if not segments:
        return "", ""
    return "/".join(segments[:-1]), segments[-1]


def normalize_directory(raw: str) -> DirectoryEntry:
    """Build the ``DirectoryEntry`` for a requested path.

    Relative input is read from the remote root, ``etc`` is ``/etc``.
    """
    parent, leaf = split_directory(raw)
    return DirectoryEntry(raw=raw, parent=parent, leaf=leaf)
