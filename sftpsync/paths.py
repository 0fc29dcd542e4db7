"""Path helpers for local and remote paths.

Remote SFTP paths are always ``/``-separated, whatever the local platform.
Local paths use the platform separator. A trailing separator is meaningful
for tree operations: it selects "contents only" instead of "the directory
itself", so it is checked on the caller's original path before stripping.
"""

import os
import posixpath

REMOTE_SEPARATOR = "/"

# Names returned by directory listings that never count as entries
DOT_ENTRIES = (".", "..")


def _separators(local: bool) -> tuple[str, ...]:
    if local and os.sep != REMOTE_SEPARATOR:
        return (REMOTE_SEPARATOR, os.sep)
    return (REMOTE_SEPARATOR,)


def has_trailing_separator(path: str, local: bool = False) -> bool:
    """Check whether a path ends with a directory separator.

    Args:
        path: Path to check
        local: Whether the path is a local path (accepts ``os.sep`` too)

    Returns:
        True if the path ends with a separator

    Examples:
        >>> has_trailing_separator("/srv/data/")
        True
        >>> has_trailing_separator("/srv/data")
        False
    """
    return path.endswith(_separators(local))


def strip_trailing_separator(path: str, local: bool = False) -> str:
    """Remove trailing separators from a path, keeping a bare root.

    Args:
        path: Path to normalize
        local: Whether the path is a local path

    Returns:
        Path without trailing separators

    Examples:
        >>> strip_trailing_separator("/srv/data/")
        '/srv/data'
        >>> strip_trailing_separator("/")
        '/'
    """
    stripped = path.rstrip("".join(_separators(local)))
    if not stripped and path:
        # Path consisted only of separators: it is the root
        return path[0]
    return stripped


def remote_join(base: str, name: str) -> str:
    """Join a remote directory and an entry name with ``/``.

    Examples:
        >>> remote_join("/srv/data", "a.txt")
        '/srv/data/a.txt'
        >>> remote_join("/", "srv")
        '/srv'
    """
    if not base:
        return name
    if base.endswith(REMOTE_SEPARATOR):
        return base + name
    return base + REMOTE_SEPARATOR + name


def remote_basename(path: str) -> str:
    """Return the last component of a remote path."""
    return posixpath.basename(strip_trailing_separator(path))


def local_basename(path: str) -> str:
    """Return the last component of a local path."""
    return os.path.basename(strip_trailing_separator(path, local=True))


def is_dot_entry(name: str) -> bool:
    """Check if a listing entry is ``.`` or ``..``."""
    return name in DOT_ENTRIES
