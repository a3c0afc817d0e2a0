"""
Resolved resources: the outcome of looking up a request path on disk.
"""

from dataclasses import dataclass
from typing import BinaryIO, Union

from fileserver.features.security import contain_path


@dataclass(frozen=True)
class Found:
    """An existing file, opened for binary reading."""
    path: str
    byte_source: BinaryIO


@dataclass(frozen=True)
class NotFound:
    """No readable file exists for the requested path."""
    path: str


ResolvedResource = Union[Found, NotFound]


def open_resource(relative_path: str, root: str) -> ResolvedResource:
    """Open relative_path under root.

    Missing files, directories, unreadable files and paths that escape the
    served root all yield NotFound.
    """
    full_path = contain_path(relative_path, root)
    if full_path is None:
        return NotFound(relative_path)

    try:
        byte_source = open(full_path, 'rb')
    except OSError:
        return NotFound(relative_path)

    return Found(relative_path, byte_source)
