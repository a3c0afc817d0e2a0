"""
Path safety checks for the file server.

This module keeps every served file inside the served root:
- Canonicalizes the resolved path (symlinks and ".." segments included)
- Rejects paths that land outside the served root
- Rejects null bytes and oversized path segments
"""

"""
Copyright 2026 Chris Bunting
File: security.py | Purpose: Served-root containment for the file server
@author Chris Bunting | @version 1.0.0

CHANGELOG:
2026-10-18 - Chris Bunting: Initial implementation
"""

import os
from typing import Optional

MAX_SEGMENT_LENGTH = 255


def validate_path(relative_path: str) -> Optional[str]:
    """Validate a root-relative path before touching the filesystem.

    Args:
        relative_path: Path produced by the path resolver, e.g. "./index.html"

    Returns:
        Error message if validation fails, None if the path is acceptable
    """
    if '\0' in relative_path:
        return 'Invalid path character'

    for part in relative_path.split('/'):
        # Check for extremely long path segments (potential DoS)
        if len(part) > MAX_SEGMENT_LENGTH:
            return 'Path segment too long'

    return None


def contain_path(relative_path: str, root: str) -> Optional[str]:
    """Join relative_path onto root and confirm it stays inside root.

    Args:
        relative_path: Root-relative path from the path resolver
        root: Served root directory

    Returns:
        The canonical absolute path, or None if it escapes the served root
        or fails validation.
    """
    if validate_path(relative_path) is not None:
        return None

    real_root = os.path.realpath(root)
    candidate = os.path.realpath(os.path.join(real_root, relative_path))

    if candidate == real_root:
        return candidate
    if not candidate.startswith(real_root.rstrip(os.sep) + os.sep):
        return None
    return candidate
