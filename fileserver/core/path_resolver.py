"""
Maps request targets to paths relative to the served root.
"""

ROOT_MARKER = "."


def resolve(raw_target: str) -> str:
    """Translate a request target into a root-relative filesystem path.

    The target is prefixed with "." and a single trailing "/" is removed,
    so "/sub/" and "/sub" resolve to the same "./sub". Nothing else is
    normalized here; containment inside the served root is enforced when
    the file is opened.
    """
    path = ROOT_MARKER + raw_target
    if path.endswith("/"):
        path = path[:-1]
    return path
