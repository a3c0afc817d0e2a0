"""
Extension to MIME type lookup for served files.
"""

UNKNOWN_CONTENT_TYPE = "unknown"

# Checked in order, first matching suffix wins. Matching is case-sensitive.
CONTENT_TYPES = (
    (".html", "text/html"),
    (".css", "text/css"),
    (".js", "text/javascript"),
    (".gif", "image/gif"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".png", "image/png"),
)


def content_type(path: str) -> str:
    """Return the MIME type for path, or "unknown" if no suffix matches."""
    for suffix, mime_type in CONTENT_TYPES:
        if path.endswith(suffix):
            return mime_type
    return UNKNOWN_CONTENT_TYPE
