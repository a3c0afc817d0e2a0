"""
Response construction and serialization.

A response is a status line, a single Content-type header, a blank line and
the body. Found files are streamed from their byte source; missing files get
a fixed 404 page.
"""

from dataclasses import dataclass
from typing import BinaryIO, Union

from .content_types import content_type
from .resources import Found, ResolvedResource

CRLF = "\r\n"
ENCODING = "latin-1"
BLOCK_SIZE = 8192

STATUS_OK = "HTTP/1.1 200 OK"
STATUS_NOT_FOUND = "HTTP/1.1 404 Not Found"
NOT_FOUND_CONTENT_TYPE = "text/html"

NOT_FOUND_BODY = (
    "<!DOCTYPE html>\n"
    "<HTML>\n"
    "<HEAD>\n"
    "<TITLE>404 Not Found</TITLE>\n"
    "</HEAD>\n"
    "<BODY>The requested file could not be found on the server. "
    "Click <a href=\"./index.html\">here</a> to go to home page</BODY>\n"
    "</HTML>"
)


@dataclass(frozen=True)
class ResponseEnvelope:
    status_line: str
    content_type: str
    body: Union[BinaryIO, str]

    @property
    def content_type_line(self) -> str:
        return f"Content-type: {self.content_type}"


def build_envelope(resource: ResolvedResource) -> ResponseEnvelope:
    """Build the response for a resolved resource."""
    if isinstance(resource, Found):
        return ResponseEnvelope(
            status_line=STATUS_OK,
            content_type=content_type(resource.path),
            body=resource.byte_source,
        )
    return ResponseEnvelope(
        status_line=STATUS_NOT_FOUND,
        content_type=NOT_FOUND_CONTENT_TYPE,
        body=NOT_FOUND_BODY,
    )


def write_head(envelope: ResponseEnvelope, out: BinaryIO) -> None:
    """Write the status line, Content-type header and the blank line."""
    head = (
        envelope.status_line + CRLF
        + envelope.content_type_line + CRLF
        + CRLF
    )
    out.write(head.encode(ENCODING))


def send_bytes(source: BinaryIO, out: BinaryIO, blksize: int = BLOCK_SIZE) -> int:
    """Copy source to out in blksize chunks. Returns the number of bytes sent."""
    sent = 0
    while True:
        data = source.read(blksize)
        if not data:
            break
        out.write(data)
        sent += len(data)
    return sent


def write_body(envelope: ResponseEnvelope, out: BinaryIO) -> int:
    """Write the envelope body. File bodies are streamed, not closed."""
    if isinstance(envelope.body, str):
        data = envelope.body.encode(ENCODING)
        out.write(data)
        return len(data)
    return send_bytes(envelope.body, out)


def write(envelope: ResponseEnvelope, out: BinaryIO) -> None:
    """Serialize the full response onto out. I/O errors propagate."""
    write_head(envelope, out)
    write_body(envelope, out)
    out.flush()
