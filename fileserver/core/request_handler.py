"""
Per-connection request handling for the file server.

This module owns one accepted connection end-to-end:
- Reading the request line and header block with size limits
- Logging request and response header blocks atomically
- Resolving the target to a file under the served root
- Streaming the file, or the 404 page, back to the client
- Closing the connection on every code path
"""

"""
Copyright 2026 Chris Bunting
File: request_handler.py | Purpose: Per-connection request handling
@author Chris Bunting | @version 1.0.0

CHANGELOG:
2026-10-18 - Chris Bunting: Log partial header blocks, count line limit without terminator
2026-10-18 - Chris Bunting: Initial implementation
"""

import os
import socket
from dataclasses import dataclass
from typing import BinaryIO, List, Optional
from urllib.parse import unquote_to_bytes

import httptools

from .path_resolver import resolve
from .resources import Found, open_resource
from .response_writer import ResponseEnvelope, build_envelope, write_body, write_head
from .server_utils import DiagnosticSink, peer_label

SUPPORTED_METHOD = 'GET'


class RequestError(Exception):
    """Raised when a request cannot be read or parsed.

    The connection is closed without a response.
    """
    pass


class UnsupportedMethodError(RequestError):
    """Raised for any method other than GET."""
    pass


@dataclass(frozen=True)
class ParsedRequest:
    method: str
    raw_target: str


def parse_request_line(request_line: str) -> ParsedRequest:
    """Split a request line on whitespace into method and target.

    Raises:
        UnsupportedMethodError: If the method is not exactly "GET"
        RequestError: If the line has no method or no target
    """
    tokens = request_line.split()
    if not tokens:
        raise RequestError("Empty request line")

    method = tokens[0]
    if method != SUPPORTED_METHOD:
        raise UnsupportedMethodError(f"Unsupported method request {method}")
    if len(tokens) < 2:
        raise RequestError(f"Malformed request line: {request_line!r}")

    return ParsedRequest(method=method, raw_target=tokens[1])


def request_path(raw_target: str) -> str:
    """Reduce a request target to its percent-decoded path component.

    Query strings and fragments are dropped and absolute-form targets are
    reduced to their path. Targets httptools cannot parse are returned as-is.
    """
    try:
        url = httptools.parse_url(raw_target.encode('latin-1'))
    except (httptools.HttpParserInvalidURLError, UnicodeEncodeError):
        return raw_target

    path = url.path or b'/'
    return os.fsdecode(unquote_to_bytes(path))


class RequestHandler:
    """Handles one HTTP request per connection and always closes it.

    Attributes:
        root: Served root directory
        timeout: Socket deadline applied to the connection, None for none
        sink: Diagnostic sink shared with every other handler
    """
    MAX_LINE_SIZE = 8192  # 8KB limit per request/header line
    MAX_HEADERS = 100     # Maximum number of headers

    def __init__(self, root: str, timeout: Optional[float] = None,
                 sink: Optional[DiagnosticSink] = None):
        self.root = root
        self.timeout = timeout
        self.sink = sink or DiagnosticSink()

    def __call__(self, connection: socket.socket, address) -> None:
        self.handle(connection, address)

    def handle(self, connection: socket.socket, address) -> None:
        """Serve a single request on connection. Never raises."""
        peer = peer_label(address)
        try:
            connection.settimeout(self.timeout)
            with connection.makefile('rb') as rfile, connection.makefile('wb') as wfile:
                self._serve(rfile, wfile, peer)
        except RequestError as e:
            self.sink.warning("%s (from %s)", e, peer)
        except socket.timeout:
            self.sink.warning("Timed out waiting for %s", peer)
        except OSError as e:
            self.sink.error("Error while sending response to %s: %s", peer, e)
        except Exception as e:
            self.sink.error("Error handling request from %s: %s", peer, e, exc_info=True)
        finally:
            try:
                connection.close()
            except OSError:
                pass

    def _serve(self, rfile: BinaryIO, wfile: BinaryIO, peer: str) -> None:
        request_line = self._read_line(rfile)
        if request_line is None:
            raise RequestError("Connection closed before request line")

        self._read_headers(rfile, request_line)

        request = parse_request_line(request_line)
        relative_path = resolve(request_path(request.raw_target))
        resource = open_resource(relative_path, self.root)
        envelope = build_envelope(resource)

        try:
            write_head(envelope, wfile)
            self.sink.block(
                "server response header",
                [envelope.status_line, envelope.content_type_line],
            )
            if isinstance(resource, Found):
                self._send_file(resource, envelope, wfile, peer)
            else:
                write_body(envelope, wfile)
        finally:
            if isinstance(resource, Found):
                resource.byte_source.close()

    def _send_file(self, resource: Found, envelope: ResponseEnvelope,
                   wfile: BinaryIO, peer: str) -> None:
        # A failed transfer is not retried and the head is not re-sent
        try:
            write_body(envelope, wfile)
            wfile.flush()
        except OSError as e:
            self.sink.error("Exception while reading/writing file %s: %s", resource.path, e)
            self._discard(wfile)
            return
        self.sink.info("Sent file %s to %s", resource.path, peer)

    @staticmethod
    def _discard(wfile: BinaryIO) -> None:
        """Close wfile after a logged failure, dropping any unsent bytes."""
        try:
            wfile.close()
        except OSError:
            pass

    def _read_line(self, rfile: BinaryIO) -> Optional[str]:
        """Read one CRLF or LF terminated line, None on EOF.

        The size limit applies to the line content, not its terminator.
        """
        line = rfile.readline(self.MAX_LINE_SIZE + 2)
        if not line:
            return None
        content = line.rstrip(b'\r\n')
        if len(content) > self.MAX_LINE_SIZE:
            raise RequestError("Request line too long")
        return content.decode('latin-1')

    def _read_headers(self, rfile: BinaryIO, request_line: str) -> List[str]:
        """Read header lines up to the blank line that ends the block.

        The request line and every header read so far are logged as one
        block, including when reading stops early with an error.
        """
        lines = [request_line]
        try:
            while True:
                line = self._read_line(rfile)
                if line is None:
                    raise RequestError("Connection closed before end of headers")
                if not line:
                    return lines[1:]
                if len(lines) > self.MAX_HEADERS:
                    raise RequestError("Too many headers")
                lines.append(line)
        finally:
            self.sink.block("client request header", lines)
