#!/usr/bin/env python3
"""
Test suite for per-connection request handling
"""
import io
import logging
import os
import shutil
import socket
import tempfile
import unittest
from fileserver.core.request_handler import (
    ParsedRequest, RequestError, RequestHandler, UnsupportedMethodError, parse_request_line
)
from fileserver.core.resources import Found
from fileserver.core.response_writer import NOT_FOUND_BODY, build_envelope
from fileserver.core.server_utils import DiagnosticSink

INDEX_BODY = b'<html></html>'
PEER = ('127.0.0.1', 50000)


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)

    @property
    def messages(self):
        return [record.getMessage() for record in self.records]


class TrackingSocket:
    """Wraps a socket and counts close() calls"""
    def __init__(self, sock):
        self._sock = sock
        self.close_calls = 0

    def __getattr__(self, name):
        return getattr(self._sock, name)

    def close(self):
        self.close_calls += 1
        self._sock.close()


class TestParseRequestLine(unittest.TestCase):
    def test_get(self):
        self.assertEqual(
            parse_request_line('GET /index.html HTTP/1.1'),
            ParsedRequest('GET', '/index.html')
        )

    def test_extra_whitespace(self):
        self.assertEqual(parse_request_line('GET   /a.css\tHTTP/1.1').raw_target, '/a.css')

    def test_unsupported_method(self):
        for method in ('POST', 'HEAD', 'get', 'Get'):
            with self.subTest(method=method):
                with self.assertRaises(UnsupportedMethodError):
                    parse_request_line(f'{method} /index.html HTTP/1.1')

    def test_missing_target(self):
        with self.assertRaises(RequestError):
            parse_request_line('GET')

    def test_empty_line(self):
        with self.assertRaises(RequestError):
            parse_request_line('   ')


class RequestHandlerTests(unittest.TestCase):
    def setUp(self):
        self.root = tempfile.mkdtemp()
        with open(os.path.join(self.root, 'index.html'), 'wb') as f:
            f.write(INDEX_BODY)
        with open(os.path.join(self.root, 'logo.png'), 'wb') as f:
            f.write(bytes(range(256)) * 40)
        os.makedirs(os.path.join(self.root, 'sub'))
        with open(os.path.join(self.root, 'sub', 'page.css'), 'wb') as f:
            f.write(b'body {}')

        self.log = ListHandler()
        self.logger = logging.getLogger(f'fileserver.test.{id(self)}')
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.log)
        self.handler = RequestHandler(self.root, timeout=2.0, sink=DiagnosticSink(self.logger))

    def tearDown(self):
        self.logger.removeHandler(self.log)
        shutil.rmtree(self.root)

    def _run_raw_request(self, request: bytes, close_write: bool = True) -> bytes:
        client, server = socket.socketpair()
        tracked = TrackingSocket(server)
        try:
            client.sendall(request)
            if close_write:
                client.shutdown(socket.SHUT_WR)
            self.handler.handle(tracked, PEER)
            self.assertEqual(tracked.close_calls, 1)

            chunks = []
            client.settimeout(2.0)
            while True:
                chunk = client.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
            return b''.join(chunks)
        finally:
            client.close()

    def test_serves_existing_file(self):
        response = self._run_raw_request(
            b'GET /index.html HTTP/1.1\r\nHost: localhost\r\n\r\n'
        )
        self.assertEqual(
            response,
            b'HTTP/1.1 200 OK\r\nContent-type: text/html\r\n\r\n' + INDEX_BODY
        )
        self.assertIn('Sent file ./index.html to 127.0.0.1:50000', self.log.messages)

    def test_serves_binary_file(self):
        response = self._run_raw_request(b'GET /logo.png HTTP/1.1\r\n\r\n')
        head, body = response.split(b'\r\n\r\n', 1)
        self.assertEqual(head, b'HTTP/1.1 200 OK\r\nContent-type: image/png')
        self.assertEqual(body, bytes(range(256)) * 40)

    def test_missing_file(self):
        response = self._run_raw_request(b'GET /missing.png HTTP/1.1\r\n\r\n')
        self.assertEqual(
            response,
            b'HTTP/1.1 404 Not Found\r\nContent-type: text/html\r\n\r\n' + NOT_FOUND_BODY.encode()
        )

    def test_directory_is_not_found(self):
        for target in (b'/', b'/sub', b'/sub/'):
            with self.subTest(target=target):
                response = self._run_raw_request(b'GET ' + target + b' HTTP/1.1\r\n\r\n')
                self.assertTrue(response.startswith(b'HTTP/1.1 404 Not Found\r\n'))

    def test_trailing_slash_file(self):
        response = self._run_raw_request(b'GET /sub/page.css/ HTTP/1.1\r\n\r\n')
        self.assertEqual(
            response,
            b'HTTP/1.1 200 OK\r\nContent-type: text/css\r\n\r\nbody {}'
        )

    def test_query_string_ignored(self):
        response = self._run_raw_request(b'GET /index.html?v=2 HTTP/1.1\r\n\r\n')
        self.assertTrue(response.endswith(INDEX_BODY))

    def test_path_traversal_is_not_found(self):
        """Test targets escaping the served root get the 404 page"""
        parent_file = os.path.join(os.path.dirname(self.root), 'outside-secret.txt')
        with open(parent_file, 'wb') as f:
            f.write(b'secret')
        try:
            name = os.path.basename(parent_file).encode()
            for target in (b'/../' + name, b'/%2e%2e/' + name, b'/sub/../../' + name):
                with self.subTest(target=target):
                    response = self._run_raw_request(b'GET ' + target + b' HTTP/1.1\r\n\r\n')
                    self.assertTrue(response.startswith(b'HTTP/1.1 404 Not Found\r\n'))
                    self.assertNotIn(b'secret', response)
        finally:
            os.remove(parent_file)

    def test_unsupported_method_gets_no_response(self):
        """Test non-GET methods are dropped without any bytes written"""
        for method in (b'POST', b'HEAD', b'get'):
            with self.subTest(method=method):
                response = self._run_raw_request(method + b' /index.html HTTP/1.1\r\n\r\n')
                self.assertEqual(response, b'')
        self.assertTrue(any('Unsupported method request POST' in m for m in self.log.messages))

    def test_malformed_request_line_gets_no_response(self):
        self.assertEqual(self._run_raw_request(b'GET\r\n\r\n'), b'')

    def test_empty_connection(self):
        self.assertEqual(self._run_raw_request(b''), b'')
        self.assertTrue(any('before request line' in m for m in self.log.messages))

    def test_eof_inside_headers(self):
        response = self._run_raw_request(b'GET /index.html HTTP/1.1\r\nHost: localhost\r\n')
        self.assertEqual(response, b'')

    def test_line_too_long(self):
        request = b'GET /' + b'a' * (RequestHandler.MAX_LINE_SIZE + 10) + b' HTTP/1.1\r\n\r\n'
        self.assertEqual(self._run_raw_request(request), b'')

    def test_too_many_headers(self):
        headers = b''.join(b'X-H%d: v\r\n' % i for i in range(RequestHandler.MAX_HEADERS + 1))
        request = b'GET /index.html HTTP/1.1\r\n' + headers + b'\r\n'
        self.assertEqual(self._run_raw_request(request), b'')

    def test_lf_only_line_endings(self):
        response = self._run_raw_request(b'GET /index.html HTTP/1.1\nHost: localhost\n\n')
        self.assertTrue(response.startswith(b'HTTP/1.1 200 OK\r\n'))

    def test_timeout_closes_connection(self):
        """Test a silent client is disconnected once the deadline expires"""
        self.handler.timeout = 0.2
        response = self._run_raw_request(b'', close_write=False)
        self.assertEqual(response, b'')
        self.assertTrue(any('Timed out' in m for m in self.log.messages))

    def _block(self, title):
        """Return the lines of the single logged block with this title"""
        begin = f'---------- Begin {title} ----------'
        blocks = [m.split('\n') for m in self.log.messages if m.startswith(begin)]
        self.assertEqual(len(blocks), 1)
        return blocks[0]

    def test_header_blocks_logged(self):
        self._run_raw_request(b'GET /index.html HTTP/1.1\r\nHost: localhost\r\nAccept: */*\r\n\r\n')
        self.assertEqual(
            self._block('client request header'),
            ['---------- Begin client request header ----------',
             'GET /index.html HTTP/1.1', 'Host: localhost', 'Accept: */*',
             '---------- End client request header ----------']
        )
        self.assertEqual(
            self._block('server response header'),
            ['---------- Begin server response header ----------',
             'HTTP/1.1 200 OK', 'Content-type: text/html',
             '---------- End server response header ----------']
        )

    def test_partial_headers_logged_on_eof(self):
        """Test headers read before an early EOF still reach the log"""
        self._run_raw_request(b'GET /index.html HTTP/1.1\r\nHost: localhost\r\n')
        self.assertEqual(
            self._block('client request header')[1:-1],
            ['GET /index.html HTTP/1.1', 'Host: localhost']
        )
        self.assertTrue(any('before end of headers' in m for m in self.log.messages))

    def test_partial_headers_logged_on_overflow(self):
        headers = b''.join(b'X-H%d: v\r\n' % i for i in range(RequestHandler.MAX_HEADERS + 1))
        self._run_raw_request(b'GET /index.html HTTP/1.1\r\n' + headers + b'\r\n')
        lines = self._block('client request header')[1:-1]
        self.assertEqual(lines[0], 'GET /index.html HTTP/1.1')
        self.assertEqual(len(lines), RequestHandler.MAX_HEADERS + 1)
        self.assertTrue(any('Too many headers' in m for m in self.log.messages))

    def test_line_limit_ignores_terminator(self):
        """Test a line at the size limit is accepted with CRLF and with LF"""
        header = b'X-Pad: ' + b'a' * (RequestHandler.MAX_LINE_SIZE - len(b'X-Pad: '))
        self.assertEqual(len(header), RequestHandler.MAX_LINE_SIZE)
        for eol in (b'\r\n', b'\n'):
            with self.subTest(eol=eol):
                response = self._run_raw_request(
                    b'GET /index.html HTTP/1.1' + eol + header + eol + eol
                )
                self.assertTrue(response.startswith(b'HTTP/1.1 200 OK\r\n'))

    def test_line_one_byte_over_limit(self):
        header = b'X-Pad: ' + b'a' * (RequestHandler.MAX_LINE_SIZE - len(b'X-Pad: ') + 1)
        for eol in (b'\r\n', b'\n'):
            with self.subTest(eol=eol):
                response = self._run_raw_request(
                    b'GET /index.html HTTP/1.1' + eol + header + eol + eol
                )
                self.assertEqual(response, b'')

    def test_close_error_swallowed(self):
        class FailingClose(TrackingSocket):
            def close(self):
                super().close()
                raise OSError('close failed')

        client, server = socket.socketpair()
        try:
            client.sendall(b'GET /index.html HTTP/1.1\r\n\r\n')
            client.shutdown(socket.SHUT_WR)
            self.handler.handle(FailingClose(server), PEER)
        finally:
            client.close()

    def test_transfer_failure_logged(self):
        """Test a mid-stream write failure is logged and not retried"""
        class BrokenWriter(io.RawIOBase):
            writes = 0

            def writable(self):
                return True

            def write(self, data):
                BrokenWriter.writes += 1
                raise ConnectionResetError('reset by peer')

        source = open(os.path.join(self.root, 'logo.png'), 'rb')
        resource = Found('./logo.png', source)
        try:
            self.handler._send_file(resource, build_envelope(resource), BrokenWriter(), '127.0.0.1:50000')
        finally:
            source.close()

        self.assertEqual(BrokenWriter.writes, 1)
        errors = [r for r in self.log.records if r.levelno >= logging.ERROR]
        self.assertEqual(len(errors), 1)
        self.assertIn('Exception while reading/writing file ./logo.png', errors[0].getMessage())
        self.assertFalse(any(m.startswith('Sent file') for m in self.log.messages))

    def test_transfer_failure_logged_once(self):
        """Test a client that disconnects mid-transfer yields one error"""
        with open(os.path.join(self.root, 'big.png'), 'wb') as f:
            f.write(b'\x00' * (1024 * 1024))

        client, server = socket.socketpair()
        tracked = TrackingSocket(server)
        try:
            client.sendall(b'GET /big.png HTTP/1.1\r\n\r\n')
        finally:
            client.close()

        self.handler.handle(tracked, PEER)

        self.assertEqual(tracked.close_calls, 1)
        errors = [r.getMessage() for r in self.log.records if r.levelno >= logging.ERROR]
        self.assertEqual(len(errors), 1)
        self.assertIn('Exception while reading/writing file ./big.png', errors[0])
        self.assertFalse(any(m.startswith('Sent file') for m in self.log.messages))


if __name__ == '__main__':
    unittest.main()
