"""
End-to-end tests: a real server on a free port, raw TCP clients.
"""

import dataclasses
import errno
import json
import socket
import threading
import time
from pathlib import Path

import pytest

from conftest import INDEX_HTML, STYLE_CSS, ServerThread, failing_accept, parse_response, recv_all
from tcpwebserver import WebServer, ServerConfig


class TestServing:
    """Tests for files served over TCP."""

    def test_get_index(self, running_server: ServerThread):
        response = running_server.get("/")

        assert response.status_line == "HTTP/1.1 200 OK"
        assert response.headers["Content-Type"] == "text/html"
        assert response.headers["Content-Length"] == str(len(INDEX_HTML))
        assert response.headers["Connection"] == "close"
        assert response.body == INDEX_HTML

    def test_get_css(self, running_server: ServerThread):
        response = running_server.get("/style.css")

        assert response.headers["Content-Type"] == "text/css"
        assert response.body == STYLE_CSS

    def test_large_file_round_trip(self, running_server: ServerThread, webroot: Path):
        """A body far larger than one segment arrives complete."""
        body = ("x" * 1023 + "\n").encode() * 512
        (webroot / "big.js").write_bytes(body)

        response = running_server.get("/big.js")

        assert response.status == 200
        assert response.headers["Content-Length"] == str(len(body))
        assert response.body == body

    def test_idempotent(self, running_server: ServerThread):
        request = b"GET /app.js HTTP/1.1\r\nHost: localhost\r\n\r\n"

        assert running_server.send(request) == running_server.send(request)

    def test_file_changes_visible(self, running_server: ServerThread, webroot: Path):
        """Files are read per request, never cached."""
        (webroot / "live.html").write_text("one")
        assert running_server.get("/live.html").body == b"one"

        (webroot / "live.html").write_text("two")
        assert running_server.get("/live.html").body == b"two"


class TestRejections:
    """Tests for error responses over TCP."""

    def test_traversal_forbidden(self, running_server: ServerThread):
        response = running_server.get("/../secret.txt")

        assert response.status == 403
        assert b"top secret" not in response.raw

    def test_encoded_traversal_forbidden(self, running_server: ServerThread):
        response = running_server.get("/%2e%2e/%2e%2e/etc/passwd")

        assert response.status == 403

    def test_disallowed_extension(self, running_server: ServerThread):
        response = running_server.get("/app.py")

        assert response.status == 403
        assert b"never served" not in response.raw

    def test_not_found(self, running_server: ServerThread):
        response = running_server.get("/nope.html")

        assert response.status_line == "HTTP/1.1 404 Not Found"
        assert b"Error 404: Not Found" in response.body

    def test_method_not_allowed(self, running_server: ServerThread):
        response = running_server.get("/index.html", method="POST")

        assert response.status_line == "HTTP/1.1 405 Method Not Allowed"

    def test_bad_request(self, running_server: ServerThread):
        response = parse_response(running_server.send(b"GET /\r\n\r\n"))

        assert response.status_line == "HTTP/1.1 400 Bad Request"

    def test_custom_error_page(self, running_server: ServerThread, webroot: Path):
        (webroot / "error.html").write_text("<p>Status {{status_code}}</p>")

        response = running_server.get("/nope.html")

        assert response.status == 404
        assert response.body == b"<p>Status 404</p>"


class TestConnections:
    """Tests for connection lifecycle over TCP."""

    def test_zero_byte_connection(self, running_server: ServerThread):
        """Connecting and sending nothing gets closed without a response."""
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0) as sock:
            sock.shutdown(socket.SHUT_WR)

            assert recv_all(sock) == b""

        # The server is still healthy afterwards
        assert running_server.get("/").status == 200

    def test_one_response_then_close(self, running_server: ServerThread):
        """A second request on the same connection gets nothing back."""
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0) as sock:
            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            first = recv_all(sock)

        assert first.count(b"HTTP/1.1 ") == 1

    def test_concurrent_clients(self, running_server: ServerThread):
        results = []
        lock = threading.Lock()

        def client():
            response = running_server.get("/style.css")
            with lock:
                results.append(response.body)

        threads = [threading.Thread(target=client) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        assert results == [STYLE_CSS] * 10

    def test_slow_client_does_not_block_others(self, running_server: ServerThread):
        """A client that connects and stays silent doesn't hold up the accept loop."""
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5.0):
            assert running_server.get("/").status == 200

    def test_out_of_descriptors_recovers(self, config: ServerConfig):
        """Running out of file descriptors on accept() doesn't end the server."""
        server = WebServer(config)
        failing_accept(server._socket_server, errno.EMFILE)
        server_thread = ServerThread(server)
        server_thread.start()
        try:
            response = server_thread.get("/")

            assert response.status == 200
            assert response.body == INDEX_HTML
            assert server.is_running
        finally:
            server_thread.stop()


class TestAccessLog:
    """Tests for the request log file."""

    def test_one_line_per_request(self, running_server: ServerThread, config: ServerConfig):
        running_server.get("/")
        running_server.get("/missing.html")
        running_server.get("/x", method="DELETE")
        running_server.send(b"bogus\r\n")

        lines = Path(config.access_log).read_text().splitlines()
        records = [json.loads(line) for line in lines]

        assert [r["path"] for r in records] == ["/", "/missing.html", "/x"]
        assert records[2]["method"] == "DELETE"
        assert all(r["remote_endpoint"].startswith("127.0.0.1:") for r in records)

    def test_log_appends_across_restarts(self, config: ServerConfig):
        for _ in range(2):
            server_thread = ServerThread(WebServer(config))
            server_thread.start()
            try:
                server_thread.get("/")
            finally:
                server_thread.stop()

        assert len(Path(config.access_log).read_text().splitlines()) == 2

    def test_no_access_log_file(self, config: ServerConfig, tmp_path: Path):
        config.access_log = None
        server_thread = ServerThread(WebServer(config))
        server_thread.start()
        try:
            assert server_thread.get("/").status == 200
        finally:
            server_thread.stop()

        assert not (tmp_path / "logs").exists()

    def test_two_servers_keep_separate_logs(self, config: ServerConfig, tmp_path: Path):
        """Each server in the process writes only its own requests."""
        other_config = dataclasses.replace(config, access_log=str(tmp_path / "b.log"))
        first = ServerThread(WebServer(config))
        second = ServerThread(WebServer(other_config))
        first.start()
        second.start()
        try:
            assert first.get("/").status == 200
        finally:
            first.stop()
            second.stop()

        assert len(Path(config.access_log).read_text().splitlines()) == 1
        assert (tmp_path / "b.log").read_text() == ""


class TestShutdown:
    """Tests for stopping the server."""

    def test_shutdown_stops_accepting(self, config: ServerConfig):
        server_thread = ServerThread(WebServer(config))
        server_thread.start()
        port = server_thread.port

        started = time.monotonic()
        server_thread.stop()

        assert server_thread.stopped
        assert time.monotonic() - started < 3.0
        assert not server_thread.server.is_running
        with pytest.raises(ConnectionRefusedError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_in_flight_connection_completes(self, config: ServerConfig):
        """A connection accepted before shutdown still gets its response."""
        server_thread = ServerThread(WebServer(config))
        server_thread.start()

        with socket.create_connection(("127.0.0.1", server_thread.port), timeout=5.0) as sock:
            # Give the accept loop time to pick the connection up
            time.sleep(0.5)
            server_thread.stop()
            assert server_thread.stopped

            sock.sendall(b"GET / HTTP/1.1\r\n\r\n")
            response = parse_response(recv_all(sock))

        assert response.status == 200
        assert response.body == INDEX_HTML
