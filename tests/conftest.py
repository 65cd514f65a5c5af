"""
pytest configuration and fixtures.
"""

import errno
import socket
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Generator, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tcpwebserver import WebServer, ServerConfig
from tcpwebserver.core import Connection


INDEX_HTML = b"<!DOCTYPE html><html><body><h1>Home</h1></body></html>\n"
STYLE_CSS = b"body { color: #333; }\n"
APP_JS = b"console.log('hello');\n"


@dataclass
class RawResponse:
    """A response split back into its parts."""

    raw: bytes
    status_line: str
    headers: Dict[str, str]
    body: bytes

    @property
    def status(self) -> int:
        return int(self.status_line.split(" ")[1])


def parse_response(raw: bytes) -> RawResponse:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return RawResponse(raw=raw, status_line=lines[0], headers=headers, body=body)


def recv_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class FailingAcceptSocket(socket.socket):
    """Listening socket whose next accept() calls fail with the given errnos."""

    def __init__(self, *args, fail_errnos=(errno.EMFILE,), **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_errnos = list(fail_errnos)

    def accept(self):
        if self.fail_errnos:
            code = self.fail_errnos.pop(0)
            raise OSError(code, errno.errorcode.get(code, "accept failed"))
        return super().accept()


def failing_accept(socket_server, *fail_errnos):
    """Make the SocketServer's listening socket fail its first accept() calls."""
    create_socket = socket_server._create_socket

    def create():
        sock = create_socket()
        flaky = FailingAcceptSocket(
            sock.family, sock.type, sock.proto,
            fileno=sock.detach(), fail_errnos=fail_errnos,
        )
        flaky.settimeout(socket_server.config.poll_interval)
        return flaky

    socket_server._create_socket = create


class UnreadableSocket(socket.socket):
    """Client socket whose recv() fails as if the peer had vanished."""

    def recv(self, bufsize, flags=0):
        raise OSError(errno.ENOTCONN, "Transport endpoint is not connected")


def unreadable(sock: socket.socket) -> UnreadableSocket:
    """Take over sock's file descriptor with an UnreadableSocket."""
    return UnreadableSocket(sock.family, sock.type, sock.proto, fileno=sock.detach())


@pytest.fixture
def webroot(tmp_path: Path) -> Path:
    """
    A document root with one file of each allowed type, plus files that
    must never be served.

        tmp_path/
        ├── secret.txt          (outside the root)
        └── webroot/
            ├── index.html
            ├── style.css
            ├── app.js
            ├── app.py
            ├── README          (no extension)
            ├── a..b.html
            └── docs/
                └── page.html
    """
    (tmp_path / "secret.txt").write_text("top secret")

    root = tmp_path / "webroot"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(STYLE_CSS)
    (root / "app.js").write_bytes(APP_JS)
    (root / "app.py").write_text("print('never served')\n")
    (root / "README").write_text("<p>readme</p>\n")
    (root / "a..b.html").write_text("<p>dots</p>\n")
    (root / "docs").mkdir()
    (root / "docs" / "page.html").write_text("<p>docs page</p>\n")
    return root


@pytest.fixture
def config(webroot: Path, tmp_path: Path) -> ServerConfig:
    """Test configuration: localhost, OS-picked port, short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        poll_interval=0.1,
        document_root=str(webroot),
        access_log=str(tmp_path / "logs" / "access.log"),
        log_level="WARNING",
    )


class ServerThread:
    """Runs a WebServer in a background thread."""

    def __init__(self, server: WebServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def stopped(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def send(self, data: bytes) -> bytes:
        """Send raw bytes on a new connection and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            if data:
                sock.sendall(data)
            return recv_all(sock)

    def get(self, path: str, method: str = "GET") -> RawResponse:
        raw = self.send(f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())
        return parse_response(raw)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A started server on a free port."""
    server_thread = ServerThread(WebServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()


@pytest.fixture
def exchange() -> Callable[[WebServer, bytes], bytes]:
    """
    Run WebServer.process_connection over a socketpair.

    The client half-closes after sending, so the server's single read sees
    the request and its close-time drain sees EOF straight away.
    """
    def run(server: WebServer, data: bytes) -> bytes:
        server_sock, client_sock = socket.socketpair()
        with client_sock:
            if data:
                client_sock.sendall(data)
            client_sock.shutdown(socket.SHUT_WR)

            conn = Connection(socket=server_sock, address=("127.0.0.1", 40000), timeout=2.0)
            server.process_connection(conn)

            client_sock.settimeout(2.0)
            return recv_all(client_sock)

    return run
