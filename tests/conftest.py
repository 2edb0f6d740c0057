"""Shared fixtures: throwaway TCP servers on 127.0.0.1."""

import socket
import threading

import pytest

from httpconsole import ui


def read_request(conn):
    """Read one request (head plus Content-Length body) from a socket."""
    data = b""
    while b"\r\n\r\n" not in data:
        chunk = conn.recv(4096)
        if not chunk:
            return data
        data += chunk
    head, _, body = data.partition(b"\r\n\r\n")
    length = 0
    for line in head.split(b"\r\n")[1:]:
        name, _, value = line.partition(b":")
        if name.strip().lower() == b"content-length":
            length = int(value.strip())
    while len(body) < length:
        chunk = conn.recv(4096)
        if not chunk:
            break
        body += chunk
    return head + b"\r\n\r\n" + body


def wait_for_close(conn):
    """Block until the client hangs up."""
    try:
        while conn.recv(4096):
            pass
    except OSError:
        pass


@pytest.fixture
def tcp_server():
    """Start a server that runs ``handler(conn)`` for each accepted connection.

    Returns the port. ``connections`` is how many connections it will accept.
    """
    servers = []

    def start(handler, connections=1):
        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind(("127.0.0.1", 0))
        srv.listen(connections)
        srv.settimeout(5)

        def run():
            for _ in range(connections):
                try:
                    conn, _ = srv.accept()
                except OSError:
                    return
                with conn:
                    conn.settimeout(5)
                    handler(conn)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()
        servers.append((srv, thread))
        return srv.getsockname()[1]

    yield start

    for srv, thread in servers:
        thread.join(timeout=5)
        srv.close()


@pytest.fixture(autouse=True)
def plain_output():
    """Render without ANSI styles so output can be compared as text."""
    ui.configure(colors=False)
    yield
    ui.configure(colors=True)
