"""
httpconsole Connection Manager
==============================
Owns the console's single outbound connection: a plain or TLS socket,
optionally reached through an HTTP proxy ``CONNECT`` tunnel, wrapped in a
small HTTP/1.1 framing layer that writes one request and reads one
response at a time.

Sockets are blocking with no timeout; a server that never answers hangs
the console.

Bodies are delimited by ``Content-Length`` or by the end of the stream.
Chunked transfer encoding is not decoded.
"""

from __future__ import annotations

import http.client
import logging
import socket
import ssl
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Tuple
from urllib.parse import urlsplit

from httpconsole import __app_name__, __version__
from httpconsole.core.errors import ConnectError, ConnectionLost, LossReason, ProtocolError
from httpconsole.core.headers import Headers

logger = logging.getLogger(__name__)

LOOPBACK_ALIAS = "localhost"
USER_AGENT = f"{__app_name__}/{__version__}"

_MAXLINE = 65536
_BODY_METHODS = ("POST", "PUT", "PATCH")
_PEER_GONE = (BrokenPipeError, ConnectionResetError, ConnectionAbortedError,
              ssl.SSLEOFError, ssl.SSLZeroReturnError)


def split_host(host: str) -> Tuple[str, int]:
    """``example.com:8080`` → ``("example.com", 8080)``; brackets dropped from IPv6."""
    name, sep, port = host.rpartition(":")
    if not sep or not port.isdigit():
        name, port = host, "80"
    return name.strip("[]"), int(port)


# ── Wire records ─────────────────────────────────────────────────────────────

@dataclass
class Request:
    """One outgoing request; lives only for the duration of ``perform``."""
    method: str
    url: str
    headers: Headers
    body: bytes = b""

    @property
    def content_length(self) -> int:
        return len(self.body)

    @property
    def target(self) -> str:
        """Origin-form request target: path plus query."""
        parts = urlsplit(self.url)
        target = parts.path or "/"
        if parts.query:
            target += f"?{parts.query}"
        return target

    def to_wire(self, absolute_form: bool = False) -> bytes:
        """Serialize to HTTP/1.1 bytes. Rebuilt on every send so a retry resends the same body."""
        target = self.url if absolute_form else self.target
        lines = [f"{self.method} {target} HTTP/1.1"]
        for name, value in self.headers.items():
            if name.lower() == "content-length":
                continue
            lines.append(f"{name}: {value}")
        if "User-Agent" not in self.headers:
            lines.append(f"User-Agent: {USER_AGENT}")
        if self.body or self.method in _BODY_METHODS:
            lines.append(f"Content-Length: {self.content_length}")
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("utf-8") + self.body


@dataclass
class Response:
    """Status line and headers of a response; the body is still on the stream."""
    version: str
    status: int
    reason: str
    headers: http.client.HTTPMessage
    will_close: bool = False

    def has_body(self, method: str) -> bool:
        if method == "HEAD":
            return False
        return not (100 <= self.status < 200 or self.status in (204, 304))


def _read_status_line(fp: BinaryIO) -> Tuple[str, int, str]:
    raw = fp.readline(_MAXLINE + 1)
    if not raw:
        raise ConnectionLost(LossReason.PEER_CLOSED, "server closed connection without response")
    if len(raw) > _MAXLINE:
        raise ProtocolError("status line too long")
    line = raw.decode("iso-8859-1").rstrip("\r\n")
    parts = line.split(None, 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/"):
        raise ProtocolError(f"malformed status line: {line!r}")
    version, code = parts[0], parts[1]
    reason = parts[2] if len(parts) > 2 else ""
    if len(code) != 3 or not code.isdigit():
        raise ProtocolError(f"malformed status code: {code!r}")
    return version, int(code), reason


def _read_head(fp: BinaryIO) -> Tuple[str, int, str, http.client.HTTPMessage]:
    version, status, reason = _read_status_line(fp)
    try:
        headers = http.client.parse_headers(fp)
    except http.client.HTTPException as e:
        raise ProtocolError(f"malformed headers: {e}") from e
    return version, status, reason, headers


# ── Framing layer ────────────────────────────────────────────────────────────

class ClientConnection:
    """HTTP/1.1 request/response framing over one socket.

    Once a response announces that the peer will close, the connection is
    spent: further writes raise :class:`ConnectionLost` with
    ``LossReason.PERSIST_EOF``.
    """

    def __init__(self, sock: socket.socket, absolute_form: bool = False):
        self.sock = sock
        self.absolute_form = absolute_form
        self._rfile = sock.makefile("rb")
        self._persist_eof = False
        self.closed = False

    def write(self, request: Request) -> None:
        if self._persist_eof:
            raise ConnectionLost(LossReason.PERSIST_EOF, "connection closed by peer after the last response")
        try:
            self.sock.sendall(request.to_wire(absolute_form=self.absolute_form))
        except _PEER_GONE as e:
            raise ConnectionLost(LossReason.PEER_CLOSED, str(e) or type(e).__name__) from e

    def read(self, method: str) -> Response:
        """Read the status line and headers of the next response."""
        try:
            version, status, reason, headers = _read_head(self._rfile)
        except _PEER_GONE as e:
            raise ConnectionLost(LossReason.PEER_CLOSED, str(e) or type(e).__name__) from e

        tokens = {t.strip().lower() for t in ",".join(headers.get_all("Connection") or []).split(",")}
        will_close = "close" in tokens
        if version == "HTTP/1.0" and "keep-alive" not in tokens:
            will_close = True
        response = Response(version=version, status=status, reason=reason, headers=headers)
        if response.has_body(method) and headers.get("Content-Length") is None:
            # delimited by EOF, nothing can follow it
            will_close = True
        response.will_close = will_close
        if will_close:
            self._persist_eof = True
        return response

    def read_body(self, response: Response, method: str) -> bytes:
        """Body bytes per ``Content-Length``, else up to EOF.

        ``HEAD``, 1xx, 204 and 304 responses have no body even when they
        carry a ``Content-Length``.
        """
        if not response.has_body(method):
            return b""
        length = response.headers.get("Content-Length")
        if length is not None:
            try:
                n = int(length.strip())
            except ValueError:
                raise ProtocolError(f"invalid Content-Length: {length!r}")
            if n < 0:
                raise ProtocolError(f"invalid Content-Length: {length!r}")
            return self._rfile.read(n)
        return self._rfile.read()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for stream in (self._rfile, self.sock):
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"Error closing connection: {e}")


# ── Connection Manager ───────────────────────────────────────────────────────

class ConnectionManager:
    """Dials, tunnels, wraps and replaces the session's one connection."""

    def __init__(
        self,
        host: str,
        use_tls: bool = False,
        proxy: str = "",
        ssl_context: Optional[ssl.SSLContext] = None,
        notify: Optional[Callable[[str], None]] = None,
    ):
        self.host = host
        self.use_tls = use_tls
        self.proxy = proxy
        self.ssl_context = ssl_context
        self.notify = notify
        self.connection: Optional[ClientConnection] = None

    @property
    def bare_host(self) -> str:
        return split_host(self.host)[0]

    @property
    def proxied(self) -> bool:
        return bool(self.proxy) and self.bare_host != LOOPBACK_ALIAS

    @property
    def absolute_form(self) -> bool:
        """Plain HTTP through a proxy sends absolute-form request targets."""
        return self.proxied and not self.use_tls

    def proxy_address(self) -> Tuple[str, int]:
        proxy = self.proxy if "//" in self.proxy else f"http://{self.proxy}"
        try:
            parts = urlsplit(proxy)
            port = parts.port or 80
        except ValueError as e:
            raise ConnectError(f"invalid proxy {self.proxy!r}: {e}") from e
        if not parts.hostname:
            raise ConnectError(f"invalid proxy {self.proxy!r}")
        return parts.hostname, port

    def connect(self) -> ClientConnection:
        """Open a fresh connection, replacing any previous one."""
        self.close()
        if self.notify:
            self.notify("establishing a TCP connection ...")

        address = self.proxy_address() if self.proxied else split_host(self.host)
        logger.info(f"Dialing {address[0]}:{address[1]} for {self.host}"
                    f"{' via proxy' if self.proxied else ''}")
        try:
            sock = socket.create_connection(address)
        except OSError as e:
            raise ConnectError(f"dial {address[0]}:{address[1]}: {e}") from e

        if self.use_tls:
            try:
                if self.proxied:
                    self._open_tunnel(sock)
                context = self.ssl_context or ssl.create_default_context()
                sock = context.wrap_socket(sock, server_hostname=self.bare_host)
            except ConnectError:
                sock.close()
                raise
            except (ssl.SSLError, ssl.CertificateError, OSError) as e:
                sock.close()
                raise ConnectError(f"tls: {e}") from e
            logger.info(f"TLS established with {self.bare_host} ({sock.version()})")

        self.connection = ClientConnection(sock, absolute_form=self.absolute_form)
        return self.connection

    def _open_tunnel(self, sock: socket.socket) -> None:
        """Ask the proxy for a raw tunnel to the target; anything but 200 is fatal."""
        request = f"CONNECT {self.host} HTTP/1.1\r\nHost: {self.host}\r\n\r\n"
        fp = sock.makefile("rb")
        try:
            sock.sendall(request.encode("ascii"))
            version, status, reason, _ = _read_head(fp)
        except (ConnectionLost, ProtocolError, OSError) as e:
            raise ConnectError(f"proxy CONNECT {self.host}: {e}") from e
        finally:
            fp.close()
        if status != 200:
            raise ConnectError(f"{status} {reason}".rstrip())
        logger.debug(f"Proxy tunnel to {self.host} open ({version} {status})")

    def reconnect(self) -> ClientConnection:
        logger.info(f"Reconnecting to {self.host}")
        self.close()
        return self.connect()

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None
