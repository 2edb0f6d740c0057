"""
httpconsole Session & Request Executor
======================================
The per-run state of the console (scheme, host, current path, request
headers, cookie jar, connection) and ``perform``, which sends one request
over the session's connection and renders the response.

Connection loss between exchanges is recovered by exactly one
reconnect-and-resend; a second loss in a row is fatal.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from httpconsole import ui
from httpconsole.core.connection import ClientConnection, ConnectionManager, Request, Response
from httpconsole.core.cookies import CookieJar
from httpconsole.core.errors import ConnectionLost, FatalError, ProtocolError
from httpconsole.core.headers import Headers

if TYPE_CHECKING:
    from httpconsole.config import ConsoleOptions, HttpConsoleConfig, Target

logger = logging.getLogger(__name__)

MAX_RETRIES = 1


class Session:
    """Everything one console run mutates: path, headers, cookies, connection."""

    def __init__(
        self,
        scheme: str,
        host: str,
        options: "ConsoleOptions",
        path: str = "/",
        headers: Optional[Headers] = None,
        manager: Optional[ConnectionManager] = None,
        proxy: str = "",
    ):
        self.scheme = scheme
        self.host = host
        self.options = options
        self.path = path or "/"
        self.headers = headers if headers is not None else Headers()
        self.headers.set("Host", host)
        self.cookies = CookieJar()
        self.manager = manager or ConnectionManager(
            host,
            use_tls=scheme == "https",
            proxy=proxy,
            notify=ui.print_notice,
        )

    @classmethod
    def from_target(cls, target: "Target", config: "HttpConsoleConfig") -> "Session":
        headers = Headers()
        if target.authorization:
            headers.set("Authorization", target.authorization)
        session = cls(
            scheme=target.scheme,
            host=target.host,
            options=config.console,
            path=target.path,
            headers=headers,
            proxy=config.network.proxy,
        )
        if config.console.json:
            session.headers.set("Accept", "*/*")
            session.headers.set("Content-Type", "application/json")
        return session

    # ── Lifecycle ────────────────────────────────────────────────────────

    def open(self) -> None:
        """Dial the target; a :class:`ConnectError` here is fatal."""
        self.manager.connect()

    def close(self) -> None:
        self.manager.close()

    @property
    def prompt(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}: "

    def url_for(self, path: str) -> str:
        return f"{self.scheme}://{self.host}{path}"

    # ── Request Executor ─────────────────────────────────────────────────

    def perform(self, method: str, url: str, body: str = "") -> None:
        """Send one request and render the response.

        Raises :class:`FatalError` when the exchange can't be completed.
        """
        request = Request(method=method, url=url, headers=self.headers, body=body.encode("utf-8"))
        if self.options.verbose:
            ui.print_wire_request(request.to_wire(absolute_form=self.manager.absolute_form))

        connection, response = self._exchange(request)

        if request.body:
            ui.print_blank()
        ui.print_status(response.version, response.status, response.reason)
        ui.print_headers(response.headers.items())

        if self.options.cookies:
            self.cookies.remember(response.headers.get_all("Set-Cookie") or [])

        try:
            data = connection.read_body(response, method)
        except (OSError, ProtocolError) as e:
            raise FatalError(f"could not read response: {e}") from e
        ui.print_body(data.decode("utf-8", errors="replace"))

        if response.will_close:
            # the peer is done with this connection; replace it quietly
            logger.info(f"{self.host} closed the connection after {method} {request.target}")
            self.manager.reconnect()

    def _exchange(self, request: Request) -> Tuple[ClientConnection, Response]:
        """Write then read, reconnecting and resending at most ``MAX_RETRIES`` times."""
        retries = 0
        while True:
            connection = self.manager.connection or self.manager.connect()
            try:
                try:
                    connection.write(request)
                except OSError as e:
                    raise FatalError(f"could not send request: {e}") from e
                try:
                    return connection, connection.read(request.method)
                except (ProtocolError, OSError) as e:
                    raise FatalError(f"could not read response: {e}") from e
            except ConnectionLost as e:
                if retries >= MAX_RETRIES:
                    raise FatalError(f"could not send request: {e}") from e
                retries += 1
                logger.info(f"Connection lost ({e.reason.value}: {e}), "
                            f"reconnecting ({retries}/{MAX_RETRIES})")
                self.manager.reconnect()
