"""Exceptions raised by the console core."""

from __future__ import annotations

from enum import Enum


class LossReason(str, Enum):
    """Connection-loss conditions that one reconnect-and-resend recovers from."""
    PEER_CLOSED = "peer_closed"   # peer closed the socket between exchanges
    PERSIST_EOF = "persist_eof"   # peer announced the last exchange was final


class HttpConsoleError(Exception):
    """Base class for errors reported as ``httpconsole: <cause>``."""


class TargetError(HttpConsoleError):
    """The command-line target could not be turned into a host."""


class ConnectError(HttpConsoleError):
    """Dial, TLS handshake, hostname verification or proxy tunnel failed."""


class ProtocolError(HttpConsoleError):
    """The peer sent something that is not an HTTP/1.x response."""


class ConnectionLost(HttpConsoleError):
    def __init__(self, reason: LossReason, cause: str = ""):
        self.reason = reason
        self.cause = cause
        super().__init__(cause or reason.value)


class FatalError(HttpConsoleError):
    """A request could not be completed; the console must exit."""
