"""
httpconsole Core Module
"""

from httpconsole.core.commands import Command, CommandKind, Dispatcher, parse_command
from httpconsole.core.connection import ClientConnection, ConnectionManager
from httpconsole.core.cookies import Cookie, CookieJar, parse_set_cookie
from httpconsole.core.headers import Headers
from httpconsole.core.session import Session

__all__ = [
    "ClientConnection", "Command", "CommandKind", "ConnectionManager", "Cookie",
    "CookieJar", "Dispatcher", "Headers", "Session", "parse_command", "parse_set_cookie",
]
