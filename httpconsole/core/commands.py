"""
httpconsole Command Language
============================
One REPL line is exactly one command. Lines are classified by an ordered
grammar; the first rule that matches wins:

  1. navigate    /users, /1/, ..
  2. set header  Accept: application/json
  3. invoke      GET, POST /users, DELETE 1  (any upper-case verb)
  4. meta        .headers .cookies .verbose .options .help .exit
  5. unknown     reported, otherwise ignored
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Pattern, Protocol, Tuple

from httpconsole import ui

if TYPE_CHECKING:
    from httpconsole.core.session import Session

logger = logging.getLogger(__name__)

BODY_PROMPT = "...: "
BODY_METHODS = ("POST", "PUT")


class LineReader(Protocol):
    def read_line(self, prompt: str) -> str:
        """Return one line of input; raise ``EOFError`` at end of input."""


class CommandKind(str, Enum):
    NAVIGATE = "navigate"
    SET_HEADER = "set_header"
    INVOKE = "invoke"
    META = "meta"
    UNKNOWN = "unknown"


class MetaCommand(str, Enum):
    HEADERS = "headers"
    COOKIES = "cookies"
    VERBOSE = "verbose"
    OPTIONS = "options"
    HELP = "help"
    QUIT = "quit"


META_COMMANDS: Dict[str, MetaCommand] = {
    ".h": MetaCommand.HEADERS,
    ".headers": MetaCommand.HEADERS,
    ".c": MetaCommand.COOKIES,
    ".cookies": MetaCommand.COOKIES,
    ".v": MetaCommand.VERBOSE,
    ".verbose": MetaCommand.VERBOSE,
    ".o": MetaCommand.OPTIONS,
    ".options": MetaCommand.OPTIONS,
    ".?": MetaCommand.HELP,
    ".help": MetaCommand.HELP,
    ".q": MetaCommand.QUIT,
    ".exit": MetaCommand.QUIT,
}

# Order matters: it is the dispatch contract.
COMMAND_GRAMMAR: List[Tuple[CommandKind, Pattern[str]]] = [
    (CommandKind.NAVIGATE, re.compile(r"^(/.*|\.\.)$")),
    (CommandKind.SET_HEADER, re.compile(r"^([a-zA-Z][a-zA-Z0-9\-]+):(.*)$")),
    (CommandKind.INVOKE, re.compile(r"^([A-Z]+)(.*)$")),
    (CommandKind.META, re.compile("^(" + "|".join(re.escape(k) for k in META_COMMANDS) + ")$")),
]


@dataclass
class Command:
    """A classified REPL line."""
    kind: CommandKind
    line: str
    name: str = ""       # header name or method
    argument: str = ""   # header value or path fragment
    meta: Optional[MetaCommand] = None


def parse_command(line: str) -> Command:
    """Classify one trimmed input line."""
    for kind, pattern in COMMAND_GRAMMAR:
        match = pattern.match(line)
        if not match:
            continue
        if kind is CommandKind.NAVIGATE:
            return Command(kind, line, argument=line)
        if kind is CommandKind.META:
            return Command(kind, line, meta=META_COMMANDS[line])
        return Command(kind, line, name=match.group(1), argument=match.group(2).strip())
    return Command(CommandKind.UNKNOWN, line)


def resolve_path(current: str, fragment: str, trailing_slash: Optional[bool] = None) -> str:
    """Append ``fragment`` to ``current`` and normalize lexically.

    The result is always absolute with no ``.``/``..`` segments or repeated
    slashes. A query string is carried over untouched. The trailing slash
    follows the fragment unless ``trailing_slash`` says otherwise.
    """
    base, base_sep, base_query = current.partition("?")
    path, sep, query = fragment.partition("?")
    if not fragment:
        sep, query = base_sep, base_query
    if trailing_slash is None:
        trailing_slash = path.endswith("/")
    joined = posixpath.normpath(f"{base}/{path}")
    if joined.startswith("//"):
        joined = "/" + joined.lstrip("/")
    if trailing_slash and not joined.endswith("/"):
        joined += "/"
    return joined + sep + query


# ── Dispatcher ───────────────────────────────────────────────────────────────

class Dispatcher:
    """Applies one command to a :class:`Session`. ``dispatch`` returns True to quit."""

    def __init__(self, session: "Session", reader: "LineReader"):
        self.session = session
        self.reader = reader
        self._handlers: Dict[CommandKind, Callable[[Command], bool]] = {
            CommandKind.NAVIGATE: self._navigate,
            CommandKind.SET_HEADER: self._set_header,
            CommandKind.INVOKE: self._invoke,
            CommandKind.META: self._meta,
            CommandKind.UNKNOWN: self._unknown,
        }
        self._meta_handlers: Dict[MetaCommand, Callable[[], bool]] = {
            MetaCommand.HEADERS: lambda: (ui.print_pairs(self.session.headers.items()), False)[1],
            MetaCommand.COOKIES: lambda: (ui.print_pairs(self.session.cookies.flattened()), False)[1],
            MetaCommand.VERBOSE: self._toggle_verbose,
            MetaCommand.OPTIONS: lambda: (ui.print_info(self.session.options.describe()), False)[1],
            MetaCommand.HELP: lambda: (ui.show_help(), False)[1],
            MetaCommand.QUIT: lambda: True,
        }

    def dispatch(self, line: str) -> bool:
        command = parse_command(line.strip())
        logger.debug(f"{command.kind.value}: {command.line!r}")
        return self._handlers[command.kind](command)

    def _navigate(self, command: Command) -> bool:
        line = command.argument
        if line in ("/", "//"):
            self.session.path = "/"
        else:
            self.session.path = resolve_path(self.session.path, line)
        return False

    def _set_header(self, command: Command) -> bool:
        if command.argument:
            self.session.headers.set(command.name, command.argument)
        return False

    def _invoke(self, command: Command) -> bool:
        method, fragment = command.name, command.argument
        current = self.session.path
        if fragment:
            path = resolve_path(current, fragment)
        else:
            path = resolve_path(current, "", trailing_slash=len(current) > 1 and current.endswith("/"))

        body = ""
        if method in BODY_METHODS:
            try:
                body = self.reader.read_line(BODY_PROMPT)
            except EOFError:
                body = ""
            if not body:
                logger.debug(f"{method} aborted: empty body")
                return False

        self.session.perform(method, self.session.url_for(path), body)
        return False

    def _meta(self, command: Command) -> bool:
        return self._meta_handlers[command.meta]()

    def _toggle_verbose(self) -> bool:
        options = self.session.options
        options.verbose = not options.verbose
        ui.print_info(f"verbose={options.verbose}")
        return False

    def _unknown(self, command: Command) -> bool:
        ui.print_warning(f"unknown command: {command.line}")
        return False
