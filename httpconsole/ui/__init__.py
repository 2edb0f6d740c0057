"""
httpconsole Terminal UI
=======================
Rich terminal output for the console: colored status lines by status band,
bold header names, plain bodies, and a plain-text mode when colors are off.
"""

from __future__ import annotations

import platform
from typing import Iterable, List, Tuple, Union

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from httpconsole import __app_name__

# ── Theme ────────────────────────────────────────────────────────────────────

HTTPCONSOLE_THEME = Theme({
    "header": "bold",
    "status.2xx": "bold green",
    "status.3xx": "bold cyan",
    "status.4xx": "bold red",
    "status.5xx": "bold white on red",
    "status.other": "none",
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "dim": "dim white",
})

# Prompt styles for prompt_toolkit, which doesn't read rich themes.
PROMPT_STYLE = "ansibrightblack"


def _make_console(colors: bool, stderr: bool = False) -> Console:
    return Console(
        theme=HTTPCONSOLE_THEME,
        stderr=stderr,
        color_system="auto" if colors else None,
        highlight=False,
        soft_wrap=True,
        emoji=False,
    )


console = _make_console(colors=True)
err_console = _make_console(colors=True, stderr=True)
_colors = True


def configure(colors: bool = True) -> None:
    """Switch colored output on or off for every later print."""
    global console, err_console, _colors
    _colors = colors
    console = _make_console(colors)
    err_console = _make_console(colors, stderr=True)


# ── Status bands ─────────────────────────────────────────────────────────────

def status_style(status: int) -> str:
    """Theme style for a status code's display band."""
    if status >= 500:
        return "status.5xx"
    if status >= 400:
        return "status.4xx"
    if status >= 300:
        return "status.3xx"
    if status >= 200:
        return "status.2xx"
    return "status.other"


# ── Response output ──────────────────────────────────────────────────────────

def print_blank() -> None:
    console.print()


def print_status(version: str, status: int, reason: str) -> None:
    """``HTTP/1.1 200 OK`` in the band's color."""
    line = f"{version} {status} {reason}".rstrip()
    console.print(Text(line, style=status_style(status)))


def print_headers(headers: Iterable[Tuple[str, str]]) -> None:
    """One ``Name: value`` line per header, then a blank separator line."""
    printed = False
    for name, value in headers:
        console.print(Text.assemble((f"{name}: ", "header"), value))
        printed = True
    if printed:
        console.print()


def print_body(body: str) -> None:
    console.print(Text(body))


def print_pairs(pairs: Iterable[Tuple[str, str]]) -> None:
    """Plain ``key: value`` lines, used for ``.headers`` and ``.cookies``."""
    for key, value in pairs:
        console.print(Text(f"{key}: {value}"))


def print_wire_request(wire: bytes) -> None:
    """Echo a serialized request to diagnostic output (verbose mode)."""
    err_console.print(Text(wire.decode("utf-8", errors="replace")))


# ── Messages ─────────────────────────────────────────────────────────────────

def print_info(text: str) -> None:
    console.print(Text(text, style="info"))


def print_success(text: str) -> None:
    console.print(Text(text, style="success"))


def print_notice(text: str) -> None:
    """Progress notice on diagnostic output, e.g. while dialing."""
    err_console.print(Text(f"{__app_name__}: {text}", style="dim"))


def print_warning(text: str) -> None:
    err_console.print(Text(text, style="warning"))


def print_error(text: str) -> None:
    """Fatal diagnostic: ``httpconsole: <cause>``."""
    err_console.print(Text(f"{__app_name__}: {text}", style="error"))


# ── Prompt ───────────────────────────────────────────────────────────────────

def styled_prompt(text: str) -> Union[str, List[Tuple[str, str]]]:
    """Prompt text for prompt_toolkit, greyed out unless colors are off or on Windows."""
    if not _colors or platform.system() == "Windows":
        return text
    return [(PROMPT_STYLE, text)]


# ── Help ─────────────────────────────────────────────────────────────────────

HELP_TEXT = """\
/path, ..          navigate (relative to the current path)
Name: value        set a request header
GET [path]         send a request; any upper-case method works
POST/PUT [path]    send a request with a one-line body (empty line aborts)

.headers, .h       show active request headers
.options, .o       show options
.cookies, .c       show client cookies
.verbose, .v       toggle wire-format request logging
.help, .?          display this message
.exit, .q, ^D      exit console
"""


def show_help() -> None:
    """Display help information."""
    console.print(Text(HELP_TEXT))

