"""
httpconsole CLI
===============
Command-line entry point: parses the target and flags, opens the session's
connection and runs the interactive REPL.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click
from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory

from httpconsole import __version__, ui
from httpconsole.config import (
    CONFIG_FILE,
    HISTORY_FILE,
    LOG_FILE,
    ensure_dirs,
    load_config,
    parse_target,
    save_config,
)
from httpconsole.core.commands import Dispatcher
from httpconsole.core.errors import HttpConsoleError
from httpconsole.core.session import Session

load_dotenv()

logger = logging.getLogger(__name__)


# ── Line Reader ──────────────────────────────────────────────────────────────

class PromptReader:
    """prompt_toolkit line reader with persistent history.

    Every accepted line, including POST/PUT body lines, lands in history.
    """

    def __init__(self) -> None:
        try:
            self._session: PromptSession = PromptSession(
                history=FileHistory(str(HISTORY_FILE)),
                auto_suggest=AutoSuggestFromHistory(),
            )
        except Exception:
            self._session = PromptSession()

    def read_line(self, prompt: str) -> str:
        return self._session.prompt(ui.styled_prompt(prompt))


# ── Interactive REPL ─────────────────────────────────────────────────────────

def _interactive_repl(session: Session, reader: Optional[PromptReader] = None) -> None:
    """Read, dispatch, repeat until ``.q`` or end of input."""
    reader = reader or PromptReader()
    dispatcher = Dispatcher(session, reader)

    while True:
        try:
            line = reader.read_line(session.prompt).strip()
        except KeyboardInterrupt:
            continue
        except EOFError:
            ui.print_blank()
            break
        if not line:
            continue
        if dispatcher.dispatch(line):
            break


def _setup_logging(debug: bool) -> None:
    """Send log records to the log file; the terminal belongs to the REPL."""
    ensure_dirs()
    logging.basicConfig(
        filename=str(LOG_FILE),
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Main CLI ─────────────────────────────────────────────────────────────────

@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("target", required=False)
@click.option("--colors/--no-colors", default=None, help="Colorful output")
@click.option("--ssl/--no-ssl", "use_ssl", default=None, help="Use SSL")
@click.option("--json/--no-json", "use_json", default=None, help="Send JSON Accept/Content-Type headers")
@click.option("--cookies/--no-cookies", default=None, help="Remember cookies")
@click.option("--verbose", "-v", is_flag=True, help="Print each request in wire format before sending")
@click.option("--proxy", default=None, help="HTTP proxy URL (overrides HTTP_PROXY)")
@click.option("--debug", is_flag=True, help="Write debug logs to the log file")
@click.option("--save-config", "save", is_flag=True, help="Save these options as the defaults")
@click.version_option(__version__, prog_name="httpconsole")
def main(target, colors, use_ssl, use_json, cookies, verbose, proxy, debug, save):
    """httpconsole: speak HTTP like a local

    TARGET is a URL or host[:port] (default localhost:80).
    """
    config = load_config()

    # Apply CLI overrides
    if colors is not None:
        config.console.colors = colors
    if use_ssl is not None:
        config.console.ssl = use_ssl
    if use_json is not None:
        config.console.json = use_json
    if cookies is not None:
        config.console.cookies = cookies
    if verbose:
        config.console.verbose = True
    if proxy is not None:
        config.network.proxy = proxy

    _setup_logging(debug)
    ui.configure(colors=config.console.colors)

    if save:
        save_config(config)
        ui.print_success(f"Defaults saved to {CONFIG_FILE}")

    try:
        parsed = parse_target(target, ssl=config.console.ssl)
    except HttpConsoleError as e:
        ui.print_error(str(e))
        sys.exit(1)
    config.console.ssl = parsed.use_tls

    session = Session.from_target(parsed, config)
    logger.info(f"Starting console for {session.url_for(session.path)}")
    try:
        session.open()
        _interactive_repl(session)
    except HttpConsoleError as e:
        logger.error(f"Fatal: {e}")
        ui.print_error(str(e))
        sys.exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    main()
