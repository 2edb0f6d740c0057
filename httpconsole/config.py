"""
httpconsole Configuration Management
====================================
Handles config loading, console option defaults, platform-specific paths,
and turning the command-line target into a connection target.
"""

from __future__ import annotations

import base64
import os
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlsplit

import yaml
from platformdirs import user_config_dir, user_data_dir

from httpconsole.core.errors import TargetError

APP_NAME = "httpconsole"

# ── paths ────────────────────────────────────────────────────────────────────

CONFIG_DIR = Path(user_config_dir(APP_NAME))
DATA_DIR = Path(user_data_dir(APP_NAME))
LOGS_DIR = DATA_DIR / "logs"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
HISTORY_FILE = DATA_DIR / "history"
LOG_FILE = LOGS_DIR / "httpconsole.log"


def ensure_dirs() -> None:
    """Create all required directories."""
    for d in (CONFIG_DIR, DATA_DIR, LOGS_DIR):
        d.mkdir(parents=True, exist_ok=True)


# ── default config ───────────────────────────────────────────────────────────

DEFAULT_CONFIG: Dict[str, Any] = {
    "console": {
        "colors": True,
        "ssl": False,
        "json": False,
        "cookies": False,
        "verbose": False,
    },
    "network": {
        "proxy": "",
    },
}

DEFAULT_HOST = "localhost"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class ConsoleOptions:
    """Behaviour switches for one console run.

    Built once at startup and shared by reference with the session; only
    ``verbose`` changes afterwards (via the ``.verbose`` meta-command).
    """
    colors: bool = True
    ssl: bool = False
    json: bool = False
    cookies: bool = False
    verbose: bool = False

    def describe(self) -> str:
        return (f"ssl={self.ssl}, cookies={self.cookies}, verbose={self.verbose}, "
                f"json={self.json}, colors={self.colors}")


@dataclass
class NetworkConfig:
    proxy: str = ""


@dataclass
class HttpConsoleConfig:
    console: ConsoleOptions = field(default_factory=ConsoleOptions)
    network: NetworkConfig = field(default_factory=NetworkConfig)


def load_config() -> HttpConsoleConfig:
    """Load configuration from disk, env vars, and defaults."""
    ensure_dirs()
    raw: Dict[str, Any] = {}

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            raw = yaml.safe_load(f) or {}

    # Merge with defaults
    merged = _deep_merge(DEFAULT_CONFIG, raw)

    # Env-var overrides
    for key in ("colors", "ssl", "json", "cookies", "verbose"):
        value = os.environ.get(f"HTTPCONSOLE_{key.upper()}")
        if value is not None and value != "":
            merged["console"][key] = value.strip().lower() in _TRUE_VALUES
    if os.environ.get("NO_COLOR"):
        merged["console"]["colors"] = False
    proxy = os.environ.get("HTTP_PROXY") or os.environ.get("http_proxy")
    if proxy:
        merged["network"]["proxy"] = proxy

    cfg = HttpConsoleConfig(
        console=ConsoleOptions(**merged.get("console", {})),
        network=NetworkConfig(**merged.get("network", {})),
    )
    return cfg


def save_config(cfg: HttpConsoleConfig) -> None:
    """Persist current configuration to disk."""
    ensure_dirs()
    data = {
        "console": {
            "colors": cfg.console.colors,
            "ssl": cfg.console.ssl,
            "json": cfg.console.json,
            "cookies": cfg.console.cookies,
            "verbose": cfg.console.verbose,
        },
        "network": {
            "proxy": cfg.network.proxy,
        },
    }
    with open(CONFIG_FILE, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base."""
    result = {}
    for k, v in base.items():
        result[k] = _deep_merge(v, {}) if isinstance(v, dict) else v
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ── target parsing ───────────────────────────────────────────────────────────

_BARE_HOST_RE = re.compile(r"^[^:]+(:[0-9]+)?$")
_HOST_PORT_RE = re.compile(r"^[^:]+:[0-9]+$")


@dataclass
class Target:
    """Where the console connects and what it starts with."""
    scheme: str
    host: str
    path: str = "/"
    authorization: Optional[str] = None

    @property
    def use_tls(self) -> bool:
        return self.scheme == "https"


def parse_target(arg: Optional[str], ssl: bool = False) -> Target:
    """Turn a URL or bare ``host[:port]`` into a :class:`Target`.

    Bare hosts are treated as ``http://``; a missing port defaults to 443
    when SSL is in use, else 80. Credentials in the URL become a Basic
    ``Authorization`` value.
    """
    if not arg:
        if ssl:
            return Target(scheme="https", host=f"{DEFAULT_HOST}:443")
        return Target(scheme="http", host=f"{DEFAULT_HOST}:80")

    raw = arg
    if _BARE_HOST_RE.match(raw):
        raw = "http://" + raw
    try:
        parts = urlsplit(raw)
    except ValueError as e:
        raise TargetError("malformed URL") from e

    userinfo, _, host = parts.netloc.rpartition("@")
    if not host:
        raise TargetError("invalid host name")

    if ssl or parts.scheme == "https":
        ssl = True
    if not _HOST_PORT_RE.match(host):
        host = host + (":443" if ssl else ":80")

    authorization = None
    if userinfo:
        token = base64.b64encode(unquote(userinfo).encode("utf-8")).decode("ascii")
        authorization = f"Basic {token}"

    path = posixpath.normpath(parts.path) if parts.path else "/"
    if path == ".":
        path = "/"
    if path.startswith("//"):
        path = "/" + path.lstrip("/")

    return Target(
        scheme="https" if ssl else (parts.scheme or "http"),
        host=host,
        path=path,
        authorization=authorization,
    )
