"""
httpconsole Cookie Store
========================
Parses raw ``Set-Cookie`` header values into :class:`Cookie` records and keeps
them in an append-only :class:`CookieJar`.

Cookies are remembered, not replayed: there is no expiry eviction and no
domain/path matching against outgoing requests.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

# One cookie: ``name=value`` then any number of ``; attr=value`` / ``; attr``
# segments, optionally closed by the comma of the legacy multi-cookie form.
# The comma inside ``expires=Wdy, DD-Mon-YYYY ...`` does not end a cookie.
_ATTRIBUTE = r";\s*(?:[Ee]xpires=[A-Za-z]{3,9},[^;,]*|[^;,]*)"
_COOKIE_RE = re.compile(r"\s*([^;,=\s][^;,=]*=[^;,]*(?:" + _ATTRIBUTE + r")*)\s*,?")

EXPIRES_FORMATS = (
    "%a, %d-%b-%Y %H:%M:%S %Z",
    "%a, %d-%b-%Y %H:%M:%S %z",
)


@dataclass
class Cookie:
    """A single parsed ``Set-Cookie`` entry."""
    items: Dict[str, str] = field(default_factory=dict)
    path: Optional[str] = None
    domain: Optional[str] = None
    expires: Optional[datetime] = None
    secure: bool = False
    http_only: bool = False


def parse_expires(value: str) -> Optional[datetime]:
    """Parse an ``expires`` value; ``None`` when no known format matches."""
    for fmt in EXPIRES_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    logger.debug(f"Unparsable cookie expiry: {value!r}")
    return None


def parse_set_cookie(raw: str) -> List[Cookie]:
    """Parse one raw ``Set-Cookie`` value into one cookie per embedded entry.

    Never raises: segments that don't fit are skipped.
    """
    cookies: List[Cookie] = []
    for match in _COOKIE_RE.finditer(raw or ""):
        cookie = Cookie()
        for segment in match.group(1).split(";"):
            key, sep, value = segment.partition("=")
            key = key.strip()
            value = value.strip()
            if not key:
                continue
            if key == "secure":
                cookie.secure = True
            elif key == "HttpOnly":
                cookie.http_only = True
            elif not sep:
                continue
            elif key == "domain":
                cookie.domain = value
            elif key == "path":
                cookie.path = value
            elif key == "expires":
                cookie.expires = parse_expires(value)
            else:
                cookie.items[key] = value
        cookies.append(cookie)
    return cookies


class CookieJar:
    """Append-only, ordered collection of every cookie the server has set."""

    def __init__(self) -> None:
        self._cookies: List[Cookie] = []

    def add(self, cookies: Iterable[Cookie]) -> None:
        self._cookies.extend(cookies)

    def remember(self, raw_values: Iterable[str]) -> int:
        """Parse each raw ``Set-Cookie`` value and append the results."""
        added = 0
        for raw in raw_values:
            parsed = parse_set_cookie(raw)
            self.add(parsed)
            added += len(parsed)
        if added:
            logger.debug(f"Remembered {added} cookie(s), jar size {len(self._cookies)}")
        return added

    def flattened(self) -> List[Tuple[str, str]]:
        """Every ``name, value`` pair of every cookie, in jar order."""
        return [(k, v) for cookie in self._cookies for k, v in cookie.items.items()]

    def __iter__(self) -> Iterator[Cookie]:
        return iter(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)
