"""Ordered, case-insensitive header multi-map for the session's request headers."""

from __future__ import annotations

from typing import List, Optional, Tuple


def canonical_name(name: str) -> str:
    """``content-TYPE`` → ``Content-Type``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.strip().split("-"))


class Headers:
    """Request headers that persist across REPL turns.

    Names are matched case-insensitively and stored in canonical form.
    ``set`` replaces every value for a name, ``add`` appends another one.
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        self._items: List[Tuple[str, str]] = []
        for name, value in items or []:
            self.add(name, value)

    def set(self, name: str, value: str) -> None:
        key = canonical_name(name)
        replaced = False
        kept: List[Tuple[str, str]] = []
        for k, v in self._items:
            if k.lower() == key.lower():
                if not replaced:
                    kept.append((key, value))
                    replaced = True
                continue
            kept.append((k, v))
        if not replaced:
            kept.append((key, value))
        self._items = kept

    def add(self, name: str, value: str) -> None:
        self._items.append((canonical_name(name), value))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        key = name.lower()
        for k, v in self._items:
            if k.lower() == key:
                return v
        return default

    def items(self) -> List[Tuple[str, str]]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"
