"""Light/dark theme state shared by everything that renders a page."""

from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from enum import Enum

logger = logging.getLogger("uvicorn.error")

THEME_STORAGE_KEY = "theme"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"

    @property
    def opposite(self) -> Theme:
        return Theme.LIGHT if self is Theme.DARK else Theme.DARK

    @classmethod
    def parse(cls, raw: str | None) -> Theme | None:
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return None


def get_initial_theme(saved: str | None, prefers_dark: bool = False) -> Theme:
    """Resolve the starting theme: saved preference, then OS signal, then light."""
    parsed = Theme.parse(saved)
    if parsed is not None:
        return parsed
    return Theme.DARK if prefers_dark else Theme.LIGHT


def prefers_dark_from_hint(header_value: str | None) -> bool:
    """Interpret the ``Sec-CH-Prefers-Color-Scheme`` client hint."""
    return (header_value or "").strip().strip('"').lower() == Theme.DARK.value


class ThemeStore:
    """Single-writer theme state with subscribers.

    ``storage`` persists the preference (any mutable mapping: a dict, a
    cookie jar adapter, ...). ``apply`` marks the document root and runs
    synchronously with every change, before persistence.
    """

    def __init__(
        self,
        storage: MutableMapping[str, str],
        apply: Callable[[Theme], None] | None = None,
    ) -> None:
        self._storage = storage
        self._apply = apply
        self._subscribers: list[Callable[[Theme], None]] = []
        self._theme = Theme.LIGHT

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def is_dark(self) -> bool:
        return self._theme is Theme.DARK

    def initialize(self, prefers_dark: bool = False) -> Theme:
        self._theme = get_initial_theme(
            self._storage.get(THEME_STORAGE_KEY), prefers_dark
        )
        if self._apply is not None:
            self._apply(self._theme)
        return self._theme

    def subscribe(self, callback: Callable[[Theme], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def toggle(self) -> Theme:
        """Flip the theme, apply it, notify subscribers, then persist it."""
        new_theme = self._theme.opposite
        self._theme = new_theme
        if self._apply is not None:
            self._apply(new_theme)
        for callback in list(self._subscribers):
            callback(new_theme)
        self._persist(new_theme)
        return new_theme

    def _persist(self, theme: Theme) -> None:
        try:
            self._storage[THEME_STORAGE_KEY] = theme.value
        except Exception:
            logger.warning("Unable to persist theme preference %s", theme.value)
