from __future__ import annotations

import pytest

from openhaus.theme import (
    THEME_STORAGE_KEY,
    Theme,
    ThemeStore,
    get_initial_theme,
    prefers_dark_from_hint,
)


@pytest.mark.parametrize(
    ("saved", "prefers_dark", "expected"),
    [
        ("dark", False, Theme.DARK),
        ("light", True, Theme.LIGHT),
        (None, True, Theme.DARK),
        (None, False, Theme.LIGHT),
        ("purple", True, Theme.DARK),
        ("", False, Theme.LIGHT),
    ],
)
def test_get_initial_theme(saved, prefers_dark, expected):
    assert get_initial_theme(saved, prefers_dark) is expected


def test_client_hint_parsing():
    assert prefers_dark_from_hint("dark") is True
    assert prefers_dark_from_hint('"dark"') is True
    assert prefers_dark_from_hint("light") is False
    assert prefers_dark_from_hint(None) is False


def test_toggle_applies_before_persisting_and_notifies():
    calls = []

    class RecordingStorage(dict):
        def __setitem__(self, key, value):
            calls.append(("persist", value))
            super().__setitem__(key, value)

    storage = RecordingStorage()
    store = ThemeStore(storage, apply=lambda theme: calls.append(("apply", theme.value)))
    store.subscribe(lambda theme: calls.append(("notify", theme.value)))
    store.initialize(prefers_dark=False)
    calls.clear()

    assert store.toggle() is Theme.DARK
    assert calls == [("apply", "dark"), ("notify", "dark"), ("persist", "dark")]
    assert storage[THEME_STORAGE_KEY] == "dark"
    assert store.is_dark


def test_toggle_twice_returns_to_start():
    store = ThemeStore({THEME_STORAGE_KEY: "dark"})
    store.initialize()
    store.toggle()
    assert store.toggle() is Theme.DARK


def test_unsubscribe_stops_notifications():
    seen = []
    store = ThemeStore({})
    unsubscribe = store.subscribe(seen.append)
    store.toggle()
    unsubscribe()
    store.toggle()
    assert seen == [Theme.DARK]


def test_persistence_failure_is_not_surfaced():
    class BrokenStorage(dict):
        def __setitem__(self, key, value):
            raise OSError("quota exceeded")

    applied = []
    store = ThemeStore(BrokenStorage(), apply=applied.append)
    assert store.toggle() is Theme.DARK
    assert applied == [Theme.DARK]
    assert store.theme is Theme.DARK
