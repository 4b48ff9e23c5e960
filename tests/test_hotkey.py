from __future__ import annotations

import pytest

import hotkey as hotkey_mod
from hotkey import ToggleHotkeyAdapter


class _Key:
    def __init__(self, name: str) -> None:
        self.name = name

    def __str__(self) -> str:
        return self.name


ALT_R = _Key("Key.alt_r")
OTHER = _Key("Key.shift")


def _adapter(debounce_s: float = 0.0) -> tuple[ToggleHotkeyAdapter, list[int]]:
    toggles: list[int] = []
    adapter = ToggleHotkeyAdapter(hotkey_name="Key.alt_r", debounce_s=debounce_s)
    adapter._on_toggle = lambda: toggles.append(1)
    return adapter, toggles


def test_press_toggles_once_while_held() -> None:
    adapter, toggles = _adapter()

    adapter._on_press(ALT_R)
    adapter._on_press(ALT_R)
    adapter._on_press(ALT_R)
    assert len(toggles) == 1

    adapter._on_release(ALT_R)
    adapter._on_press(ALT_R)
    assert len(toggles) == 2


def test_other_keys_are_ignored() -> None:
    adapter, toggles = _adapter()

    adapter._on_press(OTHER)
    adapter._on_release(OTHER)
    assert toggles == []


def test_bounce_inside_debounce_window_is_ignored() -> None:
    adapter, toggles = _adapter(debounce_s=60.0)

    adapter._on_press(ALT_R)
    adapter._on_release(ALT_R)
    adapter._on_press(ALT_R)
    assert len(toggles) == 1


def test_start_without_pynput_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(hotkey_mod, "keyboard", None)

    with pytest.raises(RuntimeError, match="pynput"):
        ToggleHotkeyAdapter().start(on_toggle=lambda: None)
