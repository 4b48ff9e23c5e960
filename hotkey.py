"""Global push-to-toggle hotkey based on pynput."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

DEBOUNCE_S = 0.35


class ToggleHotkeyAdapter:
    """Calls ``on_toggle`` once per key press, ignoring auto-repeat and bounces."""

    def __init__(self, hotkey_name: str = "Key.alt_r", debounce_s: float = DEBOUNCE_S) -> None:
        self._hotkey_name = hotkey_name
        self._debounce_s = debounce_s
        self._listener: Optional[object] = None
        self._held = False
        self._last_toggle = float("-inf")
        self._lock = threading.Lock()
        self._on_toggle: Optional[Callable[[], None]] = None

    def start(self, on_toggle: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._on_toggle = on_toggle
        self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
        self._listener.start()

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

    def _on_press(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            if self._held:
                return
            self._held = True
            now = time.monotonic()
            if now - self._last_toggle < self._debounce_s:
                return
            self._last_toggle = now
            on_toggle = self._on_toggle
        if on_toggle is not None:
            on_toggle()

    def _on_release(self, key: object) -> None:
        if str(key) != self._hotkey_name:
            return
        with self._lock:
            self._held = False
