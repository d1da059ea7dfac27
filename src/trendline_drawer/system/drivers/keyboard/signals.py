"""
=================
Keyboard Signals
=================

Discrete, payload-free commands produced by keyboard sources, plus the
key-state tracker that turns raw presses into chord signals.

LEGO pieces:
  - Signal: TERMINATE / SCHEDULE_DRAW
  - SignalSource: start(emit) / stop() interface
  - ChordMatcher: pressed-key set -> Signal, once per press, debounced
  - key_name: normalize listener key objects to chord names ('cmd', 'p', ...)
"""
from __future__ import annotations
from enum import Enum
from typing import Callable, Dict, Optional
import time

from trendline_drawer.system.config import parse_chord


class Signal(Enum):
    TERMINATE = "terminate"
    SCHEDULE_DRAW = "schedule_draw"


Emit = Callable[[Signal], None]


class SignalSource:
    """Produces Signals on its own thread and hands them to emit."""

    def start(self, emit: Emit) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        pass


class NullSignalSource(SignalSource):
    """No keyboard shortcuts"""

    def start(self, emit: Emit) -> None:
        pass


# Left/right variants collapse onto one chord name
_KEY_ALIASES = {
    "cmd_l": "cmd",
    "cmd_r": "cmd",
    "ctrl_l": "ctrl",
    "ctrl_r": "ctrl",
    "alt_l": "alt",
    "alt_r": "alt",
    "alt_gr": "alt",
    "shift_l": "shift",
    "shift_r": "shift",
    "escape": "esc",
}


def key_name(key) -> Optional[str]:
    """
    Chord name for a listener key object.

    Character keys map to their lower-case character; special keys to their
    enum name with left/right variants merged. Control characters produced
    while ctrl is held ('\\x10' for ctrl+p) map back to their letter.
    """
    char = getattr(key, "char", None)
    if char:
        if len(char) == 1 and 0 < ord(char) < 27:
            return chr(ord(char) + 96)
        return char.lower()
    name = getattr(key, "name", None)
    if name:
        return _KEY_ALIASES.get(name, name)
    return None


class ChordMatcher:
    """
    Tracks held keys and reports when a chord becomes fully held.

    A chord fires once per press (holding it does not repeat) and not again
    within debounce_ms of its last firing.
    """

    def __init__(
        self,
        chords: Dict[Signal, str],
        debounce_ms: float = 1000.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.chords = {signal: parse_chord(chord) for signal, chord in chords.items()}
        self.debounce_ms = debounce_ms
        self._clock = clock or (lambda: time.monotonic() * 1000.0)
        self._pressed = set()
        self._latched = set()
        self._last_fired: Dict[Signal, float] = {}

    @property
    def pressed(self) -> frozenset:
        return frozenset(self._pressed)

    def press(self, name: Optional[str]) -> Optional[Signal]:
        if not name:
            return None
        self._pressed.add(name)
        for signal, keys in self.chords.items():
            if signal in self._latched or not keys <= self._pressed:
                continue
            self._latched.add(signal)
            now = self._clock()
            last = self._last_fired.get(signal)
            if last is not None and now - last < self.debounce_ms:
                continue
            self._last_fired[signal] = now
            return signal
        return None

    def release(self, name: Optional[str]) -> None:
        if not name:
            return
        self._pressed.discard(name)
        for signal, keys in self.chords.items():
            if not keys <= self._pressed:
                self._latched.discard(signal)
