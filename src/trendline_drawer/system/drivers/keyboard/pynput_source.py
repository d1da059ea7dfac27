"""
=================
pynput Signal Source
=================

Global keyboard hook. Runs pynput's listener thread and emits a Signal each
time a configured chord goes down.

macOS needs the terminal to be allowed under
System Settings > Privacy & Security > Accessibility (Input Monitoring).
"""
from __future__ import annotations
from typing import Optional
import logging

from .errors import SignalSourceError
from .signals import ChordMatcher, Emit, Signal, SignalSource, key_name

# Optional dep; without it (or without a display) use the stdin source
try:
    from pynput import keyboard
    _pynput_error: Optional[BaseException] = None
except Exception as e:
    keyboard = None
    _pynput_error = e


class PynputSignalSource(SignalSource):

    def __init__(
        self,
        terminate_chord: str = "esc",
        draw_chord: str = "cmd+p",
        debounce_ms: float = 1000.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.log = logger or logging.getLogger("trendline_drawer.signals")
        self.terminate_chord = terminate_chord
        self.draw_chord = draw_chord
        self.matcher = ChordMatcher(
            {Signal.TERMINATE: terminate_chord, Signal.SCHEDULE_DRAW: draw_chord},
            debounce_ms=debounce_ms,
        )
        self._emit: Optional[Emit] = None
        self._listener = None

    def start(self, emit: Emit) -> None:
        if keyboard is None:
            raise SignalSourceError(f"pynput unavailable: {_pynput_error}")
        self._emit = emit
        try:
            self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
            self._listener.start()
        except Exception as e:
            self._listener = None
            raise SignalSourceError(f"Failed to start keyboard listener: {e}") from e

        self.log.info("Keyboard shortcuts set up:")
        self.log.info(f"- {self.terminate_chord}: Terminate script")
        self.log.info(f"- {self.draw_chord}: Wait, then draw horizontal line from the pointer")

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    # Listener thread callbacks
    def _on_press(self, key) -> None:
        signal = self.matcher.press(key_name(key))
        if signal is not None and self._emit is not None:
            self.log.debug(f"Chord detected: {signal.value}")
            self._emit(signal)

    def _on_release(self, key) -> None:
        self.matcher.release(key_name(key))
