"""
Line-based signal source for terminals without global keyboard hooks.

Commands (one per line, case-insensitive):
    q, quit, exit  -> TERMINATE
    d, draw        -> SCHEDULE_DRAW
"""
from __future__ import annotations
from typing import Optional, TextIO
import logging
import sys
import threading

from .signals import Emit, Signal, SignalSource

COMMANDS = {
    "q": Signal.TERMINATE,
    "quit": Signal.TERMINATE,
    "exit": Signal.TERMINATE,
    "d": Signal.SCHEDULE_DRAW,
    "draw": Signal.SCHEDULE_DRAW,
}


def parse_command(line: str) -> Optional[Signal]:
    return COMMANDS.get(line.strip().lower())


class StdinSignalSource(SignalSource):

    def __init__(self, stream: Optional[TextIO] = None, logger: Optional[logging.Logger] = None):
        self.log = logger or logging.getLogger("trendline_drawer.signals")
        self.stream = stream if stream is not None else sys.stdin
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, emit: Emit) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._read_loop, args=(emit,), name="stdin-signals", daemon=True)
        self._thread.start()
        self.log.info("Commands: 'd' + Enter schedules a draw, 'q' + Enter terminates")

    def stop(self) -> None:
        # readline cannot be interrupted; the daemon thread ends with the process
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _read_loop(self, emit: Emit) -> None:
        for line in self.stream:
            if self._stop.is_set():
                return
            signal = parse_command(line)
            if signal is None:
                if line.strip():
                    self.log.warning(f"Unknown command: {line.strip()!r}")
                continue
            emit(signal)
