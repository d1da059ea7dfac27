"""
=================
Trigger Scheduler
=================

Decides when a drag starts:
  - startup: after a fixed delay, from the configured start
  - draw chord: cancel whatever is running, wait, then start from the pointer
  - terminate chord: stop everything

Signals arrive from keyboard threads through EventLoop.call_soon_threadsafe,
so every method here runs on the loop thread.
"""
from __future__ import annotations
from typing import Callable, Optional
import logging

from trendline_drawer.system.config import TriggerConfig
from trendline_drawer.system.drivers.keyboard import Signal
from trendline_drawer.system.drivers.pointer import PointerReadError

from .drag_controller import DragController
from .event_loop import EventLoop, TimerHandle


class TriggerScheduler:

    def __init__(
        self,
        controller: DragController,
        loop: EventLoop,
        config: Optional[TriggerConfig] = None,
        on_terminate: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.controller = controller
        self.loop = loop
        self.config = config or TriggerConfig()
        self.on_terminate = on_terminate
        self.log = logger or logging.getLogger("trendline_drawer.scheduler")
        self._startup: Optional[TimerHandle] = None
        self._scheduled: Optional[TimerHandle] = None
        self.terminated = False

    @property
    def draw_pending(self) -> bool:
        return self._scheduled is not None and self._scheduled.pending

    # ---- Triggers ----
    def arm_startup(self) -> TimerHandle:
        delay = self.config.startup_delay_ms
        self.log.info(f"Starting in {delay / 1000:g} seconds. Please navigate to the chart...")
        self._startup = self.loop.call_later(delay, self._start_fixed)
        return self._startup

    def schedule_draw(self) -> TimerHandle:
        """Cancel any active drag, then arm a draw from the pointer position."""
        if self.controller.is_running:
            self.controller.cancel()
        self.controller.cancel_restart()
        self._cancel(self._scheduled)

        delay = self.config.chord_delay_ms
        self.log.info(f"Drawing scheduled to start in {delay / 1000:g} seconds...")
        self._scheduled = self.loop.call_later(delay, self._start_from_pointer)
        return self._scheduled

    def handle_signal(self, signal: Signal) -> None:
        if self.terminated:
            return
        if signal is Signal.TERMINATE:
            self.log.info("Terminate chord detected. Terminating...")
            self.terminate()
        elif signal is Signal.SCHEDULE_DRAW:
            self.log.info("Draw chord detected.")
            self.schedule_draw()
        else:
            self.log.warning(f"Ignoring unknown signal: {signal!r}")

    def terminate(self) -> None:
        """Cancel pending triggers, stop the controller and the loop. Idempotent."""
        if self.terminated:
            return
        self.terminated = True
        self._cancel(self._startup)
        self._cancel(self._scheduled)
        self.controller.shutdown()
        self.loop.stop()
        if self.on_terminate is not None:
            self.on_terminate()

    # ---- Callbacks ----
    def _start_fixed(self) -> None:
        self._startup = None
        if self.controller.is_running:
            self.log.info("Drag already running; skipping startup draw")
            return
        self.controller.start_drag()

    def _start_from_pointer(self) -> None:
        self._scheduled = None
        try:
            x, y = self.controller.pointer.get_position()
        except PointerReadError as e:
            self.log.warning(f"Cannot read pointer position, using configured start: {e}")
            x, y = None, None
        if self.controller.is_running:
            self.controller.cancel()
        self.controller.cancel_restart()
        if x is None:
            self.controller.start_drag()
        else:
            self.log.info(f"Starting scheduled drawing from position: {x}, {y}")
            self.controller.start_drag(x, y)

    @staticmethod
    def _cancel(handle: Optional[TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()
