"""
=================
Drag Controller
=================

Draws the trendline: press, drag slowly along a horizontal path, release.

While a drag runs the pointer is sampled every monitor period. A jump larger
than the threshold on either axis means the user grabbed the mouse: the drag
is cancelled (button released) and a new drag is scheduled from where the
pointer was seen, after a cooldown.

State machine per drag:
    Idle -> Running            start_drag
    Running -> Idle            reached the end, button released
    Running -> Cancelled       interference / external cancel, button released
    Cancelled -> Running       scheduled restart (if any)

Restarts are not bounded unless MonitorConfig.max_restarts is set, so a user
who keeps moving the mouse keeps pushing the restart back.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple
import logging

from trendline_drawer.system.config import DragConfig, DragPath, MonitorConfig
from trendline_drawer.system.drivers.pointer import PointerError, PointerFailSafeError, PointerReadError
from trendline_drawer.system.errors import DragInProgressError

from .event_loop import EventLoop, Task, TimerHandle

Position = Tuple[int, int]


class DragState:
    """Mutable state shared by the traversal and the monitor tick."""

    def __init__(self):
        self.running = False
        self.last_position: Optional[Position] = None
        self.button_held = False

    def reset(self, running: bool, last_position: Optional[Position]) -> None:
        # running and last_position always change together
        self.running = running
        self.last_position = last_position


@dataclass
class DragRun:
    """Cancellation token for one drag"""
    path: DragPath
    resumed: bool
    cancelled: bool = False


class DragController:
    """
    Owns the drag routine, the interference monitor and the restart timer.

    Usage:
        loop = EventLoop()
        controller = DragController(pointer, loop)
        controller.start_monitoring()
        controller.start_drag()          # fixed start from DragConfig
        loop.run_forever()
    """

    def __init__(
        self,
        pointer,
        loop: EventLoop,
        drag_config: Optional[DragConfig] = None,
        monitor_config: Optional[MonitorConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.pointer = pointer
        self.loop = loop
        self.config = drag_config or DragConfig()
        self.monitor_config = monitor_config or MonitorConfig()
        self.log = logger or logging.getLogger("trendline_drawer.controller")
        self.state = DragState()
        self.restart_count = 0
        self._run: Optional[DragRun] = None
        self._task: Optional[Task] = None
        self._monitor: Optional[Task] = None
        self._restart: Optional[TimerHandle] = None

    @property
    def is_running(self) -> bool:
        return self.state.running

    @property
    def restart_pending(self) -> bool:
        return self._restart is not None and self._restart.pending

    @property
    def current_run(self) -> Optional[DragRun]:
        return self._run

    # ---- Drag ----
    def start_drag(self, start_x: Optional[float] = None, start_y: Optional[float] = None) -> DragRun:
        """
        Start a drag.

        Args:
            start_x: resume from this x without moving there first;
                     None uses the configured fixed start
            start_y: y for a resumed drag; None uses the pointer's current y

        Raises:
            DragInProgressError if a drag is already running
        """
        if self.state.running:
            raise DragInProgressError("A drag is already running; cancel it first")

        if start_x is None:
            path = self.config.default_path()
            resumed = False
        else:
            if start_y is None:
                start_y = self._read_position((start_x, self.config.y))[1]
            path = self.config.resumed_path(start_x, start_y)
            resumed = True

        self.log.info(
            f"Starting horizontal line drawing: x {path.start_x:g} -> {path.end_x:g} at y={path.y:g} "
            f"({path.step_count} steps, {path.delay_per_step_ms:.2f} ms/step)"
        )
        run = DragRun(path=path, resumed=resumed)
        self._run = run
        self.restart_count = 0
        self.state.reset(running=True, last_position=None)
        self._task = self.loop.spawn(self._drag_steps(run), name="drag")
        return run

    def _drag_steps(self, run: DragRun) -> Iterator[float]:
        cfg = self.config
        path = run.path
        try:
            if not run.resumed:
                self.pointer.move_to(path.start_x, path.y)
                yield cfg.settle_ms
                if run.cancelled:
                    return

            # Double click so the chart has focus
            self.pointer.click()
            yield cfg.click_gap_ms
            if run.cancelled:
                return
            self.pointer.click()
            yield cfg.focus_settle_ms
            if run.cancelled:
                return

            self.pointer.button_down()
            self.state.button_held = True
            self.state.reset(running=True, last_position=self._read_position(None))

            for x in path.positions():
                if run.cancelled or not self.state.running:
                    return
                self.pointer.move_to(x, path.y)
                yield path.delay_per_step_ms
        except PointerFailSafeError:
            raise
        except PointerError as e:
            self.log.error(f"Pointer error during drag: {e}")
            if not run.cancelled:
                self.cancel()
            return

        if run.cancelled or not self.state.running:
            return
        self._release_button()
        self.state.reset(running=False, last_position=None)
        self.log.info("Horizontal line drawing completed.")

    def cancel(self) -> None:
        """Stop the current drag and release the button. Safe to call repeatedly."""
        was_running = self.state.running
        if self._run is not None:
            self._run.cancelled = True
        self.state.running = False
        self._release_button()
        if was_running:
            self.log.info("Drawing interrupted.")

    def _release_button(self) -> None:
        # button_held stays set until the release succeeds so shutdown retries it
        if not self.state.button_held:
            return
        try:
            self.pointer.button_up()
        except PointerFailSafeError:
            raise
        except PointerError as e:
            self.log.warning(f"Failed to release mouse button: {e}")
            return
        self.state.button_held = False

    # ---- Monitor ----
    def start_monitoring(self) -> None:
        self.stop_monitoring()
        self.state.last_position = None
        self._monitor = self.loop.call_every(self.monitor_config.period_ms, self.monitor_tick)

    def stop_monitoring(self) -> None:
        if self._monitor is not None:
            self._monitor.cancel()
            self._monitor = None

    @property
    def monitoring(self) -> bool:
        return self._monitor is not None

    def monitor_tick(self) -> bool:
        """
        Sample the pointer once.

        Returns:
            True if user interference was detected (drag cancelled)
        """
        if not self.state.running:
            return False
        try:
            current = tuple(self.pointer.get_position())
        except PointerReadError as e:
            self.log.debug(f"Skipping monitor tick: {e}")
            return False

        previous = self.state.last_position
        self.state.last_position = current
        if previous is None:
            return False

        dx = abs(current[0] - previous[0])
        dy = abs(current[1] - previous[1])
        threshold = self.monitor_config.threshold
        if dx <= threshold and dy <= threshold:
            return False

        self.log.info(f"User movement detected: dx={dx} dy={dy}")
        self.cancel()
        self._schedule_restart(current)
        return True

    # ---- Restart ----
    def _schedule_restart(self, position: Position) -> None:
        self.cancel_restart()
        limit = self.monitor_config.max_restarts
        if limit is not None and self.restart_count >= limit:
            self.log.warning(f"Restart limit ({limit}) reached; not restarting")
            return
        delay = self.monitor_config.restart_delay_ms
        self.log.info(f"Drawing interrupted. Will restart in {delay / 1000:g} seconds...")
        self._restart = self.loop.call_later(delay, self._restart_from, position)

    def _restart_from(self, position: Position) -> None:
        self._restart = None
        if self.state.running:
            self.log.info("Drag already running; skipping scheduled restart")
            return
        count = self.restart_count + 1
        self.log.info(f"Restarting drawing process from position: {position[0]}, {position[1]}")
        self.start_drag(position[0], position[1])
        self.restart_count = count

    def cancel_restart(self) -> None:
        if self._restart is not None:
            self._restart.cancel()
            self._restart = None

    # ---- Lifecycle ----
    def shutdown(self) -> None:
        """Cancel the drag, drop any pending restart and stop sampling."""
        try:
            self.cancel()
        except PointerFailSafeError as e:
            self.log.error(f"Mouse button may still be held: {e}")
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.cancel_restart()
        self.stop_monitoring()

    def _read_position(self, default):
        try:
            return tuple(self.pointer.get_position())
        except PointerReadError as e:
            self.log.debug(f"Pointer position unavailable: {e}")
            return default
