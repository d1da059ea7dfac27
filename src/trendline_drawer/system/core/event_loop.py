"""
=================
Cooperative Event Loop
=================

Single-threaded scheduler for timers, periodic callbacks and step-wise tasks,
built on the standard library `sched` module. All times are milliseconds.

The clock is injectable:
  - SystemClock: monotonic time, real sleeping (production)
  - ManualClock: sleeping just advances a counter (tests, dry runs)

Tasks are generators that yield how long to suspend before they resume:

    def blink():
        pointer.click()
        yield 100
        pointer.click()

    loop.spawn(blink())
    loop.run_for(1000)
"""
from __future__ import annotations
from typing import Callable, Iterator, Optional
import logging
import sched
import time


class SystemClock:
    """Wall clock in milliseconds"""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def sleep_ms(self, ms: float) -> None:
        if ms > 0:
            time.sleep(ms / 1000.0)


class ManualClock:
    """Virtual clock; sleeping advances time instantly"""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)

    def now_ms(self) -> float:
        return self._now

    def sleep_ms(self, ms: float) -> None:
        if ms > 0:
            self._now += ms

    def advance(self, ms: float) -> None:
        self.sleep_ms(ms)


class TimerHandle:
    """Cancellable one-shot callback"""

    def __init__(self, loop: "EventLoop", callback: Callable, args: tuple):
        self._loop = loop
        self._callback = callback
        self._args = args
        self._event: Optional[sched.Event] = None
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self.fired or self._event is None:
            return
        try:
            self._loop._sched.cancel(self._event)
        except ValueError:
            pass  # already popped by the scheduler

    def _run(self) -> None:
        if self.cancelled:
            return
        self.fired = True
        self._callback(*self._args)


class Task:
    """Generator driven by the loop; each yielded value is a delay in ms."""

    def __init__(self, loop: "EventLoop", steps: Iterator[float], name: str = ""):
        self._loop = loop
        self._steps = steps
        self._handle: Optional[TimerHandle] = None
        self.name = name
        self.cancelled = False
        self.done = False

    def cancel(self) -> None:
        """Stop the task; the generator is closed at its current yield."""
        if self.done or self.cancelled:
            return
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        try:
            self._steps.close()
        except ValueError:
            pass  # cancelled from inside its own step; _step stops rescheduling

    def _step(self) -> None:
        self._handle = None
        if self.cancelled:
            return
        try:
            delay = next(self._steps)
        except StopIteration:
            self.done = True
            return
        if self.cancelled:
            return
        self._handle = self._loop.call_later(delay or 0, self._step)


class EventLoop:
    """
    Cooperative loop over a `sched.scheduler`.

    Only call_soon_threadsafe may be used from other threads; everything
    else runs on the thread that drives run_forever / run_for.
    """

    def __init__(self, clock=None, idle_ms: float = 100.0, logger: Optional[logging.Logger] = None):
        self.clock = clock or SystemClock()
        self.idle_ms = idle_ms
        self.log = logger or logging.getLogger("trendline_drawer.loop")
        self._sched = sched.scheduler(self.clock.now_ms, self.clock.sleep_ms)
        self._stopped = False

    def now_ms(self) -> float:
        return self.clock.now_ms()

    # ---- Scheduling ----
    def call_later(self, delay_ms: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self, callback, args)
        handle._event = self._sched.enter(max(delay_ms, 0), 0, handle._run)
        return handle

    def call_soon_threadsafe(self, callback: Callable, *args) -> TimerHandle:
        # sched.scheduler guards its queue with a lock
        return self.call_later(0, callback, *args)

    def spawn(self, steps: Iterator[float], name: str = "") -> Task:
        """Start a generator task; its first segment runs immediately."""
        task = Task(self, steps, name=name)
        task._step()
        return task

    def call_every(self, period_ms: float, callback: Callable, *args) -> Task:
        """Run callback every period_ms, first time one period from now."""
        def repeat():
            while True:
                yield period_ms
                callback(*args)

        return self.spawn(repeat(), name=getattr(callback, "__name__", "periodic"))

    # ---- Running ----
    def stop(self) -> None:
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped

    def run_forever(self) -> None:
        """Run until stop() is called."""
        self._run(deadline=None)

    def run_for(self, duration_ms: float) -> None:
        """Run every callback due within duration_ms from now, or until stop()."""
        self._run(deadline=self.clock.now_ms() + duration_ms)

    def _run(self, deadline: Optional[float]) -> None:
        self._stopped = False
        while not self._stopped:
            next_in = self._sched.run(blocking=False)
            if self._stopped:
                break
            now = self.clock.now_ms()
            if deadline is not None and now >= deadline:
                break
            wait = self.idle_ms if next_in is None else next_in
            if deadline is not None:
                wait = min(wait, deadline - now)
            self.clock.sleep_ms(wait)

    def clear(self) -> None:
        """Drop every pending callback."""
        for event in list(self._sched.queue):
            try:
                self._sched.cancel(event)
            except ValueError:
                pass
