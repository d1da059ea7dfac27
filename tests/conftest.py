"""
Shared fixtures: a recording fake pointer and a loop on virtual time.
"""
import pytest

from trendline_drawer.system.config import DragConfig, MonitorConfig
from trendline_drawer.system.core.drag_controller import DragController
from trendline_drawer.system.core.event_loop import EventLoop, ManualClock
from trendline_drawer.system.drivers.pointer import PointerReadError


class FakePointer:
    """Pointer backend that records every call with the virtual time."""

    def __init__(self, clock, position=(0, 0)):
        self.clock = clock
        self.position = tuple(position)
        self.calls = []
        self.fail_reads = 0

    def _record(self, name, *args):
        self.calls.append((self.clock.now_ms(), name) + args)

    def get_position(self):
        if self.fail_reads:
            self.fail_reads -= 1
            raise PointerReadError("simulated read failure")
        return self.position

    def move_to(self, x, y):
        self._record("move_to", x, y)
        self.position = (int(round(x)), int(round(y)))

    def click(self):
        self._record("click")

    def button_down(self):
        self._record("button_down")

    def button_up(self):
        self._record("button_up")

    # helpers
    def names(self):
        return [c[1] for c in self.calls]

    def count(self, name):
        return self.names().count(name)

    def times(self, name):
        return [c[0] for c in self.calls if c[1] == name]

    def user_moves_to(self, x, y):
        self.position = (x, y)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def loop(clock):
    return EventLoop(clock=clock)


@pytest.fixture
def pointer(clock):
    return FakePointer(clock)


@pytest.fixture
def short_drag():
    # 100 px in 50 steps of 2 px, 1 s in total
    return DragConfig(start_x=600, end_x=500, y=300, total_duration_ms=1000, step=2)


@pytest.fixture
def controller(pointer, loop, short_drag):
    return DragController(pointer, loop, drag_config=short_drag, monitor_config=MonitorConfig())
