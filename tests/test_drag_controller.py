import pytest

from trendline_drawer.system.config import DragConfig, MonitorConfig
from trendline_drawer.system.core.drag_controller import DragController
from trendline_drawer.system.drivers.pointer import PointerError, PointerFailSafeError
from trendline_drawer.system.errors import DragInProgressError

from conftest import FakePointer

# short_drag timeline: move to start at 0, clicks at 500 and 600,
# button down at 1100, 50 moves every 20 ms, button up at 2100
BUTTON_DOWN_AT = 1100


def moves(pointer):
    return [c[2:] for c in pointer.calls if c[1] == "move_to"]


class RaisingPointer(FakePointer):

    def __init__(self, clock, exc, after_moves):
        super().__init__(clock)
        self.exc = exc
        self.after_moves = after_moves

    def move_to(self, x, y):
        if self.count("move_to") >= self.after_moves:
            raise self.exc
        super().move_to(x, y)


class TestTraversal:

    def test_full_drag_sequence(self, controller, pointer, loop):
        controller.start_drag()
        loop.run_for(5000)

        names = pointer.names()
        assert names[:4] == ["move_to", "click", "click", "button_down"]
        assert names[-1] == "button_up"
        assert pointer.count("move_to") == 1 + 50
        assert moves(pointer)[0] == (600, 300)
        assert moves(pointer)[-1] == (500, 300)
        assert pointer.times("button_down") == [BUTTON_DOWN_AT]
        assert pointer.times("button_up") == [pytest.approx(2100)]
        assert not controller.is_running
        assert not controller.state.button_held

    def test_focus_clicks_are_spaced(self, controller, pointer, loop):
        controller.start_drag()
        loop.run_for(5000)
        assert pointer.times("click") == [500, 600]

    def test_reference_scenario_timing(self, pointer, loop):
        cfg = DragConfig(start_x=1500, end_x=500, y=500, step=0.7, total_duration_ms=30000)
        controller = DragController(pointer, loop, drag_config=cfg)
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(40000)

        assert pointer.count("move_to") == 1 + 1429
        assert pointer.count("button_up") == 1
        elapsed = pointer.times("button_up")[0] - pointer.times("button_down")[0]
        assert elapsed == pytest.approx(30000, abs=cfg.delay_per_step_ms)

    def test_zero_distance_still_presses_and_releases(self, pointer, loop):
        cfg = DragConfig(start_x=500, end_x=500, y=500, total_duration_ms=1000)
        controller = DragController(pointer, loop, drag_config=cfg)
        controller.start_drag()
        loop.run_for(5000)

        assert pointer.count("move_to") == 1  # only the move to the start
        assert pointer.count("button_down") == 1
        assert pointer.count("button_up") == 1
        assert pointer.times("button_up") == pointer.times("button_down")
        assert not controller.is_running

    def test_resumed_drag_skips_move_to_start(self, controller, pointer, loop):
        pointer.user_moves_to(800, 420)
        controller.start_drag(800)
        loop.run_for(5000)

        assert pointer.names()[:3] == ["click", "click", "button_down"]
        assert moves(pointer)[0] == (798, 420)
        assert moves(pointer)[-1] == (700, 420)
        assert pointer.count("move_to") == 50

    def test_resumed_drag_with_explicit_y(self, controller, pointer, loop):
        controller.start_drag(560, 250)
        loop.run_for(5000)
        assert moves(pointer)[-1] == (460, 250)

    def test_start_while_running_raises(self, controller, loop):
        controller.start_drag()
        with pytest.raises(DragInProgressError):
            controller.start_drag()

    def test_pointer_error_cancels_drag(self, loop, clock, short_drag):
        pointer = RaisingPointer(clock, PointerError("backend hiccup"), after_moves=3)
        controller = DragController(pointer, loop, drag_config=short_drag)
        controller.start_drag()
        loop.run_for(5000)

        assert not controller.is_running
        assert pointer.count("button_up") == 1
        assert not controller.state.button_held

    def test_failsafe_propagates(self, loop, clock, short_drag):
        pointer = RaisingPointer(clock, PointerFailSafeError("corner"), after_moves=3)
        controller = DragController(pointer, loop, drag_config=short_drag)
        controller.start_drag()
        with pytest.raises(PointerFailSafeError):
            loop.run_for(5000)


class TestCancel:

    def test_cancel_mid_drag_releases_once(self, controller, pointer, loop):
        controller.start_drag()
        loop.run_for(BUTTON_DOWN_AT + 100)
        moved = pointer.count("move_to")

        controller.cancel()
        controller.cancel()
        loop.run_for(5000)

        assert pointer.count("button_up") == 1
        assert pointer.count("move_to") == moved
        assert not controller.is_running
        assert controller.current_run.cancelled

    def test_cancel_before_press_never_presses(self, controller, pointer, loop):
        controller.start_drag()
        loop.run_for(550)
        controller.cancel()
        loop.run_for(5000)

        assert pointer.count("button_down") == 0
        assert pointer.count("button_up") == 0
        assert pointer.count("click") == 1

    def test_cancel_when_idle_is_noop(self, controller, pointer):
        controller.cancel()
        assert pointer.calls == []


class TestMonitorTick:

    def _running(self, controller, loop):
        controller.start_drag()
        loop.run_for(BUTTON_DOWN_AT)
        assert controller.state.button_held

    def test_idle_tick_is_noop(self, controller, pointer):
        pointer.user_moves_to(999, 999)
        assert controller.monitor_tick() is False
        assert controller.state.last_position is None

    def test_first_sample_only_records(self, controller, pointer, loop):
        self._running(controller, loop)
        controller.state.last_position = None
        pointer.user_moves_to(1900, 1000)

        assert controller.monitor_tick() is False
        assert controller.is_running
        assert controller.state.last_position == (1900, 1000)

    @pytest.mark.parametrize("dx,dy,interference", [
        (20, 0, False),
        (0, 20, False),
        (-20, 20, False),
        (21, 0, True),
        (0, -21, True),
    ])
    def test_threshold_is_strict(self, controller, pointer, loop, dx, dy, interference):
        self._running(controller, loop)
        controller.state.last_position = (100, 100)
        pointer.user_moves_to(100 + dx, 100 + dy)

        assert controller.monitor_tick() is interference
        assert controller.is_running is not interference
        assert controller.state.last_position == (100 + dx, 100 + dy)

    def test_read_failure_is_ignored(self, controller, pointer, loop):
        self._running(controller, loop)
        controller.state.last_position = (100, 100)
        pointer.user_moves_to(500, 500)
        pointer.fail_reads = 1

        assert controller.monitor_tick() is False
        assert controller.is_running
        assert controller.state.last_position == (100, 100)

    def test_interference_scenario(self, controller, pointer, loop, clock, monkeypatch):
        self._running(controller, loop)
        controller.state.last_position = (100, 100)
        pointer.user_moves_to(125, 100)

        cancels = []
        original_cancel = controller.cancel

        def counting_cancel():
            cancels.append(clock.now_ms())
            original_cancel()

        restarts = []
        monkeypatch.setattr(controller, "cancel", counting_cancel)
        monkeypatch.setattr(controller, "start_drag", lambda x=None, y=None: restarts.append((clock.now_ms(), x, y)))

        assert controller.monitor_tick() is True
        assert cancels == [BUTTON_DOWN_AT]
        assert pointer.count("button_up") == 1
        assert controller.restart_pending

        loop.run_for(2999)
        assert restarts == []
        loop.run_for(1)
        assert restarts == [(BUTTON_DOWN_AT + 3000, 125, 100)]
        assert len(cancels) == 1


class TestInterferenceFlow:

    @pytest.fixture
    def slow_drag(self):
        # 10 moves of 10 px, one per second
        return DragConfig(start_x=600, end_x=500, y=300, total_duration_ms=10000, step=10)

    def test_user_movement_restarts_from_new_position(self, pointer, loop, slow_drag):
        controller = DragController(pointer, loop, drag_config=slow_drag)
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(1550)
        pointer.user_moves_to(400, 250)
        loop.run_for(20000 - 1550)

        assert pointer.count("button_down") == 2
        assert pointer.count("button_up") == 2
        # cancel seen at the 1600 tick, restart 3000 ms later
        assert pointer.times("click")[2:] == [4600, 4700]
        assert moves(pointer)[-1] == (300, 250)
        assert not controller.is_running
        assert controller.restart_count == 1

    def test_stale_traversal_never_moves_after_restart(self, pointer, loop):
        # steps every 5 s, restart after 3 s: the old run wakes during the new one
        cfg = DragConfig(start_x=600, end_x=500, y=300, total_duration_ms=50000, step=10)
        controller = DragController(pointer, loop, drag_config=cfg)
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(1550)
        pointer.user_moves_to(400, 250)
        loop.run_for(10000)

        restart_at = pointer.times("click")[2]
        late_moves = [c for c in pointer.calls if c[1] == "move_to" and c[0] >= restart_at]
        assert late_moves
        assert all(c[3] == 250 for c in late_moves)

    def test_restart_limit(self, pointer, loop, slow_drag):
        controller = DragController(pointer, loop, drag_config=slow_drag,
                                    monitor_config=MonitorConfig(max_restarts=0))
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(1550)
        pointer.user_moves_to(400, 250)
        loop.run_for(20000)

        assert pointer.count("button_down") == 1
        assert pointer.count("button_up") == 1
        assert not controller.restart_pending

    def test_shutdown_stops_everything(self, pointer, loop, slow_drag):
        controller = DragController(pointer, loop, drag_config=slow_drag)
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(1550)
        pointer.user_moves_to(400, 250)
        loop.run_for(100)
        assert controller.restart_pending

        controller.shutdown()
        calls = len(pointer.calls)
        loop.run_for(20000)

        assert len(pointer.calls) == calls
        assert not controller.monitoring
        assert not controller.restart_pending
        assert pointer.count("button_up") == 1

    def test_start_monitoring_clears_baseline(self, controller):
        controller.state.last_position = (1, 2)
        controller.start_monitoring()
        assert controller.state.last_position is None
        assert controller.monitoring
        controller.stop_monitoring()
        assert not controller.monitoring


class StuckButtonPointer(FakePointer):
    """Pointer whose first button releases fail with the given error."""

    def __init__(self, clock, exc, failures=1):
        super().__init__(clock)
        self.exc = exc
        self.failures = failures

    def button_up(self):
        if self.failures:
            self.failures -= 1
            raise self.exc
        super().button_up()


class TestButtonRelease:

    def _drag(self, pointer, loop, short_drag):
        controller = DragController(pointer, loop, drag_config=short_drag, monitor_config=MonitorConfig())
        controller.start_monitoring()
        controller.start_drag()
        loop.run_for(BUTTON_DOWN_AT + 200)
        assert controller.state.button_held
        return controller

    def test_failed_release_is_retried_on_shutdown(self, clock, loop, short_drag):
        pointer = StuckButtonPointer(clock, PointerError("busy"))
        controller = self._drag(pointer, loop, short_drag)

        controller.cancel()
        assert controller.state.button_held
        assert pointer.count("button_up") == 0

        controller.shutdown()
        assert not controller.state.button_held
        assert pointer.count("button_up") == 1

    def test_failsafe_during_release_does_not_restart(self, clock, loop, short_drag):
        pointer = StuckButtonPointer(clock, PointerFailSafeError("corner"))
        controller = self._drag(pointer, loop, short_drag)

        pointer.user_moves_to(0, 0)
        with pytest.raises(PointerFailSafeError):
            controller.monitor_tick()
        assert not controller.restart_pending
        assert controller.state.button_held

        controller.shutdown()
        assert not controller.state.button_held
        assert pointer.count("button_up") == 1
