from __future__ import annotations
from dataclasses import replace
from typing import Optional, Sequence
import argparse
import logging

from trendline_drawer.system.config import (
    AppConfig,
    LOG_LEVELS,
    SIGNAL_SOURCES,
    load_config,
    with_drag_overrides,
)
from trendline_drawer.system.drivers.keyboard import (
    NullSignalSource,
    PynputSignalSource,
    SignalSource,
    SignalSourceError,
    StdinSignalSource,
)
from trendline_drawer.system.drivers.pointer import PointerDriver, PointerFailSafeError, PointerUnavailableError
from trendline_drawer.system.errors import ConfigError

from .drag_controller import DragController
from .event_loop import EventLoop
from .triggers import TriggerScheduler


def build_signal_source(config: AppConfig, logger: Optional[logging.Logger] = None) -> SignalSource:
    triggers = config.triggers
    if triggers.signal_source == "pynput":
        return PynputSignalSource(
            terminate_chord=triggers.terminate_chord,
            draw_chord=triggers.draw_chord,
            debounce_ms=triggers.debounce_ms,
            logger=logger,
        )
    if triggers.signal_source == "stdin":
        return StdinSignalSource(logger=logger)
    return NullSignalSource()


class DrawRunner:
    """
    Wires pointer, loop, controller, triggers and keyboard signals together
    and owns process lifecycle.

    - run(): start everything, block until terminate / Ctrl+C / fail-safe
    - cleanup always releases the mouse button and stops the listeners
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        pointer=None,
        signal_source: Optional[SignalSource] = None,
        clock=None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or AppConfig()
        self.log = logger or logging.getLogger("trendline_drawer.runner")
        if pointer is None:
            pointer = PointerDriver(simulate=self.config.simulate)
            pointer.initialize()
        self.pointer = pointer
        self.loop = EventLoop(clock=clock)
        self.controller = DragController(
            pointer,
            self.loop,
            drag_config=self.config.drag,
            monitor_config=self.config.monitor,
        )
        self.scheduler = TriggerScheduler(self.controller, self.loop, config=self.config.triggers)
        self.signal_source = signal_source or build_signal_source(self.config)
        self._cleaned_up = False

        self.log.info(
            f"DrawRunner.__init__ | simulate={self.config.simulate} | "
            f"signal_source={type(self.signal_source).__name__} | "
            f"steps={self.config.drag.step_count} | delay={self.config.drag.delay_per_step_ms:.2f}ms"
        )

    def _emit(self, signal) -> None:
        # called on the signal source's thread
        self.loop.call_soon_threadsafe(self.scheduler.handle_signal, signal)

    def start(self) -> None:
        self.log.info("- When you move the mouse, drawing will pause and restart "
                      f"after {self.config.monitor.restart_delay_ms / 1000:g} seconds")
        try:
            self.signal_source.start(self._emit)
        except SignalSourceError as e:
            self.log.error(f"Failed to set up key monitoring: {e}")
            self.log.info("Key shortcuts won't be available.")
        self.controller.start_monitoring()
        self.scheduler.arm_startup()

    def run(self, duration_ms: Optional[float] = None) -> int:
        """
        Run until terminated. duration_ms bounds the run (dry runs, tests).

        Returns:
            process exit code
        """
        exit_code = 0
        self.start()
        try:
            if duration_ms is None:
                self.loop.run_forever()
            else:
                self.loop.run_for(duration_ms)
        except KeyboardInterrupt:
            self.log.info("Interrupted (Ctrl+C).")
        except PointerFailSafeError as e:
            self.log.warning(f"{e}. Stopping.")
        except Exception as e:
            self.log.error(f"Unexpected error: {e}", exc_info=True)
            exit_code = 1
        finally:
            self.cleanup()
        return exit_code

    def cleanup(self) -> None:
        if self._cleaned_up:
            return
        self._cleaned_up = True
        self.scheduler.terminate()
        self.loop.clear()
        try:
            self.signal_source.stop()
        except Exception as e:
            self.log.warning(f"Error stopping signal source: {e}")
        shutdown = getattr(self.pointer, "shutdown", None)
        if shutdown is not None:
            shutdown()
        self.log.info("Script terminated.")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Draw a slow horizontal trendline by dragging the mouse")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--simulate", action="store_true", help="Run with a virtual pointer (no mouse events)")
    parser.add_argument("--signal-source", choices=SIGNAL_SOURCES, help="Keyboard shortcut backend")
    parser.add_argument("--start-x", type=float, help="Fixed drag start x")
    parser.add_argument("--end-x", type=float, help="Fixed drag end x")
    parser.add_argument("--y", type=float, help="Drag line y")
    parser.add_argument("--duration-ms", type=float, help="Traversal time in milliseconds")
    parser.add_argument("--step", type=float, help="Pixels per movement")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="Logging level")
    return parser


def config_from_args(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config)
    config = with_drag_overrides(
        config,
        start_x=args.start_x,
        end_x=args.end_x,
        y=args.y,
        total_duration_ms=args.duration_ms,
        step=args.step,
    )
    if args.simulate:
        config = replace(config, simulate=True)
    if args.signal_source:
        config = replace(config, triggers=replace(config.triggers, signal_source=args.signal_source))
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except ConfigError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    try:
        runner = DrawRunner(config)
    except PointerUnavailableError as e:
        logging.getLogger("trendline_drawer.runner").error(f"{e}\nTry --simulate for a dry run.")
        return 1
    return runner.run()


if __name__ == "__main__":
    raise SystemExit(main())
