"""
=================
Pointer Driver (public façade)
=================

Single entry point for the pointer backend used by the drag controller:
get_position, move_to, click, button_down, button_up.

Backend exceptions are wrapped into PointerError subclasses so callers never
depend on pyautogui directly.
"""
from __future__ import annotations
from typing import Callable, Optional, Tuple
import logging

from .transport import PointerTransport, PointerOpenParams
from .errors import (
    PointerError,
    PointerFailSafeError,
    PointerReadError,
    PointerUnavailableError,
)


class PointerDriver:
    """
    Public driver for the OS pointer.

    Usage:
        pointer = PointerDriver(simulate=False)
        pointer.initialize()
        x, y = pointer.get_position()
        pointer.move_to(1500, 500)
        pointer.button_down()
        pointer.button_up()
        pointer.shutdown()
    """

    def __init__(
        self,
        simulate: bool = False,
        failsafe: bool = True,
        button: str = "left",
        sim_position: Tuple[int, int] = (0, 0),
        logger: Optional[logging.Logger] = None,
    ):
        self.log = logger or logging.getLogger("trendline_drawer.driver.pointer")
        self.transport = PointerTransport(
            PointerOpenParams(
                simulate=simulate,
                failsafe=failsafe,
                button=button,
                sim_position=sim_position,
            ),
            logger=self.log,
        )

    # ---- Lifecycle ----
    def initialize(self) -> None:
        try:
            self.transport.open()
        except Exception as e:
            raise PointerUnavailableError(f"Failed to initialize pointer: {e}") from e

    def shutdown(self) -> None:
        try:
            self.transport.close()
        except Exception as e:
            self.log.error(f"Error during pointer shutdown: {e}")

    @property
    def simulate(self) -> bool:
        return self.transport.p.simulate

    # ---- Pointer operations ----
    def get_position(self) -> Tuple[int, int]:
        """
        Current pointer position.

        Raises:
            PointerReadError if the backend cannot report a position
        """
        try:
            return self.transport.position()
        except Exception as e:
            raise PointerReadError(f"Failed to read pointer position: {e}") from e

    def move_to(self, x: float, y: float) -> None:
        self._call(lambda: self.transport.move_to(x, y), f"move pointer to ({x}, {y})")

    def click(self) -> None:
        self._call(self.transport.click, "click")

    def button_down(self) -> None:
        self._call(self.transport.button_down, "press button")

    def button_up(self) -> None:
        self._call(self.transport.button_up, "release button")

    def _call(self, action: Callable[[], None], what: str) -> None:
        if not self.transport.is_open():
            raise PointerUnavailableError(f"Cannot {what}: pointer not initialized")
        try:
            action()
        except Exception as e:
            if self.transport.is_failsafe(e):
                raise PointerFailSafeError(f"Fail-safe triggered during {what}") from e
            raise PointerError(f"Failed to {what}: {e}") from e
