"""
=================
Pointer Transport (I/O)
=================

Thin I/O layer over pyautogui for pointer position, movement and the left
mouse button.

pyautogui sleeps PAUSE seconds after every call (0.1 s by default). The drag
routine owns all timing, so the transport forces PAUSE to 0 on open.
FAILSAFE stays on: flinging the pointer into a screen corner raises
pyautogui.FailSafeException on the next action. Releasing the button is the
one action exempt from the check.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

# Optional dep; gracefully fail if missing or headless (simulate mode still works)
try:
    import pyautogui
    _pyautogui_error: Optional[BaseException] = None
except Exception as e:  # import or display errors
    pyautogui = None
    _pyautogui_error = e


@dataclass
class PointerOpenParams:
    """
    Settings for the pointer backend.

    simulate: if True, keep a virtual pointer and never touch the OS
    failsafe: keep pyautogui's corner fail-safe enabled
    pause_s: pyautogui.PAUSE applied on open
    button: mouse button used for clicks and the drag
    sim_position: initial virtual pointer position in simulate mode
    """
    simulate: bool = False
    failsafe: bool = True
    pause_s: float = 0.0
    button: str = "left"
    sim_position: Tuple[int, int] = (0, 0)


class PointerTransport:
    """
    Responsibilities:
      - Configure pyautogui (PAUSE, FAILSAFE)
      - Read pointer position, move, click, press/release the button
      - Support simulate mode when no display is available
    """

    def __init__(self, p: PointerOpenParams, logger: Optional[logging.Logger] = None):
        self.p = p
        self.log = logger or logging.getLogger("trendline_drawer.driver.pointer")
        self._sim_position = tuple(p.sim_position)
        self._sim_button_down = False
        self._open = False

    # -------- Lifecycle ----------
    def open(self) -> None:
        if self.p.simulate:
            self.log.debug("SIM: PointerTransport.open()")
            self._open = True
            return

        if pyautogui is None:
            raise RuntimeError(
                f"pyautogui unavailable: {_pyautogui_error}\n"
                "Install with: pip install pyautogui (a graphical session is required)"
            )

        pyautogui.PAUSE = self.p.pause_s
        pyautogui.FAILSAFE = self.p.failsafe
        self._open = True
        self.log.debug(f"Pointer: pyautogui ready (PAUSE={pyautogui.PAUSE}, FAILSAFE={pyautogui.FAILSAFE})")

    def close(self) -> None:
        self._open = False

    def is_open(self) -> bool:
        return self._open

    # -------- I/O ----------
    def position(self) -> Tuple[int, int]:
        if self.p.simulate:
            return self._sim_position
        x, y = pyautogui.position()
        return int(x), int(y)

    def move_to(self, x: float, y: float) -> None:
        if self.p.simulate:
            self._sim_position = (int(round(x)), int(round(y)))
            return
        pyautogui.moveTo(x, y)

    def click(self) -> None:
        if self.p.simulate:
            self.log.debug(f"SIM: click at {self._sim_position}")
            return
        pyautogui.click(button=self.p.button)

    def button_down(self) -> None:
        if self.p.simulate:
            self._sim_button_down = True
            return
        pyautogui.mouseDown(button=self.p.button)

    def button_up(self) -> None:
        if self.p.simulate:
            self._sim_button_down = False
            return
        # mouseUp runs the corner check first; the button must come up regardless
        failsafe = pyautogui.FAILSAFE
        pyautogui.FAILSAFE = False
        try:
            pyautogui.mouseUp(button=self.p.button)
        finally:
            pyautogui.FAILSAFE = failsafe

    @property
    def sim_button_down(self) -> bool:
        return self._sim_button_down

    def set_sim_position(self, x: int, y: int) -> None:
        """Move the virtual pointer as if the user did it (simulate mode only)."""
        self._sim_position = (int(x), int(y))

    @staticmethod
    def is_failsafe(exc: BaseException) -> bool:
        return pyautogui is not None and isinstance(exc, pyautogui.FailSafeException)
