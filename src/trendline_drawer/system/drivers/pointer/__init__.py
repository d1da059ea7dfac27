"""
Pointer Driver (pyautogui)
==========================

Reads and drives the OS pointer for the drag gesture.

This driver follows the transport/driver split:
- Transport: pyautogui calls, simulate mode
- Driver: Public API façade with error wrapping
"""
from .driver import PointerDriver
from .errors import (
    PointerError,
    PointerFailSafeError,
    PointerReadError,
    PointerUnavailableError,
)

__all__ = [
    'PointerDriver',
    'PointerError',
    'PointerFailSafeError',
    'PointerReadError',
    'PointerUnavailableError',
]
