"""
Pointer Driver Errors
=====================

Exception classes for the pyautogui pointer driver.
"""


class PointerError(Exception):
    """Base exception for pointer driver errors"""
    pass


class PointerUnavailableError(PointerError):
    """Raised when pyautogui is missing or no display can be reached"""
    pass


class PointerReadError(PointerError):
    """Raised when the pointer position cannot be read"""
    pass


class PointerFailSafeError(PointerError):
    """Raised when the pyautogui fail-safe trips (pointer flung into a screen corner)"""
    pass
