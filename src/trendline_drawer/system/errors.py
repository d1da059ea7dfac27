"""
Trendline Drawer Errors
=======================

Exception classes shared by the core (config, controller, scheduler).
Driver-specific errors live next to their drivers.
"""


class TrendlineError(Exception):
    """Base exception for trendline drawer errors"""
    pass


class ConfigError(TrendlineError, ValueError):
    """Raised when a configuration value or file is invalid"""
    pass


class DragInProgressError(TrendlineError):
    """Raised when a drag is started while another one is still running"""
    pass
