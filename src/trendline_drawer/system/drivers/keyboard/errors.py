# =================
# Signal Source Errors
# =================
#
# A signal source that cannot start is not fatal: the runner logs it and
# keeps drawing without keyboard shortcuts.


class SignalSourceError(Exception):
    """Raised when a keyboard signal source cannot be started"""
    pass
