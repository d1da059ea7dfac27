"""
Keyboard Signal Sources
=======================

Turn keyboard input into TERMINATE / SCHEDULE_DRAW signals.

- signals: Signal enum, SignalSource interface, ChordMatcher
- pynput_source: global keyboard hook
- stdin_source: line commands on the terminal
"""
from .errors import SignalSourceError
from .signals import ChordMatcher, NullSignalSource, Signal, SignalSource, key_name
from .pynput_source import PynputSignalSource
from .stdin_source import StdinSignalSource

__all__ = [
    'ChordMatcher',
    'NullSignalSource',
    'PynputSignalSource',
    'Signal',
    'SignalSource',
    'SignalSourceError',
    'StdinSignalSource',
    'key_name',
]
