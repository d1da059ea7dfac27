"""
Trendline Drawer
================

Drags the mouse slowly along a horizontal line to draw a trendline on a
chart, pausing when the user takes over the mouse and resuming afterwards.
"""
__version__ = "0.1.0"
