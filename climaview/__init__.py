"""
Climaview: Climate Data Explorer
================================

Core data pipeline behind the split-panel climate map, its time-series
chart and its brush chart. The explorer agent lives in
:mod:`climaview.explorer`; the shared exception hierarchy lives in
:mod:`climaview.exceptions`.
"""

__version__ = "0.1.0"

__author__ = "Climaview Team"
__license__ = "MIT"
