"""Application signals"""

from .app_signals import AppSignals, get_app_signals

__all__ = ["AppSignals", "get_app_signals"]
