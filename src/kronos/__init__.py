"""Kronos offline worker.

Offline-first HTTP caching worker, background sync and Web Push dispatch
for the Kronos web application.
"""

from kronos.shared.constants import Application

__version__ = Application.VERSION

__all__ = ["__version__"]
