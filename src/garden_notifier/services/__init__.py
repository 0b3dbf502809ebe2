"""
Garden Notifier Services.

Stateful engines built on top of the static catalog.
"""

from __future__ import annotations

__all__ = [
    "notifier",
]
