"""Event data handling for eventdesign."""

from .events import EventTable, normalize_event, is_missing

__all__ = ["EventTable", "normalize_event", "is_missing"]
