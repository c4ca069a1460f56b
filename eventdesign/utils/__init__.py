"""Utility functions and classes for eventdesign."""

from .logging import get_logger, setup_logging
from .validation import validate_array_dimensions, validate_index_list

__all__ = [
    "get_logger",
    "setup_logging",
    "validate_array_dimensions",
    "validate_index_list",
]
