"""
Validation utilities for eventdesign.

Provides common validation functions for arrays handed in by callers and
external services.
"""

import numpy as np
from typing import Tuple, Optional, Any
from ..core.exceptions import ShapeMismatchError


def validate_array_dimensions(
    array: Any,
    expected_shape: Optional[Tuple[Optional[int], ...]] = None,
    name: str = "array"
) -> np.ndarray:
    """
    Validate array dimensions and return the input as a float array.

    Args:
        array: Array-like to validate
        expected_shape: Expected exact shape (None entries are ignored)
        name: Name for error messages

    Returns:
        The input converted to a float64 numpy array

    Raises:
        ShapeMismatchError: If validation fails
    """
    values = np.asarray(array, dtype=float)

    if expected_shape is None:
        return values

    if values.ndim != len(expected_shape):
        raise ShapeMismatchError(
            f"{name} dimensions",
            expected=len(expected_shape),
            actual=values.ndim,
            suggestions=[
                f"Expected shape: {expected_shape}",
                f"Actual shape: {values.shape}",
            ]
        )

    for i, (actual, expected) in enumerate(zip(values.shape, expected_shape)):
        if expected is not None and actual != expected:
            raise ShapeMismatchError(
                f"{name} dimension {i} size",
                expected=expected,
                actual=actual,
            )

    return values


def validate_index_list(indices: Any, n_rows: int, name: str = "indices") -> np.ndarray:
    """Validate a list of row indices against the number of rows."""
    index_array = np.asarray(indices if indices is not None else [], dtype=int).ravel()
    if index_array.size and (index_array.min() < 0 or index_array.max() >= n_rows):
        raise ShapeMismatchError(
            f"{name} out of range for {n_rows} rows",
            suggestions=[f"Received indices between {index_array.min()} and {index_array.max()}"],
        )
    return index_array
