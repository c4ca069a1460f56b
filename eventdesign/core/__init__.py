"""Core functionality for eventdesign."""

from .exceptions import (
    EventDesignError,
    FormulaError,
    MissingVariableError,
    VariableTypeError,
    DegenerateColumnError,
    EmptyDesignMatrixError,
    ShapeMismatchError,
    PreconditionError,
    ConfigurationError,
)

__all__ = [
    "EventDesignError",
    "FormulaError",
    "MissingVariableError",
    "VariableTypeError",
    "DegenerateColumnError",
    "EmptyDesignMatrixError",
    "ShapeMismatchError",
    "PreconditionError",
    "ConfigurationError",
]
