"""
eventdesign: design matrices for regression-based deconvolution of
event-related signals (EEG, eye-tracking).

Turns an array of labeled events and Wilkinson-style formulas into a
numeric design matrix with full bookkeeping from columns back to
variables, terms and event groups.
"""

__version__ = "0.1.0"

# Main API
from .core.api import build_design_matrix, append_column

# Formula system
from .formulas import (
    parse_formula,
    FormulaSpec,
    SplineSpec,
    DesignMatrixRecord,
    VariableType,
    bspline_basis,
)

# Configuration
from .config.settings import EventDesignConfig, CodingSchema, SplineSpacing

# Exceptions
from .core.exceptions import (
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
    "__version__",
    # Main API
    "build_design_matrix",
    "append_column",
    "parse_formula",
    # Formula system
    "FormulaSpec",
    "SplineSpec",
    "DesignMatrixRecord",
    "VariableType",
    "bspline_basis",
    # Configuration
    "EventDesignConfig",
    "CodingSchema",
    "SplineSpacing",
    # Exceptions
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
