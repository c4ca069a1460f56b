"""
Formula system for eventdesign.

Provides formula parsing with cat()/spl() extensions and design matrix
construction for one or several event groups.
"""

from .parser import FormulaParser, parse_formula
from .terms import Term, InterceptTerm, VariableTerm, InteractionTerm
from .spec import FormulaSpec, SplineSpec
from .coding import CategoricalCoder
from .splines import SplineInjector, bspline_basis
from .design_matrix import DesignMatrixBuilder, BuildStage
from .combine import MultiGroupCombiner
from .record import (
    DesignMatrixRecord,
    ColumnInfo,
    VariableInfo,
    VariableType,
    SplineInfo,
    UNASSIGNED,
    append_column,
)

__all__ = [
    # Main API
    "parse_formula",
    "append_column",
    # Core classes
    "FormulaParser",
    "CategoricalCoder",
    "SplineInjector",
    "DesignMatrixBuilder",
    "MultiGroupCombiner",
    "BuildStage",
    "bspline_basis",
    # Specification
    "FormulaSpec",
    "SplineSpec",
    # Record
    "DesignMatrixRecord",
    "ColumnInfo",
    "VariableInfo",
    "VariableType",
    "SplineInfo",
    "UNASSIGNED",
    # Term types
    "Term",
    "InterceptTerm",
    "VariableTerm",
    "InteractionTerm",
]
