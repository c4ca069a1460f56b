"""
Design matrix record for eventdesign.

The record keeps one ``ColumnInfo`` per matrix column and one
``VariableInfo`` per modeled variable. The flat metadata arrays consumers
expect (``column_names``, ``column_to_variable``, ...) are derived from
those lists on access, so they always agree with the matrix.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .terms import INTERACTION_SEPARATOR
from ..core.exceptions import PreconditionError
from ..utils.logging import get_logger
from ..utils.validation import validate_array_dimensions


logger = get_logger(__name__)

# column_to_variable value of a column that belongs to no variable
UNASSIGNED = 0
# column_to_eventgroup value of a column not tied to any event group
UNKNOWN_EVENTGROUP = math.nan


class VariableType(str, Enum):
    """Kinds of modeled variables."""

    INTERCEPT = "intercept"
    CONTINUOUS = "continuous"
    CATEGORICAL = "categorical"
    INTERACTION = "interaction"
    SPLINE = "spline"
    UNKNOWN = "unknown"


# (predictor, level); level is None for continuous predictors
Component = Tuple[str, Optional[str]]


def _component_name(component: Component) -> str:
    predictor, level = component
    return predictor if level is None else f"{predictor}_{level}"


@dataclass(frozen=True)
class ColumnInfo:
    """
    One design matrix column.

    ``components`` holds one ``(predictor, level)`` pair per factor of the
    column, so ``cond_B:x`` is ``(("cond", "B"), ("x", None))``. A column
    added by hand has no components, only a ``label``.
    """

    components: Tuple[Component, ...]
    variable: int = UNASSIGNED
    eventgroup: float = 1
    label: Optional[str] = None

    @property
    def name(self) -> str:
        if self.label is not None:
            return self.label
        return INTERACTION_SEPARATOR.join(_component_name(c) for c in self.components)

    def renamed(self, mapping: Dict[str, str]) -> "ColumnInfo":
        """Return a copy with predictors renamed according to ``mapping``."""
        components = tuple(
            (mapping.get(predictor, predictor), level)
            for predictor, level in self.components
        )
        return replace(self, components=components)


@dataclass(frozen=True)
class VariableInfo:
    """One modeled variable: a term of the formula or a spline."""

    parts: Tuple[str, ...]
    variable_type: VariableType

    @property
    def name(self) -> str:
        return INTERACTION_SEPARATOR.join(self.parts)

    def renamed(self, mapping: Dict[str, str]) -> "VariableInfo":
        return replace(self, parts=tuple(mapping.get(p, p) for p in self.parts))


@dataclass
class SplineInfo:
    """Provenance of one spline predictor."""

    name: str
    source_variable: str
    knot_count: int
    spacing: str
    column_indices: List[int]
    value_range: Tuple[float, float]
    missing_rows: List[int] = field(default_factory=list)

    def shifted(self, offset: int) -> "SplineInfo":
        return replace(self, column_indices=[i + offset for i in self.column_indices])


@dataclass
class DesignMatrixRecord:
    """
    Design matrix plus the bookkeeping that ties columns to variables,
    event groups and formulas.

    Rows align with the full event array: row ``i`` is event ``i``, rows
    of events outside the modeled event types are zero.
    """

    matrix: np.ndarray
    columns: List[ColumnInfo] = field(default_factory=list)
    variables: List[VariableInfo] = field(default_factory=list)
    splines: List[SplineInfo] = field(default_factory=list)
    formula_strings: List[str] = field(default_factory=list)
    eventtype_groups: List[List[str]] = field(default_factory=list)
    effects_means: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls, n_rows: int = 0) -> "DesignMatrixRecord":
        """A record with no columns yet."""
        return cls(matrix=np.zeros((n_rows, 0)))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.matrix.shape

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def column_to_variable(self) -> np.ndarray:
        """1-based variable index per column; ``UNASSIGNED`` marks none."""
        return np.array([column.variable for column in self.columns], dtype=int)

    @property
    def column_to_eventgroup(self) -> np.ndarray:
        """1-based event group per column; NaN for hand-added columns."""
        return np.array([column.eventgroup for column in self.columns], dtype=float)

    @property
    def variable_names(self) -> List[str]:
        return [variable.name for variable in self.variables]

    @property
    def variable_types(self) -> List[str]:
        return [variable.variable_type.value for variable in self.variables]

    @property
    def max_variable_index(self) -> int:
        return max((c.variable for c in self.columns), default=UNASSIGNED)

    @property
    def max_eventgroup(self) -> int:
        groups = [c.eventgroup for c in self.columns if not math.isnan(c.eventgroup)]
        return int(max(groups, default=0))

    def columns_of(self, variable_name: str) -> List[int]:
        """Column indices belonging to a variable."""
        index = self.variable_names.index(variable_name) + 1
        return [i for i, column in enumerate(self.columns) if column.variable == index]

    def add_columns(
        self,
        values: np.ndarray,
        columns: Sequence[ColumnInfo],
        variables: Sequence[VariableInfo] = (),
    ) -> List[int]:
        """
        Append matrix columns together with their metadata.

        Returns:
            Indices of the new columns
        """
        values = validate_array_dimensions(
            values, expected_shape=(self.matrix.shape[0], len(columns)), name="new columns"
        )
        start = self.matrix.shape[1]
        self.matrix = np.hstack([self.matrix, values])
        self.columns.extend(columns)
        self.variables.extend(variables)
        return list(range(start, self.matrix.shape[1]))

    def zero_rows(self, rows: Sequence[int]) -> None:
        """Zero whole rows, across every column of the record."""
        rows = np.asarray(rows, dtype=int)
        if rows.size:
            self.matrix[rows, :] = 0

    def nan_columns(self) -> List[str]:
        """Names of columns that contain NaN."""
        has_nan = np.isnan(self.matrix).any(axis=0)
        return [name for name, flag in zip(self.column_names, has_nan) if flag]

    def duplicate_column_names(self) -> List[str]:
        """Column names used more than once, in first-appearance order."""
        seen = set()
        duplicates: List[str] = []
        for name in self.column_names:
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        return duplicates

    def to_frame(self) -> pd.DataFrame:
        """The matrix as a DataFrame with column names as headers."""
        return pd.DataFrame(self.matrix, columns=self.column_names)

    def summary(self) -> Dict[str, Any]:
        return {
            "shape": self.shape,
            "formulas": list(self.formula_strings),
            "variables": dict(zip(self.variable_names, self.variable_types)),
            "n_splines": len(self.splines),
        }


def append_column(record: DesignMatrixRecord, values: Sequence[float], label: str) -> DesignMatrixRecord:
    """
    Append a single custom column to an existing design matrix record.

    The column becomes a new variable of type ``unknown`` and is not tied
    to any event group (its ``column_to_eventgroup`` entry is NaN).

    Args:
        record: A record that already has at least one column
        values: One value per matrix row
        label: Name of the new column

    Returns:
        The same record, updated in place

    Raises:
        PreconditionError: If the record has no columns yet
        ShapeMismatchError: If ``values`` has the wrong length
    """
    if record is None or record.matrix.ndim != 2 or record.matrix.shape[1] == 0:
        raise PreconditionError("could not find a design matrix, build one before adding columns")

    column = validate_array_dimensions(
        values, expected_shape=(record.matrix.shape[0],), name="new column"
    )

    record.add_columns(
        column[:, np.newaxis],
        [ColumnInfo(components=(), variable=len(record.variables) + 1,
                    eventgroup=UNKNOWN_EVENTGROUP, label=str(label))],
        [VariableInfo(parts=(str(label),), variable_type=VariableType.UNKNOWN)],
    )
    logger.debug(f"Appended column '{label}'", n_columns=record.matrix.shape[1])
    return record
