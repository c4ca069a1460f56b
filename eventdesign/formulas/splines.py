"""
Spline predictors for eventdesign.

``bspline_basis`` is the default spline-basis service: it turns the raw
values of one predictor into cubic B-spline basis columns. Any callable
with the same signature can replace it. ``SplineInjector`` calls the
service for each declared spline and appends the basis to a record.
"""

from typing import Callable, List, Sequence, Tuple

import numpy as np
from scipy.interpolate import BSpline

from .record import ColumnInfo, DesignMatrixRecord, SplineInfo, VariableInfo, VariableType
from .spec import SplineSpec
from ..config.settings import SplineSpacing
from ..core.exceptions import DegenerateColumnError, FormulaError, ShapeMismatchError, VariableTypeError
from ..data.events import EventTable
from ..utils.logging import get_logger
from ..utils.validation import validate_array_dimensions, validate_index_list


logger = get_logger(__name__)

SPLINE_DEGREE = 3
MIN_SPLINES = SPLINE_DEGREE + 1

# (values, knot_count, spacing) -> (basis, labels, missing_rows)
SplineBasisService = Callable[[np.ndarray, int, str], Tuple[np.ndarray, List[str], Sequence[int]]]


def spline_breakpoints(observed: np.ndarray, n_breaks: int, spacing: str) -> np.ndarray:
    """Breakpoints spanning [min, max] of ``observed``, placed by ``spacing``."""
    lo, hi = float(observed.min()), float(observed.max())
    spacing = SplineSpacing(spacing)

    if spacing is SplineSpacing.LINEAR:
        breaks = np.linspace(lo, hi, n_breaks)
    elif spacing is SplineSpacing.QUANTILES:
        breaks = np.quantile(observed, np.linspace(0, 1, n_breaks))
    else:
        # log-spaced fractions of the range, from 0 to 1
        fractions = (np.logspace(0, 1, n_breaks) - 1) / 9
        if spacing is SplineSpacing.LOG:
            breaks = lo + (hi - lo) * fractions
        else:
            breaks = (hi - (hi - lo) * fractions)[::-1]

    # boundary knots must enclose every observed value exactly
    breaks[0], breaks[-1] = lo, hi
    return breaks


def bspline_basis(
    values: np.ndarray, knot_count: int, spacing: str = SplineSpacing.QUANTILES.value
) -> Tuple[np.ndarray, List[str], np.ndarray]:
    """
    Cubic B-spline basis of ``values`` with ``knot_count`` functions.

    Args:
        values: One value per event; NaN marks missing values
        knot_count: Number of basis functions (at least 4)
        spacing: Breakpoint placement: linear, log, logreverse or quantiles

    Returns:
        Tuple of (basis matrix, column labels, missing row indices). Labels
        are the peak locations (Greville abscissae) of the basis functions,
        missing rows are all zero.
    """
    if knot_count < MIN_SPLINES:
        raise FormulaError(
            formula=f"spl(..., {knot_count})",
            reason=f"cubic splines need at least {MIN_SPLINES} basis functions",
        )

    values = np.asarray(values, dtype=float)
    finite = np.isfinite(values)
    observed = values[finite]
    if observed.size == 0 or observed.min() == observed.max():
        raise ValueError("spline predictor needs at least two distinct values")

    breaks = np.unique(spline_breakpoints(observed, knot_count - 2, spacing))
    if len(breaks) < knot_count - 2:
        logger.warning(
            f"Only {len(breaks)} distinct spline breakpoints for {knot_count} splines, "
            f"using {len(breaks) + 2} basis functions"
        )

    knots = np.r_[[breaks[0]] * SPLINE_DEGREE, breaks, [breaks[-1]] * SPLINE_DEGREE]
    n_basis = len(knots) - SPLINE_DEGREE - 1

    basis = np.zeros((len(values), n_basis))
    basis[finite] = BSpline.design_matrix(observed, knots, SPLINE_DEGREE).toarray()

    peaks = [knots[i + 1:i + SPLINE_DEGREE + 1].mean() for i in range(n_basis)]
    labels = [f"{peak:.4g}" for peak in peaks]
    return basis, labels, np.flatnonzero(~finite)


def _label_suffix(label: str, variable: str) -> str:
    prefix = f"{variable}_"
    return label[len(prefix):] if label.startswith(prefix) else label


class SplineInjector:
    """
    Adds spline predictors to a design matrix record.

    Rows where a spline input is missing are zeroed across the whole
    record, since the model cannot be evaluated for that event.
    """

    def __init__(
        self,
        spacing: SplineSpacing = SplineSpacing.QUANTILES,
        spline_basis: SplineBasisService = bspline_basis,
    ):
        self.spacing = SplineSpacing(spacing)
        self.spline_basis = spline_basis
        self.logger = get_logger(self.__class__.__name__)

    def inject(
        self, record: DesignMatrixRecord, table: EventTable, splines: Sequence[SplineSpec]
    ) -> DesignMatrixRecord:
        """Append the basis of every spline in declaration order."""
        for spline in splines:
            self._inject_one(record, table, spline)
        return record

    def _inject_one(self, record: DesignMatrixRecord, table: EventTable, spline: SplineSpec) -> None:
        name = spline.variable
        if table.is_string_column(name):
            # a string column holds a string on every modeled event
            n_modeled = int(table.modeled.sum())
            raise VariableTypeError(
                variable=name,
                n_strings=n_modeled,
                n_rows=n_modeled,
                suggestions=["Spline predictors need numeric values"],
            )

        values = table.numeric_values(name)
        observed = values[np.isfinite(values)]
        if observed.size == 0 or observed.min() == observed.max():
            raise DegenerateColumnError(variable=name, levels=np.unique(observed).tolist())

        n_rows = record.matrix.shape[0]
        basis, labels, missing_rows = self.spline_basis(values, spline.knot_count, self.spacing.value)
        basis = validate_array_dimensions(basis, expected_shape=(n_rows, None), name=f"spline basis of {name}")
        if len(labels) != basis.shape[1]:
            raise ShapeMismatchError(f"spline labels of {name}", expected=basis.shape[1], actual=len(labels))
        missing = validate_index_list(missing_rows, n_rows, name=f"missing rows of {name}")

        variable_index = len(record.variables) + 1
        columns = [
            ColumnInfo(components=((name, _label_suffix(str(label), name)),), variable=variable_index)
            for label in labels
        ]
        indices = record.add_columns(basis, columns, [VariableInfo((name,), VariableType.SPLINE)])
        record.zero_rows(missing)

        record.splines.append(SplineInfo(
            name=name,
            source_variable=name,
            knot_count=spline.knot_count,
            spacing=self.spacing.value,
            column_indices=indices,
            value_range=(float(observed.min()), float(observed.max())),
            missing_rows=[int(r) for r in missing if table.modeled[r]],
        ))
        self.logger.debug(
            f"Added spline '{name}'", n_columns=len(indices), n_missing=len(missing)
        )
