"""
Tests for spline predictors: the default B-spline basis service and the
injection of spline columns into a record.
"""

import numpy as np
import pytest

from eventdesign.core.exceptions import (
    DegenerateColumnError,
    FormulaError,
    ShapeMismatchError,
    VariableTypeError,
)
from eventdesign.data.events import EventTable
from eventdesign.formulas.record import ColumnInfo, DesignMatrixRecord, VariableInfo, VariableType
from eventdesign.formulas.spec import SplineSpec
from eventdesign.formulas.splines import SplineInjector, bspline_basis, spline_breakpoints


class TestBreakpoints:
    """Test breakpoint placement."""

    @pytest.mark.parametrize("spacing", ["linear", "log", "logreverse", "quantiles"])
    def test_breakpoints_span_observed_range(self, spacing):
        observed = np.array([0.5, 1.0, 2.0, 4.0, 8.0, 16.0])
        breaks = spline_breakpoints(observed, 5, spacing)
        assert len(breaks) == 5
        assert breaks[0] == 0.5
        assert breaks[-1] == 16.0
        assert np.all(np.diff(breaks) >= 0)

    def test_linear(self):
        np.testing.assert_allclose(spline_breakpoints(np.array([0.0, 10.0]), 3, "linear"), [0, 5, 10])

    def test_log_is_dense_at_the_low_end(self):
        breaks = spline_breakpoints(np.array([0.0, 10.0]), 4, "log")
        assert breaks[1] - breaks[0] < breaks[-1] - breaks[-2]

    def test_logreverse_is_dense_at_the_high_end(self):
        breaks = spline_breakpoints(np.array([0.0, 10.0]), 4, "logreverse")
        assert breaks[1] - breaks[0] > breaks[-1] - breaks[-2]


class TestBSplineBasis:
    """Test the default cubic B-spline basis service."""

    def test_shape_and_labels(self):
        values = np.linspace(0, 10, 50)
        basis, labels, missing = bspline_basis(values, 5, "linear")
        assert basis.shape == (50, 5)
        assert len(labels) == 5
        assert labels[0] == "0"
        assert labels[-1] == "10"
        assert len(missing) == 0

    def test_partition_of_unity(self):
        values = np.random.uniform(1, 3, 40)
        basis, _, _ = bspline_basis(values, 7, "quantiles")
        np.testing.assert_allclose(basis.sum(axis=1), 1.0)

    def test_missing_values_give_zero_rows(self):
        values = np.array([1.0, 2.0, np.nan, 4.0, 5.0, 6.0])
        basis, _, missing = bspline_basis(values, 4, "linear")
        assert list(missing) == [2]
        assert not basis[2].any()
        np.testing.assert_allclose(basis[[0, 1, 3, 4, 5]].sum(axis=1), 1.0)

    def test_too_few_splines(self):
        with pytest.raises(FormulaError):
            bspline_basis(np.arange(10.0), 3, "linear")

    def test_constant_input(self):
        with pytest.raises(ValueError):
            bspline_basis(np.ones(10), 5, "linear")


def intercept_record(n_rows):
    return DesignMatrixRecord(
        matrix=np.ones((n_rows, 1)),
        columns=[ColumnInfo(components=(("(intercept)", None),), variable=1)],
        variables=[VariableInfo(("(intercept)",), VariableType.INTERCEPT)],
    )


class TestSplineInjector:
    """Test SplineInjector with a deterministic spline service."""

    def test_columns_are_appended(self, fake_spline_basis):
        events = [{"type": "fix", "speed": float(v)} for v in range(1, 6)]
        table = EventTable(events, ["fix"])
        record = intercept_record(5)

        SplineInjector("linear", fake_spline_basis).inject(record, table, [SplineSpec("speed", 3)])

        assert record.column_names == ["(intercept)", "speed_1", "speed_2", "speed_3"]
        assert record.column_to_variable.tolist() == [1, 2, 2, 2]
        assert record.variable_names == ["(intercept)", "speed"]
        assert record.variable_types == ["intercept", "spline"]
        np.testing.assert_array_equal(record.matrix[:, 3], [3, 6, 9, 12, 15])

        spline = record.splines[0]
        assert spline.column_indices == [1, 2, 3]
        assert spline.value_range == (1.0, 5.0)
        assert spline.spacing == "linear"

    def test_missing_spline_value_zeroes_whole_row(self, fake_spline_basis):
        events = [
            {"type": "fix", "speed": 1.0},
            {"type": "fix", "speed": None},
            {"type": "fix", "speed": 3.0},
            {"type": "stim", "speed": 9.0},
        ]
        table = EventTable(events, ["fix"])
        record = intercept_record(4)
        SplineInjector("linear", fake_spline_basis).inject(record, table, [SplineSpec("speed", 2)])

        assert not record.matrix[1].any()
        assert record.matrix[0, 0] == 1
        assert record.splines[0].missing_rows == [1]

    def test_prefixed_labels_are_not_doubled(self):
        def prefixed_service(values, knot_count, spacing):
            return np.zeros((len(values), 2)), ["speed_lo", "speed_hi"], []

        events = [{"type": "fix", "speed": 1.0}, {"type": "fix", "speed": 2.0}]
        record = intercept_record(2)
        SplineInjector("linear", prefixed_service).inject(
            record, EventTable(events, ["fix"]), [SplineSpec("speed", 5)]
        )
        assert record.column_names[1:] == ["speed_lo", "speed_hi"]

    def test_default_service(self):
        events = [{"type": "fix", "speed": float(v)} for v in range(20)]
        record = intercept_record(20)
        SplineInjector().inject(record, EventTable(events, ["fix"]), [SplineSpec("speed", 5)])
        assert record.shape == (20, 6)
        assert record.splines[0].spacing == "quantiles"

    def test_string_spline_variable(self, fake_spline_basis):
        events = [{"type": "fix", "speed": "fast"}, {"type": "fix", "speed": "slow"}]
        with pytest.raises(VariableTypeError) as exc_info:
            SplineInjector("linear", fake_spline_basis).inject(
                intercept_record(2), EventTable(events, ["fix"]), [SplineSpec("speed", 3)]
            )
        assert "numeric values are needed" in exc_info.value.message
        assert "mixed" not in exc_info.value.message
        assert exc_info.value.suggestions[0] == "Spline predictors need numeric values"
        assert exc_info.value.context["n_strings"] == 2

    def test_constant_spline_variable(self, fake_spline_basis):
        events = [{"type": "fix", "speed": 2.0}, {"type": "fix", "speed": 2.0}]
        with pytest.raises(DegenerateColumnError):
            SplineInjector("linear", fake_spline_basis).inject(
                intercept_record(2), EventTable(events, ["fix"]), [SplineSpec("speed", 3)]
            )

    def test_service_with_wrong_row_count(self):
        def short_service(values, knot_count, spacing):
            return np.zeros((len(values) - 1, knot_count)), ["a"] * knot_count, []

        events = [{"type": "fix", "speed": 1.0}, {"type": "fix", "speed": 2.0}]
        with pytest.raises(ShapeMismatchError):
            SplineInjector("linear", short_service).inject(
                intercept_record(2), EventTable(events, ["fix"]), [SplineSpec("speed", 3)]
            )

    def test_service_with_wrong_label_count(self):
        def unlabeled_service(values, knot_count, spacing):
            return np.zeros((len(values), knot_count)), [], []

        events = [{"type": "fix", "speed": 1.0}, {"type": "fix", "speed": 2.0}]
        with pytest.raises(ShapeMismatchError):
            SplineInjector("linear", unlabeled_service).inject(
                intercept_record(2), EventTable(events, ["fix"]), [SplineSpec("speed", 3)]
            )
