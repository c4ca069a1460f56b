"""
Tests for categorical coding.

Coding is tested directly on an EventTable and a parsed formula, without
the spline stage or the record bookkeeping of the builder.
"""

import numpy as np
import pytest

from eventdesign.config.settings import CodingSchema
from eventdesign.core.exceptions import DegenerateColumnError, EmptyDesignMatrixError
from eventdesign.data.events import EventTable
from eventdesign.formulas.coding import CategoricalCoder, format_level
from eventdesign.formulas.parser import parse_formula
from eventdesign.formulas.record import VariableType


def code(events, formula, eventtypes=("fix",), schema=CodingSchema.REFERENCE, categorical=None):
    table = EventTable(events, list(eventtypes))
    spec = parse_formula(formula, categorical=categorical)
    resolved = table.resolve_categorical(spec.predictors, spec.categorical)
    return CategoricalCoder(schema).code(table, spec, resolved)


def names(coded):
    return [column.name for column in coded.columns]


class TestFormatLevel:
    """Test level labels."""

    @pytest.mark.parametrize("value, expected", [
        (2.0, "2"),
        (np.float64(-1.0), "-1"),
        (2.5, "2.5"),
        (3, "3"),
        ("B", "B"),
    ])
    def test_format_level(self, value, expected):
        assert format_level(value) == expected


class TestReferenceCoding:
    """Test reference (treatment) coding."""

    def test_intercept_and_continuous(self, fixation_events):
        coded = code(fixation_events, "y ~ x")
        assert names(coded) == ["(intercept)", "x"]
        np.testing.assert_array_equal(coded.matrix[:, 0], [1, 1, 1, 0, 1, 1, 1])
        np.testing.assert_array_equal(coded.matrix[:, 1], [1, 2, 3, 0, 4, 5, 6])

    def test_categorical_drops_first_level(self, fixation_events):
        coded = code(fixation_events, "y ~ cat(cond)")
        assert names(coded) == ["(intercept)", "cond_B", "cond_C"]
        np.testing.assert_array_equal(coded.matrix[:, 1], [0, 1, 0, 0, 0, 1, 0])
        np.testing.assert_array_equal(coded.matrix[:, 2], [0, 0, 1, 0, 0, 0, 1])

    def test_categorical_has_levels_minus_one_columns(self, fixation_events):
        coded = code(fixation_events, "y ~ 0 + cat(cond)")
        assert len(coded.columns) == 2
        assert all(column.variable == 1 for column in coded.columns)

    def test_interaction_columns(self, fixation_events):
        coded = code(fixation_events, "y ~ cat(cond) * x")
        assert names(coded) == [
            "(intercept)", "cond_B", "cond_C", "x", "cond_B:x", "cond_C:x",
        ]
        assert [c.variable for c in coded.columns] == [1, 2, 2, 3, 4, 4]
        np.testing.assert_array_equal(coded.matrix[:, 4], [0, 2, 0, 0, 0, 5, 0])
        assert [v.name for v in coded.variables] == ["(intercept)", "cond", "x", "cond:x"]
        assert [v.variable_type for v in coded.variables] == [
            VariableType.INTERCEPT,
            VariableType.CATEGORICAL,
            VariableType.CONTINUOUS,
            VariableType.INTERACTION,
        ]

    def test_numeric_categorical_levels(self):
        events = [
            {"type": "fix", "level": 1.0},
            {"type": "fix", "level": 2.0},
            {"type": "fix", "level": 3.0},
        ]
        coded = code(events, "y ~ cat(level)")
        assert names(coded) == ["(intercept)", "level_2", "level_3"]

    def test_levels_come_from_modeled_rows(self):
        events = [
            {"type": "fix", "cond": "B"},
            {"type": "fix", "cond": "C"},
            {"type": "stim", "cond": "A"},
        ]
        coded = code(events, "y ~ cond")
        assert names(coded) == ["(intercept)", "cond_C"]

    def test_missing_categorical_value_is_nan(self):
        events = [
            {"type": "fix", "level": 1},
            {"type": "fix", "level": None},
            {"type": "fix", "level": 2},
        ]
        coded = code(events, "y ~ cat(level)")
        assert np.isnan(coded.matrix[1, 1])
        assert coded.matrix[2, 1] == 1

    def test_single_level_is_degenerate(self):
        events = [
            {"type": "fix", "cond": "A"},
            {"type": "fix", "cond": "A"},
            {"type": "stim", "cond": "B"},
        ]
        with pytest.raises(DegenerateColumnError) as exc_info:
            code(events, "y ~ cat(cond)")
        assert exc_info.value.context["variable"] == "cond"

    def test_no_columns(self, fixation_events):
        with pytest.raises(EmptyDesignMatrixError):
            code(fixation_events, "y ~ -1")

    def test_interaction_only_predictors_are_listed_once(self):
        events = [
            {"type": "fix", "a": 1.0, "b": 2.0, "c": 3.0},
            {"type": "fix", "a": 2.0, "b": 1.0, "c": 5.0},
        ]
        coded = code(events, "y ~ a:b + a:c")
        assert coded.dropped_main_effects == ["a", "b", "c"]
        assert [v.name for v in coded.variables] == ["(intercept)", "a:b", "a:c"]


class TestInteractionWithoutMarginal:
    """Test full coding of categorical predictors whose marginal term is absent."""

    @pytest.fixture
    def events(self):
        return [
            {"type": "fix", "x": 1.0, "c": "A", "d": "P"},
            {"type": "fix", "x": 2.0, "c": "B", "d": "Q"},
            {"type": "fix", "x": 3.0, "c": "C", "d": "P"},
            {"type": "fix", "x": 4.0, "c": "A", "d": "Q"},
        ]

    def test_all_levels_without_main_effect(self, events):
        coded = code(events, "y ~ x:cat(c)")
        assert names(coded) == ["(intercept)", "x:c_A", "x:c_B", "x:c_C"]
        np.testing.assert_array_equal(coded.matrix[:, 1], [1, 0, 0, 4])
        np.testing.assert_array_equal(coded.matrix[:, 1:].sum(axis=1), [1, 2, 3, 4])

    def test_reduced_with_main_effect(self, events):
        coded = code(events, "y ~ x + x:cat(c)")
        assert names(coded) == ["(intercept)", "x", "x:c_B", "x:c_C"]

    def test_full_levels_are_plain_indicators_under_effects(self, events):
        coded = code(events, "y ~ x:cat(c)", schema=CodingSchema.EFFECTS)
        assert names(coded) == ["(intercept)", "x:c_A", "x:c_B", "x:c_C"]
        # x centered on its mean 2.5, rows outside c=A stay zero
        np.testing.assert_array_equal(coded.matrix[:, 1], [-1.5, 0, 0, 1.5])

    def test_only_first_categorical_gets_all_levels(self, events):
        coded = code(events, "y ~ cat(c):cat(d)")
        assert names(coded) == [
            "(intercept)", "c_A:d_Q", "c_B:d_Q", "c_C:d_Q",
        ]

    def test_second_predictor_gets_all_levels(self, events):
        # c:d without c spans the cells that d alone leaves out
        coded = code(events, "y ~ cat(d) + cat(c):cat(d)")
        assert names(coded) == [
            "(intercept)", "d_Q", "c_B:d_P", "c_B:d_Q", "c_C:d_P", "c_C:d_Q",
        ]
        assert coded.variables[2].name == "c:d"


class TestEffectsCoding:
    """Test effects (sum-to-zero) coding."""

    def test_reference_level_is_minus_one(self, fixation_events):
        coded = code(fixation_events, "y ~ cat(cond)", schema=CodingSchema.EFFECTS)
        assert names(coded) == ["(intercept)", "cond_B", "cond_C"]
        np.testing.assert_array_equal(coded.matrix[0, 1:], [-1, -1])
        np.testing.assert_array_equal(coded.matrix[1, 1:], [1, 0])
        np.testing.assert_array_equal(coded.matrix[2, 1:], [0, 1])

    def test_balanced_columns_sum_to_zero(self, fixation_events):
        coded = code(fixation_events, "y ~ cat(cond)", schema=CodingSchema.EFFECTS)
        np.testing.assert_allclose(coded.matrix[:, 1:].sum(axis=0), 0)

    def test_continuous_predictors_are_centered(self, fixation_events):
        coded = code(fixation_events, "y ~ x", schema=CodingSchema.EFFECTS)
        assert coded.effects_means == {"x": pytest.approx(3.5)}
        np.testing.assert_allclose(coded.matrix[:, 1], [-2.5, -1.5, -0.5, 0, 0.5, 1.5, 2.5])

    def test_unmodeled_rows_stay_zero(self, fixation_events):
        coded = code(fixation_events, "y ~ cat(cond) * x", schema=CodingSchema.EFFECTS)
        assert not coded.matrix[3].any()
