"""
Categorical coding for eventdesign.

Turns the cleaned event table and a parsed formula into coded design
matrix columns, with reference (treatment) or effects (sum-to-zero)
coding for categorical predictors.
"""

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .record import ColumnInfo, Component, VariableInfo, VariableType, UNASSIGNED
from .spec import FormulaSpec
from .terms import INTERCEPT_NAME, Term, TermType
from ..config.settings import CodingSchema
from ..core.exceptions import DegenerateColumnError, EmptyDesignMatrixError
from ..data.events import EventTable
from ..utils.logging import get_logger


logger = get_logger(__name__)

# coded column of one predictor: values plus its (predictor, level) component
FactorColumn = Tuple[np.ndarray, Component]


def format_level(value) -> str:
    """Printable level label; integral floats lose their '.0'."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


@dataclass
class CodedDesign:
    """Coded columns of one formula, before splines are added."""

    matrix: np.ndarray
    columns: List[ColumnInfo]
    variables: List[VariableInfo]
    effects_means: Dict[str, float] = field(default_factory=dict)
    dropped_main_effects: List[str] = field(default_factory=list)


class CategoricalCoder:
    """
    Codes predictors and their interactions into design matrix columns.

    Reference coding drops the first (sorted) level of every categorical
    predictor. Effects coding keeps the same columns but codes the first
    level as -1, and mean-centers continuous predictors on the modeled rows.
    An interaction whose categorical predictor has no marginal term in the
    formula codes all levels of that predictor instead, as patsy does.
    """

    def __init__(self, codingschema: CodingSchema = CodingSchema.REFERENCE):
        self.codingschema = CodingSchema(codingschema)
        self.logger = get_logger(self.__class__.__name__)

    def code(self, table: EventTable, spec: FormulaSpec, categorical: Sequence[str]) -> CodedDesign:
        """
        Build the coded matrix for all terms of ``spec``.

        Args:
            table: Event table restricted to the modeled event types
            spec: Parsed formula
            categorical: Predictors to dummy/effects code

        Returns:
            CodedDesign with one variable per term

        Raises:
            DegenerateColumnError: If a categorical predictor has fewer than
                two levels on the modeled rows
            EmptyDesignMatrixError: If the formula yields no columns
        """
        effects_means: Dict[str, float] = {}
        factors: Dict[str, List[FactorColumn]] = {}
        full_factors: Dict[str, List[FactorColumn]] = {}
        for predictor in spec.predictors:
            if predictor in categorical:
                factors[predictor] = self._code_categorical(table, predictor)
            else:
                factors[predictor] = self._code_continuous(table, predictor, effects_means)

        present = {frozenset(term.get_variable_names()) for term in spec.terms}
        full_coded = {}
        for term in spec.interaction_terms:
            predictor = self._full_rank_factor(term, categorical, present)
            if predictor is not None:
                full_coded[term] = predictor
                if predictor not in full_factors:
                    full_factors[predictor] = self._code_categorical(table, predictor, full=True)

        vectors: List[np.ndarray] = []
        columns: List[ColumnInfo] = []
        variables: List[VariableInfo] = []

        for term in spec.terms:
            variable_index = len(variables) + 1
            term_factors = factors
            if term in full_coded:
                term_factors = dict(factors)
                term_factors[full_coded[term]] = full_factors[full_coded[term]]
            for values, components in self._term_columns(term, term_factors, table.n_events):
                vectors.append(values)
                columns.append(ColumnInfo(components=components, variable=variable_index))
            variables.append(VariableInfo(
                parts=self._term_parts(term),
                variable_type=self._term_type(term, categorical),
            ))

        dropped = self._dropped_main_effects(spec)
        if dropped:
            self.logger.debug(f"Predictors only used in interactions: {dropped}")

        if not columns:
            raise EmptyDesignMatrixError(formula=spec.formula_string)
        if any(column.variable == UNASSIGNED for column in columns):
            raise DegenerateColumnError()

        matrix = np.column_stack(vectors).astype(float)
        # coding statistics are computed, now drop the rows nobody models
        matrix[~table.modeled, :] = 0

        return CodedDesign(
            matrix=matrix,
            columns=columns,
            variables=variables,
            effects_means=effects_means,
            dropped_main_effects=dropped,
        )

    def _code_categorical(self, table: EventTable, predictor: str, full: bool = False) -> List[FactorColumn]:
        """
        Code one categorical predictor.

        The reduced coding drops the first level. ``full`` keeps one plain
        0/1 indicator per level, under either coding schema.
        """
        values = table.level_values(predictor)
        missing = np.array([v is None for v in values], dtype=bool)
        levels = sorted({v for v in values if v is not None})

        if len(levels) < 2:
            raise DegenerateColumnError(variable=predictor, levels=[format_level(l) for l in levels])

        def indicator(level) -> np.ndarray:
            return np.array([v is not None and v == level for v in values], dtype=float)

        reference = indicator(levels[0])
        coded = []
        for level in (levels if full else levels[1:]):
            column = indicator(level)
            if not full and self.codingschema is CodingSchema.EFFECTS:
                column = column - reference
            column[missing] = np.nan
            coded.append((column, (predictor, format_level(level))))
        return coded

    def _code_continuous(
        self, table: EventTable, predictor: str, effects_means: Dict[str, float]
    ) -> List[FactorColumn]:
        values = table.numeric_values(predictor)
        if self.codingschema is CodingSchema.EFFECTS:
            observed = values[~np.isnan(values)]
            mean = float(observed.mean()) if observed.size else float("nan")
            effects_means[predictor] = mean
            if observed.size:
                values = values - mean
        return [(values, (predictor, None))]

    @staticmethod
    def _full_rank_factor(term: Term, categorical: Sequence[str], present: set) -> Optional[str]:
        """
        Categorical predictor of an interaction that gets all of its levels.

        That is the first categorical predictor whose marginal term (the
        interaction without it) is not in the formula, so ``x:cat(c)``
        without ``x`` codes every level of ``c``. The other predictors
        of the term keep their reduced coding.
        """
        names = term.get_variable_names()
        for predictor in names:
            if predictor in categorical and frozenset(names) - {predictor} not in present:
                return predictor
        return None

    @staticmethod
    def _term_columns(
        term: Term, factors: Dict[str, List[FactorColumn]], n_rows: int
    ) -> List[Tuple[np.ndarray, Tuple[Component, ...]]]:
        if term.is_intercept():
            return [(np.ones(n_rows), ((INTERCEPT_NAME, None),))]

        columns = []
        for combination in itertools.product(*(factors[p] for p in term.get_variable_names())):
            values = np.ones(n_rows)
            for factor_values, _ in combination:
                values = values * factor_values
            columns.append((values, tuple(component for _, component in combination)))
        return columns

    @staticmethod
    def _term_parts(term: Term) -> Tuple[str, ...]:
        if term.is_intercept():
            return (INTERCEPT_NAME,)
        return term.get_variable_names()

    @staticmethod
    def _term_type(term: Term, categorical: Sequence[str]) -> VariableType:
        if term.term_type is TermType.INTERCEPT:
            return VariableType.INTERCEPT
        if term.term_type is TermType.INTERACTION:
            return VariableType.INTERACTION
        if term.get_variable_names()[0] in categorical:
            return VariableType.CATEGORICAL
        return VariableType.CONTINUOUS

    @staticmethod
    def _dropped_main_effects(spec: FormulaSpec) -> List[str]:
        """
        Predictors used in interactions without a main effect of their own.

        Each predictor is listed once, however many interactions use it.
        """
        main_effects = set(spec.main_effects)
        dropped: List[str] = []
        for term in spec.interaction_terms:
            for predictor in term.get_variable_names():
                if predictor not in main_effects and predictor not in dropped:
                    dropped.append(predictor)
        return dropped
