"""
Design matrix construction for eventdesign.

Builds the design matrix of one formula fitted to one group of event
types. The build runs through fixed stages and stops at the first
failure, so callers never see a partial record.
"""

from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import pandas as pd

from .coding import CategoricalCoder
from .parser import FormulaParser
from .record import DesignMatrixRecord
from .splines import SplineBasisService, SplineInjector, bspline_basis
from ..config.settings import DesignConfig
from ..core.exceptions import EventDesignError, FormulaError, ShapeMismatchError
from ..data.events import EventTable
from ..utils.logging import get_logger


logger = get_logger(__name__)

Events = Union[Sequence[Mapping[str, Any]], pd.DataFrame]


class BuildStage(str, Enum):
    """Stages of a single design matrix build, in execution order."""

    PARSE_FORMULA = "parse_formula"
    BUILD_TABLE = "build_table"
    VALIDATE_PREDICTORS = "validate_predictors"
    CODE = "code"
    INJECT_SPLINES = "inject_splines"
    FINALIZE = "finalize"


class DesignMatrixBuilder:
    """
    Builds design matrices from a formula and an event array.

    Args:
        options: Coding schema, spline spacing and forced-categorical names
        spline_basis: Spline-basis service used for ``spl()`` predictors
    """

    def __init__(
        self,
        options: Optional[DesignConfig] = None,
        spline_basis: SplineBasisService = bspline_basis,
    ):
        self.options = options or DesignConfig()
        self.parser = FormulaParser()
        self.coder = CategoricalCoder(self.options.codingschema)
        self.injector = SplineInjector(self.options.splinespacing, spline_basis)
        self.logger = get_logger(self.__class__.__name__)
        self.stage: Optional[BuildStage] = None

    def build(
        self,
        events: Events,
        formula: str,
        eventtypes: Union[str, Iterable[str]],
        splines: Optional[Iterable[Sequence]] = None,
    ) -> DesignMatrixRecord:
        """
        Build the design matrix for one formula and one event group.

        Args:
            events: Event array; every event has a ``type`` field
            formula: Formula such as ``'y ~ cat(cond) * x + spl(speed, 5)'``
            eventtypes: Event type(s) the formula is fitted on
            splines: Extra ``(name, k)`` spline declarations

        Returns:
            DesignMatrixRecord with one row per event

        Raises:
            EventDesignError: Any failure; ``context['stage']`` names the
                stage that failed
        """
        try:
            return self._build(events, formula, eventtypes, splines)
        except EventDesignError as e:
            e.context.setdefault("stage", self.stage.value if self.stage else None)
            self.logger.debug(f"Build failed at stage {self.stage}: {e.message}")
            raise

    def _advance(self, stage: BuildStage) -> None:
        self.stage = stage
        self.logger.debug(f"Stage: {stage.value}")

    def _build(self, events, formula, eventtypes, splines) -> DesignMatrixRecord:
        self._advance(BuildStage.PARSE_FORMULA)
        spec = self.parser.parse(formula, categorical=self.options.categorical, splines=splines)

        self._advance(BuildStage.BUILD_TABLE)
        table = EventTable(events, eventtypes)
        self.logger.info(
            f"Modeling event(s) [{','.join(map(str, table.eventtypes))}] using formula: {formula}"
        )

        self._advance(BuildStage.VALIDATE_PREDICTORS)
        table.validate_variables(spec.required_variables(), formula=formula)
        categorical = table.resolve_categorical(spec.predictors, spec.categorical)

        self._advance(BuildStage.CODE)
        coded = self.coder.code(table, spec, categorical)
        record = DesignMatrixRecord(
            matrix=coded.matrix,
            columns=coded.columns,
            variables=coded.variables,
            formula_strings=[formula],
            eventtype_groups=[list(table.eventtypes)],
            effects_means=coded.effects_means,
        )

        self._advance(BuildStage.INJECT_SPLINES)
        self.injector.inject(record, table, spec.splines)

        self._advance(BuildStage.FINALIZE)
        check_record(record)
        return record
def check_record(record: DesignMatrixRecord, report_nans: bool = True) -> None:
    """
    Check the record's structural invariants and report NaNs.

    Raises:
        ShapeMismatchError: If metadata and matrix disagree in size
        FormulaError: If two columns end up with the same name
    """
    n_columns = record.matrix.shape[1]
    if len(record.columns) != n_columns:
        raise ShapeMismatchError("column metadata entries", expected=n_columns, actual=len(record.columns))

    duplicates = record.duplicate_column_names()
    if duplicates:
        raise FormulaError(
            formula="; ".join(record.formula_strings),
            reason=f"column names are not unique: {', '.join(duplicates)}",
            suggestions=[
                "An event attribute is named like a categorical column "
                "(e.g. attribute 'cond_B' next to cat(cond) with level 'B')",
                "Rename the attribute before building the design matrix",
            ],
        )

    nan_columns = record.nan_columns() if report_nans else []
    if nan_columns:
        logger.warning(
            "NaNs detected in designmat, try to impute them before fitting the model",
            columns=",".join(nan_columns),
        )
