"""
Main API functions for eventdesign.

High-level entry points used by downstream stages (time expansion,
deconvolution fitting).
"""

from typing import Iterable, Optional, Sequence, Union

from ..config.settings import EventDesignConfig, get_default_config
from ..formulas.combine import MultiGroupCombiner
from ..formulas.design_matrix import DesignMatrixBuilder, Events
from ..formulas.record import DesignMatrixRecord, append_column as _append_column
from ..formulas.spec import SplineSpec
from ..formulas.splines import SplineBasisService, bspline_basis
from ..utils.logging import get_logger
from .exceptions import ConfigurationError, FormulaError, ShapeMismatchError

logger = get_logger(__name__)


def _is_group_list(eventtypes) -> bool:
    """True for ``[['A1', 'A2'], ['B']]`` style eventtype specifications."""
    return not isinstance(eventtypes, str) and any(
        not isinstance(group, str) for group in eventtypes
    )


def build_design_matrix(
    events: Events,
    formulas: Union[str, Sequence[str]],
    eventtypes: Union[str, Sequence[str], Sequence[Sequence[str]], None] = None,
    categorical: Optional[Iterable[str]] = None,
    splinespacing: Optional[str] = None,
    codingschema: Optional[str] = None,
    splines: Optional[Sequence] = None,
    spline_basis: Optional[SplineBasisService] = None,
    config: Optional[EventDesignConfig] = None,
) -> DesignMatrixRecord:
    """
    Build a design matrix from an event array and one or more formulas.

    Args:
        events: Event records, each with a ``type`` and named attributes
        formulas: A formula, or one formula per eventtype group. Formulas
            use Wilkinson notation plus ``cat(X)`` for categorical and
            ``spl(X, k)`` for spline predictors
        eventtypes: Event types the formula is fitted on; with several
            formulas, one list of event types per formula
        categorical: Predictors to treat as categorical
        splinespacing: linear, log, logreverse or quantiles
        codingschema: reference or effects
        splines: Extra ``(name, k)`` spline declarations; with several
            formulas, one list per formula
        spline_basis: Spline-basis service (default: cubic B-splines)
        config: Configuration supplying defaults for the options above

    Returns:
        DesignMatrixRecord with one row per event

    Raises:
        FormulaError, MissingVariableError, VariableTypeError,
        DegenerateColumnError, EmptyDesignMatrixError, ShapeMismatchError,
        ConfigurationError

    Examples:
        >>> record = build_design_matrix(events, "y ~ cat(cond) + x", ["fix"])

        >>> record = build_design_matrix(
        ...     events,
        ...     ["y ~ 1 + cat(level) * target", "y ~ 1"],
        ...     [["fixation"], ["StimOnset1", "StimOnset2"]],
        ... )
    """
    if eventtypes is None or (not isinstance(eventtypes, str) and len(eventtypes) == 0):
        raise ConfigurationError(
            config_key="eventtypes",
            value=eventtypes,
            suggestions=["eventtypes are required: name the event types each formula is fitted on"],
        )

    config = config or get_default_config()
    options = config.design_options(
        categorical=categorical,
        splinespacing=splinespacing,
        codingschema=codingschema,
    )
    builder = DesignMatrixBuilder(options, spline_basis=spline_basis or bspline_basis)

    formulas = [formulas] if isinstance(formulas, str) else list(formulas)
    if not formulas:
        raise FormulaError(formula="", reason="no formula given")
    logger.debug(
        f"Building design matrix for {len(formulas)} formula(s)",
        codingschema=options.codingschema.value,
        splinespacing=options.splinespacing.value,
    )

    if len(formulas) > 1:
        # one entry per formula: a type name or a list of type names
        groups = [eventtypes] if isinstance(eventtypes, str) else list(eventtypes)
        return MultiGroupCombiner(builder).build(events, formulas, groups, splines=splines)

    if _is_group_list(eventtypes):
        if len(eventtypes) != 1:
            raise ShapeMismatchError(
                "number of eventtype groups (one per formula)",
                expected=1,
                actual=len(eventtypes),
            )
        eventtypes = eventtypes[0]
    if splines is not None and len(splines) == 1 and _is_spline_group_list(splines):
        splines = splines[0]

    return builder.build(events, formulas[0], eventtypes, splines=splines)


def _is_spline_group_list(splines) -> bool:
    """True for ``[[("a", 5), ("b", 5)]]``, a one-group list of spline lists."""
    first = splines[0]
    if isinstance(first, SplineSpec):
        return False
    return not (len(first) == 2 and isinstance(first[0], str))


def append_column(record: DesignMatrixRecord, values: Sequence[float], label: str) -> DesignMatrixRecord:
    """
    Append a single custom column to a finished design matrix record.

    Raises:
        PreconditionError: If the record has no columns yet
        ShapeMismatchError: If ``values`` does not have one value per row
    """
    return _append_column(record, values, label)
