"""
Combination of per-group design matrices for eventdesign.

Several formulas, each fitted to its own group of event types, end up
side by side in one design matrix. Groups are built one after another:
whether a name of group ``k`` needs its ``k_`` prefix depends on every
name already taken by groups ``1..k-1``.
"""

from dataclasses import replace
from typing import Dict, Optional, Sequence

from .design_matrix import DesignMatrixBuilder, Events, check_record
from .record import DesignMatrixRecord, UNASSIGNED
from .terms import INTERACTION_SEPARATOR
from ..core.exceptions import ShapeMismatchError
from ..utils.logging import get_logger


logger = get_logger(__name__)


class MultiGroupCombiner:
    """Builds one record per (formula, event group) pair and concatenates them."""

    def __init__(self, builder: Optional[DesignMatrixBuilder] = None):
        self.builder = builder or DesignMatrixBuilder()
        self.logger = get_logger(self.__class__.__name__)

    def build(
        self,
        events: Events,
        formulas: Sequence[str],
        eventtype_groups: Sequence,
        splines: Optional[Sequence] = None,
    ) -> DesignMatrixRecord:
        """
        Build and combine the design matrices of all groups.

        Args:
            events: Event array shared by all groups
            formulas: One formula per group
            eventtype_groups: One event type (or list of types) per group
            splines: Optional list with one list of ``(name, k)`` per group

        Raises:
            ShapeMismatchError: If the per-group lists differ in length
        """
        if len(formulas) != len(eventtype_groups):
            raise ShapeMismatchError(
                "number of eventtype groups (one per formula)",
                expected=len(formulas),
                actual=len(eventtype_groups),
            )
        if splines is not None and len(splines) != len(formulas):
            raise ShapeMismatchError(
                "number of spline lists (one per formula)",
                expected=len(formulas),
                actual=len(splines),
            )

        self.logger.info(f"Multiple events with separate model-formula detected ({len(formulas)} groups)")

        combined: Optional[DesignMatrixRecord] = None
        for k, (formula, eventtypes) in enumerate(zip(formulas, eventtype_groups), start=1):
            group_splines = splines[k - 1] if splines is not None else None
            record = self.builder.build(events, formula, eventtypes, splines=group_splines)
            combined = record if combined is None else combine_records(combined, record, k)

        check_record(combined, report_nans=False)
        return combined


def taken_names(record: DesignMatrixRecord) -> set:
    """Variable names of ``record`` with interactions split into their parts."""
    names = set()
    for name in record.variable_names:
        names.update(name.split(INTERACTION_SEPARATOR))
    return names


def collision_renames(
    taken: set, taken_columns: set, record: DesignMatrixRecord, k: int
) -> Dict[str, str]:
    """
    Map each colliding predictor name of ``record`` to ``k_<name>``.

    A predictor collides when its name is already taken, or when one of
    its columns would repeat a column name already in the record (a
    predictor ``cond_lo`` next to an earlier ``cond`` with level ``lo``).
    """
    mapping: Dict[str, str] = {}
    for variable in record.variables:
        for part in variable.parts:
            if part in taken:
                mapping[part] = f"{k}_{part}"
    for column in record.columns:
        if column.renamed(mapping).name in taken_columns:
            for predictor, _ in column.components:
                mapping.setdefault(predictor, f"{k}_{predictor}")
    return mapping


def combine_records(combined: DesignMatrixRecord, record: DesignMatrixRecord, k: int) -> DesignMatrixRecord:
    """
    Append group ``k``'s record to the accumulated record.

    Colliding predictor names of the new group get a ``k_`` prefix, in
    variable names and in the matching component of their column names
    (so ``cond_B`` becomes ``2_cond_B``). Variable indices and event
    groups of the new columns are shifted past those already present;
    ``UNASSIGNED`` stays unassigned.
    """
    mapping = collision_renames(taken_names(combined), set(combined.column_names), record, k)
    if mapping:
        logger.debug(f"Renaming colliding variables of group {k}: {mapping}")

    variable_offset = combined.max_variable_index
    eventgroup_offset = combined.max_eventgroup
    column_offset = combined.matrix.shape[1]

    columns = [
        replace(
            column.renamed(mapping),
            variable=column.variable if column.variable == UNASSIGNED else column.variable + variable_offset,
            eventgroup=column.eventgroup + eventgroup_offset,
        )
        for column in record.columns
    ]
    combined.add_columns(record.matrix, columns, [v.renamed(mapping) for v in record.variables])

    combined.splines.extend(
        replace(spline.shifted(column_offset), name=mapping.get(spline.name, spline.name))
        for spline in record.splines
    )
    combined.formula_strings.extend(record.formula_strings)
    combined.eventtype_groups.extend(record.eventtype_groups)
    combined.effects_means.update(
        {mapping.get(name, name): mean for name, mean in record.effects_means.items()}
    )
    return combined
