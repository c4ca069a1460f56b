"""
Event table for eventdesign.

Builds a row-aligned attribute table from an event array. Events whose
type is not modeled keep their row; their values are masked instead of
removed so that row ``i`` of every design matrix still belongs to event
``i``.
"""

import numbers
import numpy as np
import pandas as pd
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..core.exceptions import MissingVariableError, VariableTypeError
from ..utils.logging import get_logger


logger = get_logger(__name__)

TYPE_FIELD = "type"
MISSING = np.nan
MASKED_STRING = ""


def is_missing(value: Any) -> bool:
    """True for absent values: None, NaN, empty strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, np.ndarray)):
        return len(value) == 0
    if isinstance(value, numbers.Number):
        return bool(pd.isna(value))
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (numbers.Number, np.number)) and not isinstance(value, str)


def normalize_event(event: Mapping[str, Any]) -> Dict[str, Any]:
    """Replace every absent attribute value with the missing marker."""
    return {key: (MISSING if is_missing(value) else value) for key, value in event.items()}


class EventTable:
    """
    Columnar view over an event array restricted to a set of event types.

    Args:
        events: Sequence of event mappings with a ``type`` field, or a
            DataFrame with one row per event
        eventtypes: Event type(s) to model; matching is case-insensitive
    """

    def __init__(
        self,
        events: Union[Sequence[Mapping[str, Any]], pd.DataFrame],
        eventtypes: Union[str, Iterable[str]],
    ):
        self.logger = get_logger(self.__class__.__name__)

        if isinstance(events, pd.DataFrame):
            records = events.to_dict("records")
        else:
            records = [dict(event) for event in events]

        self.eventtypes = [eventtypes] if isinstance(eventtypes, str) else list(eventtypes)
        self.frame = pd.DataFrame([normalize_event(r) for r in records])
        self.n_events = len(records)

        wanted = {str(t).lower() for t in self.eventtypes}
        if TYPE_FIELD in self.frame:
            types = self.frame[TYPE_FIELD]
            self.modeled = np.array(
                [not is_missing(t) and str(t).lower() in wanted for t in types],
                dtype=bool,
            )
        else:
            self.modeled = np.zeros(self.n_events, dtype=bool)

        self._mask_excluded()

        self.logger.debug(
            f"Event table: {self.n_events} events, {int(self.modeled.sum())} modeled",
            eventtypes=self.eventtypes,
        )

    @property
    def variables(self) -> List[str]:
        return [str(column) for column in self.frame.columns]

    @property
    def excluded_rows(self) -> np.ndarray:
        return np.flatnonzero(~self.modeled)

    def _mask_excluded(self) -> None:
        excluded = ~self.modeled
        if not excluded.any():
            return
        for column in self.frame.columns:
            values = self.frame[column]
            present = values[~values.isna()]
            if present.map(_is_number).all():
                self.frame[column] = pd.to_numeric(values, errors="coerce").astype(float)
                self.frame.loc[excluded, column] = MISSING
            else:
                self.frame[column] = values.astype(object)
                self.frame.loc[excluded, column] = MASKED_STRING

    def validate_variables(self, names: Iterable[str], formula: Optional[str] = None) -> None:
        """
        Check that every name is an attribute of the events.

        Raises:
            MissingVariableError: Listing all absent names
        """
        available = set(self.variables)
        missing = [name for name in names if name not in available]
        if missing:
            raise MissingVariableError(
                missing_variables=missing,
                available_variables=self.variables,
                formula=formula,
            )

    def select(self, names: Sequence[str]) -> pd.DataFrame:
        """Project the table onto ``names`` in the given order."""
        self.validate_variables(names)
        return self.frame.loc[:, list(names)]

    def is_string_column(self, name: str) -> bool:
        """
        Classify a column as string (True) or numeric (False).

        Only modeled rows are inspected. Missing values are fine in numeric
        columns; a string column must have a string on every modeled row.

        Raises:
            VariableTypeError: For columns mixing strings with anything else
        """
        values = self.frame.loc[self.modeled, name]
        missing = values.isna().to_numpy(dtype=bool)
        is_string = values.map(lambda v: isinstance(v, str)).to_numpy(dtype=bool)
        is_number = values.map(_is_number).to_numpy(dtype=bool)

        if np.all(is_number | missing):
            return False
        if np.all(is_string):
            return True

        rows = np.flatnonzero(self.modeled)
        raise VariableTypeError(
            variable=name,
            n_strings=int(is_string.sum()),
            n_rows=int(len(values)),
            offending_rows=[int(r) for r in rows[~is_string]],
        )

    def resolve_categorical(self, names: Sequence[str], categorical: Sequence[str]) -> List[str]:
        """
        Type-check ``names`` and promote undeclared string columns.

        Returns:
            The categorical list extended by promoted string columns
        """
        categorical = list(categorical)
        for name in names:
            if self.is_string_column(name) and name not in categorical:
                self.logger.warning(
                    f'The variable "{name}" was detected as a string but not '
                    "marked as categorical. It is modeled as categorical, be "
                    "sure this is what you want."
                )
                categorical.append(name)
        return categorical

    def numeric_values(self, name: str) -> np.ndarray:
        """Float values of a column as a fresh array; masked and missing rows are NaN."""
        values = pd.to_numeric(self.frame[name], errors="coerce").to_numpy(dtype=float, copy=True)
        values[~self.modeled] = MISSING
        return values

    def level_values(self, name: str) -> np.ndarray:
        """Raw values of a column as objects; masked and missing rows are None."""
        values = self.frame[name].to_numpy(dtype=object).copy()
        for i, value in enumerate(values):
            if not self.modeled[i] or is_missing(value):
                values[i] = None
        return values
