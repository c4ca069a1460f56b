"""
Formula specification classes for eventdesign.

Defines the parsed structure of a model formula.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from .terms import Term, TermType
from ..core.exceptions import FormulaError


@dataclass(frozen=True)
class SplineSpec:
    """A non-linear spline predictor: ``spl(variable, knot_count)``."""

    variable: str
    knot_count: int

    def __post_init__(self):
        if not self.variable:
            raise FormulaError(formula=f"spl({self.variable},{self.knot_count})",
                               reason="spline variable name is empty")
        if isinstance(self.knot_count, bool) or not isinstance(self.knot_count, int):
            raise FormulaError(formula=f"spl({self.variable},{self.knot_count})",
                               reason="the number of splines must be an integer")

    @classmethod
    def coerce(cls, value: Union["SplineSpec", Sequence]) -> "SplineSpec":
        """Accept ``SplineSpec`` objects or ``(name, k)`` pairs."""
        if isinstance(value, SplineSpec):
            return value
        if isinstance(value, (str, bytes)) or len(value) != 2:
            raise FormulaError(
                formula=str(value),
                reason="splines are declared as (name, number_of_splines) pairs",
            )
        name, knot_count = value
        try:
            knot_count = int(knot_count)
        except (TypeError, ValueError):
            raise FormulaError(formula=str(value),
                               reason="the number of splines must be an integer")
        return cls(str(name), knot_count)


@dataclass
class FormulaSpec:
    """
    Parsed model formula.

    Examples:
        y ~ 1                      # Intercept only
        y ~ a + b                  # Additive effects
        y ~ cat(a) * b             # Categorical a, crossed with b
        y ~ a + spl(speed, 10)     # Additive a, non-linear speed
    """

    formula_string: str
    terms: List[Term]
    predictors: List[str]
    categorical: List[str] = field(default_factory=list)
    splines: List[SplineSpec] = field(default_factory=list)
    response: Optional[str] = None

    @property
    def has_intercept(self) -> bool:
        return any(term.is_intercept() for term in self.terms)

    @property
    def interaction_terms(self) -> List[Term]:
        return [term for term in self.terms if term.is_interaction()]

    @property
    def main_effects(self) -> List[str]:
        """Predictors that have a main-effect term of their own."""
        return [
            term.get_variable_names()[0]
            for term in self.terms
            if term.term_type is TermType.VARIABLE
        ]

    @property
    def spline_variables(self) -> List[str]:
        return [spline.variable for spline in self.splines]

    def required_variables(self) -> List[str]:
        """Every event attribute this formula reads, in formula order."""
        names = list(self.predictors)
        for name in self.spline_variables:
            if name not in names:
                names.append(name)
        return names

    def is_categorical(self, name: str) -> bool:
        return name in self.categorical

    def __str__(self) -> str:
        return self.formula_string
