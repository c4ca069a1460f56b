"""
Formula term representations for eventdesign.

Defines the types of terms that can appear in a linear model formula.
Splines are declared out of band (see ``spec.SplineSpec``) and never
appear as terms.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple, Sequence
from dataclasses import dataclass
from enum import Enum

from ..core.exceptions import FormulaError


INTERACTION_SEPARATOR = ":"
INTERCEPT_NAME = "(intercept)"


class TermType(str, Enum):
    """Types of formula terms."""

    INTERCEPT = "intercept"
    VARIABLE = "variable"
    INTERACTION = "interaction"


@dataclass(frozen=True)
class Term(ABC):
    """Abstract base class for formula terms."""

    @property
    @abstractmethod
    def term_type(self) -> TermType:
        """Kind of term."""

    @abstractmethod
    def get_variable_names(self) -> Tuple[str, ...]:
        """Predictor names used in this term, in formula order."""

    @abstractmethod
    def to_string(self) -> str:
        """Convert term to string representation."""

    @property
    def degree(self) -> int:
        """Number of predictors in the term (0 for the intercept)."""
        return len(self.get_variable_names())

    def is_intercept(self) -> bool:
        return self.term_type is TermType.INTERCEPT

    def is_interaction(self) -> bool:
        return self.term_type is TermType.INTERACTION


@dataclass(frozen=True)
class InterceptTerm(Term):
    """Intercept term (constant)."""

    @property
    def term_type(self) -> TermType:
        return TermType.INTERCEPT

    def get_variable_names(self) -> Tuple[str, ...]:
        return ()

    def to_string(self) -> str:
        return INTERCEPT_NAME


@dataclass(frozen=True)
class VariableTerm(Term):
    """Main effect of a single predictor."""

    variable_name: str

    def __post_init__(self):
        if not self.variable_name or not isinstance(self.variable_name, str):
            raise FormulaError(
                formula=str(self.variable_name),
                reason="variable names must be non-empty strings",
            )

    @property
    def term_type(self) -> TermType:
        return TermType.VARIABLE

    def get_variable_names(self) -> Tuple[str, ...]:
        return (self.variable_name,)

    def to_string(self) -> str:
        return self.variable_name


@dataclass(frozen=True)
class InteractionTerm(Term):
    """Interaction between two or more predictors (e.g. a:b)."""

    variables: Tuple[str, ...]

    def __post_init__(self):
        if len(self.variables) < 2:
            raise FormulaError(
                formula=INTERACTION_SEPARATOR.join(self.variables),
                reason="an interaction requires at least 2 variables",
            )
        if len(set(self.variables)) != len(self.variables):
            raise FormulaError(
                formula=INTERACTION_SEPARATOR.join(self.variables),
                reason="duplicate variables in interaction",
            )

    @property
    def term_type(self) -> TermType:
        return TermType.INTERACTION

    def get_variable_names(self) -> Tuple[str, ...]:
        return tuple(self.variables)

    def to_string(self) -> str:
        return INTERACTION_SEPARATOR.join(self.variables)


def create_term(variables: Sequence[str]) -> Term:
    """
    Create the appropriate Term object from its predictor names.

    Examples:
        [] -> InterceptTerm()
        ["age"] -> VariableTerm("age")
        ["age", "sex"] -> InteractionTerm(("age", "sex"))
    """
    variables = tuple(variables)
    if not variables:
        return InterceptTerm()
    if len(variables) == 1:
        return VariableTerm(variables[0])
    return InteractionTerm(variables)


def order_terms(terms: Sequence[Term]) -> List[Term]:
    """Stable sort of terms by degree, dropping duplicates."""
    unique: List[Term] = []
    seen = set()
    for term in terms:
        key = frozenset(term.get_variable_names())
        if key not in seen:
            seen.add(key)
            unique.append(term)
    return sorted(unique, key=lambda t: t.degree)


def predictor_names(terms: Sequence[Term]) -> List[str]:
    """Union of predictor names across terms in first-appearance order."""
    names: List[str] = []
    for term in terms:
        for name in term.get_variable_names():
            if name not in names:
                names.append(name)
    return names
