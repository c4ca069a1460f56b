"""
Formula parser for eventdesign.

Parses Wilkinson-style formulas with two extensions:

- ``cat(X)`` marks predictor ``X`` as categorical (dummy/effects coded)
- ``spl(X, k)`` declares a non-linear predictor ``X`` modeled with ``k``
  spline basis functions

Expansion of the remaining ``+``, ``*`` and ``:`` algebra is delegated
to patsy.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from patsy import ModelDesc, PatsyError

from .terms import Term, create_term, order_terms, predictor_names
from .spec import FormulaSpec, SplineSpec
from ..core.exceptions import FormulaError
from ..utils.logging import get_logger


logger = get_logger(__name__)

CAT_PATTERN = re.compile(r"\bcat\((.+?)\)")
SPL_PATTERN = re.compile(r"\bspl\(([^()]*)\)")
SPL_INTERACTION_PATTERN = re.compile(r"[*:]spl\(|\bspl\([^()]*\)[*:]")


class FormulaParser:
    """
    Parser for model formulas of the form ``response ~ terms``.

    Supports:
    - Main effects: a + b
    - Crossing: a * b (expands to a + b + a:b)
    - Interactions only: a:b
    - Intercept control: +1 (default), -1 or 0 (no intercept)
    - Categorical markers: cat(a)
    - Spline predictors: spl(speed, 10), not allowed inside interactions
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def parse(
        self,
        formula_string: str,
        categorical: Optional[Iterable[str]] = None,
        splines: Optional[Iterable[Sequence]] = None,
    ) -> FormulaSpec:
        """
        Parse a formula string into a FormulaSpec.

        Args:
            formula_string: Formula such as ``'y ~ cat(cond) * x + spl(speed,5)'``
            categorical: Additional predictor names to treat as categorical
            splines: Additional ``(name, k)`` spline declarations

        Returns:
            FormulaSpec with terms, predictors, categorical and spline markers

        Raises:
            FormulaError: For malformed ``spl()``, spline interactions or
                syntax the term expander rejects
        """
        if not isinstance(formula_string, str) or not formula_string.strip():
            raise FormulaError(
                formula=str(formula_string),
                reason="formula is empty",
                suggestions=["Use 'y ~ 1' for intercept-only models"],
            )

        self.logger.debug(f"Parsing formula: {formula_string}")
        text = re.sub(r"\s", "", formula_string)

        if SPL_INTERACTION_PATTERN.search(text):
            raise FormulaError(
                formula=formula_string,
                reason="spline interactions are not supported",
                suggestions=["Add splines as separate terms: 'y ~ a + spl(b, 5)'"],
            )

        found_categorical = CAT_PATTERN.findall(text)
        found_splines = self._extract_splines(text)

        text = CAT_PATTERN.sub(r"\1", text)
        response, rhs = self._split_response(self._remove_splines(text))

        terms = self._expand_terms(rhs, formula_string)
        predictors = predictor_names(terms)

        spec = FormulaSpec(
            formula_string=formula_string,
            terms=terms,
            predictors=predictors,
            categorical=_unique(list(categorical or []) + found_categorical),
            splines=self._merge_splines(list(splines or []) + found_splines),
            response=response,
        )

        self.logger.debug(
            f"Parsed formula: {len(terms)} terms, predictors={predictors}, "
            f"categorical={spec.categorical}, splines={spec.spline_variables}"
        )
        return spec

    @staticmethod
    def _extract_splines(text: str) -> List[SplineSpec]:
        splines = []
        for match in SPL_PATTERN.finditer(text):
            arguments = match.group(1).split(",")
            if len(arguments) != 2 or not all(arguments):
                raise FormulaError(
                    formula=text,
                    reason=(
                        f"wrongly defined spline in: {text}. "
                        "Needs to be: spl(your_eventname,10)"
                    ),
                )
            name, knot_count = arguments
            try:
                knot_count = int(knot_count)
            except ValueError:
                raise FormulaError(
                    formula=text,
                    reason=f"number of splines in {match.group(0)} is not an integer",
                )
            splines.append(SplineSpec(name, knot_count))
        return splines

    @staticmethod
    def _remove_splines(text: str) -> str:
        """Drop ``+spl(...)`` terms; splines never reach the term expander."""
        text = re.sub(r"\+" + SPL_PATTERN.pattern, "", text)
        # a spline written first on the right-hand side
        text = re.sub(r"(^|~)" + SPL_PATTERN.pattern + r"\+?", r"\1", text)
        return text

    @staticmethod
    def _split_response(text: str) -> Tuple[Optional[str], str]:
        if "~" in text:
            response, rhs = text.split("~", 1)
        else:
            response, rhs = "", text
        if not rhs:
            rhs = "1"
        return (response or None), rhs

    def _expand_terms(self, rhs: str, formula_string: str) -> List[Term]:
        try:
            description = ModelDesc.from_formula("~" + rhs)
        except PatsyError as e:
            raise FormulaError(formula=formula_string, reason=str(e)) from e

        if description.lhs_termlist:
            raise FormulaError(formula=formula_string, reason="more than one '~' found")

        terms = [
            create_term([factor.code for factor in term.factors])
            for term in description.rhs_termlist
        ]
        return order_terms(terms)

    def _merge_splines(self, declarations: List) -> List[SplineSpec]:
        merged: List[SplineSpec] = []
        for declaration in declarations:
            spline = SplineSpec.coerce(declaration)
            existing = next((s for s in merged if s.variable == spline.variable), None)
            if existing is None:
                merged.append(spline)
            elif existing.knot_count != spline.knot_count:
                self.logger.warning(
                    f"Spline '{spline.variable}' declared twice, keeping "
                    f"{existing.knot_count} splines and ignoring {spline.knot_count}"
                )
        return merged


def _unique(names: List[str]) -> List[str]:
    result: List[str] = []
    for name in names:
        if name not in result:
            result.append(name)
    return result


# Convenience functions


def parse_formula(
    formula_string: str,
    categorical: Optional[Iterable[str]] = None,
    splines: Optional[Iterable[Sequence]] = None,
) -> FormulaSpec:
    """
    Parse a single formula string.

    Args:
        formula_string: Formula string
        categorical: Additional categorical predictor names
        splines: Additional ``(name, k)`` spline declarations

    Returns:
        FormulaSpec object
    """
    return FormulaParser().parse(formula_string, categorical=categorical, splines=splines)
