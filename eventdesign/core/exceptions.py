"""
Exception classes for eventdesign.

Provides rich error information with actionable suggestions.
"""

from typing import List, Optional, Dict, Any


class EventDesignError(Exception):
    """
    Base exception class for eventdesign with rich error information.

    Provides structured error information including suggestions for
    resolution and the context needed to diagnose the failure.
    """

    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.error_code = error_code
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error message with suggestions."""
        message = self.message

        if self.error_code:
            message = f"[{self.error_code}] {message}"

        if self.suggestions:
            message += "\n\nSuggestions:"
            for i, suggestion in enumerate(self.suggestions, 1):
                message += f"\n  {i}. {suggestion}"

        return message


class FormulaError(EventDesignError):
    """Exception raised for malformed formulas."""

    def __init__(
        self,
        formula: Optional[str] = None,
        reason: Optional[str] = None,
        **kwargs,
    ):
        if formula and reason:
            message = f"Invalid formula '{formula}': {reason}"
        elif formula:
            message = f"Invalid formula specification: {formula}"
        else:
            message = "Formula error"

        suggestions = kwargs.pop("suggestions", None) or [
            "Check formula syntax (e.g. 'y ~ a + b', 'y ~ a*b', 'y ~ a:b')",
            "Mark categorical predictors with cat(name)",
            "Declare splines as spl(name, k), never inside an interaction",
        ]

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="FORMULA",
            context={"formula": formula, "reason": reason},
            **kwargs,
        )


class MissingVariableError(EventDesignError):
    """Exception raised when a formula references unknown event attributes."""

    def __init__(
        self,
        missing_variables: List[str],
        available_variables: Optional[List[str]] = None,
        formula: Optional[str] = None,
        **kwargs,
    ):
        message = (
            "Could not find all variables specified in formula "
            f"'{formula}' in the event table: {', '.join(missing_variables)}"
        )
        suggestions = [
            "Check variable spelling and case sensitivity",
            "Make sure every event carries the attribute (empty values are fine)",
        ]
        if available_variables:
            suggestions.insert(
                0, f"Available variables: {', '.join(sorted(available_variables))}"
            )

        extra = kwargs.pop("suggestions", None)
        if extra:
            suggestions = list(extra) + suggestions

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="MISSING_VARIABLE",
            context={
                "formula": formula,
                "missing_variables": list(missing_variables),
                "available_variables": available_variables,
            },
            **kwargs,
        )
        self.missing_variables = list(missing_variables)


class VariableTypeError(EventDesignError, TypeError):
    """Exception raised for event columns mixing strings with other values."""

    def __init__(
        self,
        variable: str,
        n_strings: int,
        n_rows: int,
        offending_rows: Optional[List[int]] = None,
        **kwargs,
    ):
        if n_rows and n_strings == n_rows:
            message = (
                f"Variable '{variable}' holds strings in all {n_rows} modeled "
                f"events, numeric values are needed here"
            )
            suggestions = ["Wrap the variable in cat() to code it as categorical"]
        else:
            message = (
                f"Input event values have to be string or numeric. Variable "
                f"'{variable}' is mixed: strings found in {n_strings} out of "
                f"{n_rows} events"
            )
            suggestions = [
                "Sometimes one or a couple of events have NaNs instead of strings",
                "Fill the attribute for every modeled event",
            ]
        if offending_rows:
            suggestions.insert(0, f"Non-string events: {offending_rows[:20]}")

        extra = kwargs.pop("suggestions", None)
        if extra:
            suggestions = list(extra) + suggestions

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="VARIABLE_TYPE",
            context={
                "variable": variable,
                "n_strings": n_strings,
                "n_rows": n_rows,
                "offending_rows": offending_rows,
            },
            **kwargs,
        )


class DegenerateColumnError(EventDesignError):
    """Exception raised when a coded column cannot be tied to a variable."""

    def __init__(
        self,
        variable: Optional[str] = None,
        levels: Optional[List[Any]] = None,
        **kwargs,
    ):
        if variable is not None:
            message = (
                f"Predictor '{variable}' has only one level/value on the "
                f"modeled events: {levels}"
            )
        else:
            message = "At least one design matrix column maps to no variable"

        suggestions = [
            "Remove predictors that are constant on the modeled events",
            "Check the eventtypes selection for this formula",
        ]

        extra = kwargs.pop("suggestions", None)
        if extra:
            suggestions = list(extra) + suggestions

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="DEGENERATE_COLUMN",
            context={"variable": variable, "levels": levels},
            **kwargs,
        )


class EmptyDesignMatrixError(EventDesignError):
    """Exception raised when a formula produces no columns at all."""

    def __init__(self, formula: Optional[str] = None, **kwargs):
        message = f"Formula '{formula}' produced no design matrix columns"
        suggestions = [
            "Did you specify 'y ~ -1'? At least a single column is needed",
            "Use 'y ~ 1' for an intercept-only model",
        ]

        extra = kwargs.pop("suggestions", None)
        if extra:
            suggestions = list(extra) + suggestions

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="EMPTY_DESIGN",
            context={"formula": formula},
            **kwargs,
        )


class ShapeMismatchError(EventDesignError, ValueError):
    """Exception raised when sizes that must agree do not."""

    def __init__(
        self,
        what: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
        **kwargs,
    ):
        if expected is not None and actual is not None:
            message = f"{what}: expected {expected}, got {actual}"
        else:
            message = what

        suggestions = kwargs.pop("suggestions", None) or [
            "New columns need one value per event (matrix row)",
            "Specify as many formulas as eventtype groups",
        ]

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="SHAPE_MISMATCH",
            context={"what": what, "expected": expected, "actual": actual},
            **kwargs,
        )


class PreconditionError(EventDesignError):
    """Exception raised when an operation runs on an unprepared record."""

    def __init__(self, reason: str, **kwargs):
        suggestions = kwargs.pop("suggestions", None) or [
            "Build a design matrix with build_design_matrix() first",
        ]

        super().__init__(
            message=f"Precondition failed: {reason}",
            suggestions=suggestions,
            error_code="PRECONDITION",
            context={"reason": reason},
            **kwargs,
        )


class ConfigurationError(EventDesignError):
    """Exception raised for configuration issues."""

    def __init__(
        self,
        config_key: Optional[str] = None,
        value: Any = None,
        allowed: Optional[List[str]] = None,
        **kwargs,
    ):
        if config_key:
            message = f"Invalid configuration for '{config_key}': {value!r}"
            suggestions = [
                f"Check the value for configuration key '{config_key}'",
                "Review configuration file syntax",
                "Check environment variable formatting",
            ]
            if allowed:
                suggestions.insert(0, f"Allowed values: {', '.join(allowed)}")
        else:
            message = "Configuration error"
            suggestions = [
                "Check configuration file syntax",
                "Verify all required settings are provided",
            ]

        extra = kwargs.pop("suggestions", None)
        if extra:
            suggestions = extra + suggestions

        super().__init__(
            message=message,
            suggestions=suggestions,
            error_code="CONFIG",
            context={"config_key": config_key, "value": value, "allowed": allowed},
            **kwargs,
        )
