"""Structured error types raised across astrotiming."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

__all__ = [
    "AstroTimingError",
    "CalculationError",
    "ConfigurationError",
    "FailurePolicy",
    "ValidationError",
]


class AstroTimingError(Exception):
    """Base error carrying a machine readable code and safe context.

    ``context`` must only hold identifiers such as body names or field
    names. Raw chart payloads and reference dates never belong here
    because messages end up in logs and CLI output.
    """

    default_code = "astrotiming_error"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.context = dict(context or {})

    def as_dict(self) -> dict[str, Any]:
        return {
            "error": self.error_code,
            "message": str(self),
            "context": dict(self.context),
        }


class ValidationError(AstroTimingError, ValueError):
    """Input failed validation at a public boundary."""

    default_code = "validation_error"


class ConfigurationError(AstroTimingError, ValueError):
    """A rule table, trigger table or settings object is malformed."""

    default_code = "configuration_error"


class CalculationError(AstroTimingError, ArithmeticError):
    """A computation produced a non-finite or otherwise unusable value."""

    default_code = "calculation_error"


class FailurePolicy(str, Enum):
    """How batch operations treat a single failing body or date.

    ``raise`` propagates the error, ``skip`` drops the item and records a
    warning, ``zero`` substitutes a 0° position and records a warning.
    """

    RAISE = "raise"
    SKIP = "skip"
    ZERO = "zero"

    @classmethod
    def parse(cls, value: "FailurePolicy | str") -> "FailurePolicy":
        if isinstance(value, FailurePolicy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown failure policy {value!r}",
                context={"policy": str(value)},
            ) from exc
