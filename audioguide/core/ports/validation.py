"""
Field Validator Interface.

Reservation, payment and user-form validators are pure predicates owned
by the surrounding UI. The access flows accept them through this
contract and run them before changing entitlement state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ValidationResult:
    """Validator verdict with human-readable messages."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(is_valid=True)

    @classmethod
    def invalid(cls, *errors: str) -> ValidationResult:
        return cls(is_valid=False, errors=list(errors))


class FieldValidatorPort(Protocol):
    """Pure validator over submitted form data."""

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        ...


def merge_results(results: list[ValidationResult]) -> ValidationResult:
    """Combine several verdicts; invalid if any is invalid."""
    errors = [e for r in results for e in r.errors]
    return ValidationResult(is_valid=all(r.is_valid for r in results), errors=errors)
