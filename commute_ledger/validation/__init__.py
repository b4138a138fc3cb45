"""Validation package."""

from commute_ledger.validation.validator import CommuteValidator, raise_for_errors

__all__ = ["CommuteValidator", "raise_for_errors"]
