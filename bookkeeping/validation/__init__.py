"""Validation package."""

from bookkeeping.validation.validator import OperationValidator

__all__ = ["OperationValidator"]
