"""
Operation Input Models

Typed parameters the UI collects before calling the ledger, plus the
boundary validation result types.

IMPORTANT: The ledger itself does not re-validate these. The
OperationValidator (bookkeeping.validation) is the place where bad input
is reported to the user.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from bookkeeping.models.accounts import ZERO, LedgerModel


class OpeningInventoryLine(LedgerModel):
    """Inventory on hand at onboarding."""
    name: str = Field(..., min_length=1, max_length=200)
    cost: Decimal = Field(default=ZERO, ge=0, description="Unit cost")
    stock: Decimal = Field(default=ZERO, ge=0)


class OpeningAssetLine(LedgerModel):
    """Fixed asset owned at onboarding."""
    name: str = Field(..., min_length=1, max_length=200)
    value: Decimal = Field(default=ZERO, ge=0)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)


class CartItem(LedgerModel):
    """A product being sold."""
    product_id: Optional[str] = None
    name: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal("1"), ge=0)
    price: Decimal = Field(..., ge=0, description="Unit price")


class IngredientRequest(LedgerModel):
    """An ingredient to consume in a production run."""
    item_id: str
    quantity: Decimal = Field(..., ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'not_found')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage boundary validation.

    Stage 1: Input validation (required fields, positive amounts)
    Stage 2: Reference validation (ids exist, names unique, stock available)
    """

    operation: str = Field(..., description="Operation being validated")
    input_valid: bool
    references_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.input_valid and self.references_valid

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
