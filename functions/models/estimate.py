"""Estimate models for QuoteDesk.

ValidatedProjectInput is the only shape the pricing engine accepts;
EstimateResult is what it returns.
"""

import math
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.fields import MaterialTier, ServiceType, SlopeLevel, SubBaseType


# =============================================================================
# ENUMS
# =============================================================================


class LineItemKind(str, Enum):
    """Category of an estimate line item."""

    MATERIAL = "material"
    LABOR = "labor"
    SURCHARGE = "surcharge"
    FEE = "fee"


class PriorityTier(str, Enum):
    """Lead priority derived from the point estimate."""

    VIP = "VIP PRIORITY"
    STANDARD = "Standard"


# =============================================================================
# PRICING INPUT
# =============================================================================


class ValidatedProjectInput(BaseModel):
    """Fully populated project facts ready for pricing.

    Invariant: length > 0, width > 0 and area == length × width. Area is
    derived when omitted.
    """

    model_config = ConfigDict(frozen=True)

    service: ServiceType
    excavator_access: bool = Field(..., description="Can a 90cm mini excavator reach the work area")
    driveway_access: bool = Field(..., description="Is there a driveway for skip placement")
    slope: SlopeLevel
    sub_base: SubBaseType = SubBaseType.DIRT
    has_demolition: bool = False
    length: float = Field(..., gt=0, description="Length in metres")
    width: float = Field(..., gt=0, description="Width in metres")
    area: float = Field(..., gt=0, description="Area in m² (linear metres for fencing)")
    material_tier: MaterialTier
    deck_height: Optional[float] = Field(default=None, ge=0, description="Deck height in metres")

    @model_validator(mode="before")
    @classmethod
    def derive_area(cls, data: Any) -> Any:
        """Fill area from length × width when it was not supplied."""
        if isinstance(data, dict) and data.get("area") is None:
            length, width = data.get("length"), data.get("width")
            if isinstance(length, (int, float)) and isinstance(width, (int, float)):
                data = {**data, "area": float(length) * float(width)}
        return data

    @model_validator(mode="after")
    def validate_area(self) -> "ValidatedProjectInput":
        """Ensure area equals length × width."""
        if not math.isclose(self.area, self.length * self.width, rel_tol=1e-9, abs_tol=1e-9):
            raise ValueError(
                f"Area must equal length × width, got: "
                f"area={self.area}, length={self.length}, width={self.width}"
            )
        return self


# =============================================================================
# PRICING OUTPUT
# =============================================================================


class LineItem(BaseModel):
    """One row of the estimate breakdown, in whole pounds."""

    code: str = Field(..., description="Stable identifier, e.g. MATERIAL or SCAFFOLDING")
    label: str
    amount: int
    note: Optional[str] = None
    kind: LineItemKind


class EstimateResult(BaseModel):
    """Bounded estimate with its breakdown and narrative."""

    lower_bound: int = Field(..., ge=0)
    estimate: int = Field(..., ge=0)
    upper_bound: int = Field(..., ge=0)
    subtotal: int = Field(..., ge=0, description="Material + labor + surcharges, before fees")
    line_items: List[LineItem] = Field(default_factory=list)
    reasoning: str = Field(..., description="Surveyor's note composed from the line items")
    priority_tier: PriorityTier
    material_name: Optional[str] = None
    source: str = Field(default="local", description="'local' or 'remote_review'")

    @model_validator(mode="after")
    def validate_order(self) -> "EstimateResult":
        """Ensure lower_bound <= estimate <= upper_bound."""
        if not (self.lower_bound <= self.estimate <= self.upper_bound):
            raise ValueError(
                f"Estimate range must be lower <= estimate <= upper, got: "
                f"lower={self.lower_bound}, estimate={self.estimate}, upper={self.upper_bound}"
            )
        return self

    def has_item(self, code: str) -> bool:
        return any(item.code == code for item in self.line_items)

    def items_of_kind(self, kind: LineItemKind) -> List[LineItem]:
        return [item for item in self.line_items if item.kind == kind]
