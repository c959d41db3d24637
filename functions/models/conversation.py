"""Conversation state models for QuoteDesk.

The fact set is an immutable value: every turn produces a new
ConversationState via with_fields()/with_message().
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.fields import IntakeField, MaterialTier, ServiceType, SlopeLevel, SubBaseType


class MessageRole(str, Enum):
    """Who authored a chat message."""

    AGENT = "agent"
    USER = "user"
    ESTIMATE = "estimate"


class ChatMessage(BaseModel):
    """One entry of the conversation transcript."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# Maps each askable field to the state attribute that satisfies it.
# Dimensions are satisfied by the (always derived) area.
FIELD_ATTRIBUTES: Dict[IntakeField, str] = {
    IntakeField.SERVICE: "service",
    IntakeField.DIMENSIONS: "area",
    IntakeField.MATERIAL_TIER: "material_tier",
    IntakeField.EXCAVATOR_ACCESS: "excavator_access",
    IntakeField.DECK_HEIGHT: "deck_height",
    IntakeField.OVERGROWN: "is_overgrown",
    IntakeField.GATE_COUNT: "gate_count",
    IntakeField.DRIVEWAY: "driveway_access",
    IntakeField.SLOPE: "slope",
    IntakeField.DEMOLITION: "has_demolition",
    IntakeField.FULL_NAME: "full_name",
    IntakeField.CONTACT_PHONE: "contact_phone",
    IntakeField.CONTACT_EMAIL: "contact_email",
    IntakeField.USER_BUDGET: "user_budget",
    IntakeField.POSTAL_CODE: "postal_code",
}


# =============================================================================
# FACT SET
# =============================================================================


class ConversationState(BaseModel):
    """Cumulative fact set for one conversation.

    Frozen: use with_fields() to derive the next state. Once length and
    width are both known, area is always their product.
    """

    model_config = ConfigDict(frozen=True)

    # Project
    service: Optional[ServiceType] = None
    area: Optional[float] = Field(default=None, gt=0, description="Area in m² (linear metres for fencing)")
    length: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    material_tier: Optional[MaterialTier] = None

    # Site conditions
    excavator_access: Optional[bool] = None
    driveway_access: Optional[bool] = None
    slope: Optional[SlopeLevel] = None
    has_demolition: Optional[bool] = None
    sub_base: Optional[SubBaseType] = None

    # Service-specific extras
    deck_height: Optional[float] = Field(default=None, ge=0)
    is_overgrown: Optional[bool] = None
    gate_count: Optional[int] = Field(default=None, ge=0)

    # Upsells
    wants_drainage: Optional[bool] = None
    wants_led_lighting: Optional[bool] = None

    # Contact
    full_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    user_budget: Optional[int] = None
    postal_code: Optional[str] = None
    start_timing: Optional[str] = None
    soil_note: Optional[str] = None

    # Bookkeeping
    messages: Tuple[ChatMessage, ...] = ()
    completeness: int = Field(default=0, ge=0, le=100)
    retry_counts: Dict[IntakeField, int] = Field(default_factory=dict)
    last_asked: Optional[IntakeField] = None
    show_quick_replies: bool = False

    @model_validator(mode="before")
    @classmethod
    def derive_area(cls, data: Any) -> Any:
        """Re-derive area from length × width when both are present."""
        if isinstance(data, dict) and data.get("area") is None:
            length, width = data.get("length"), data.get("width")
            if length is not None and width is not None:
                data = {**data, "area": float(length) * float(width)}
        return data

    def with_fields(self, **updates: Any) -> "ConversationState":
        """Return a copy with the given fields replaced."""
        return self.model_copy(update=updates)

    def with_message(self, role: MessageRole, content: str) -> "ConversationState":
        """Return a copy with one message appended to the transcript."""
        return self.model_copy(
            update={"messages": self.messages + (ChatMessage(role=role, content=content),)}
        )

    def value_of(self, field: IntakeField) -> Any:
        """Current value of the attribute that satisfies an intake field."""
        return getattr(self, FIELD_ATTRIBUTES[field])

    def has(self, field: IntakeField) -> bool:
        return self.value_of(field) is not None


# =============================================================================
# EXTRACTION RESULT
# =============================================================================


class ExtractionResult(BaseModel):
    """Sparse facts recognised in a single utterance.

    Only fields with an unambiguous signal are populated. Area is never
    reported together with length and width.
    """

    service: Optional[ServiceType] = None
    area: Optional[float] = Field(default=None, gt=0)
    length: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    material_tier: Optional[MaterialTier] = None

    excavator_access: Optional[bool] = None
    driveway_access: Optional[bool] = None
    slope: Optional[SlopeLevel] = None
    has_demolition: Optional[bool] = None
    sub_base: Optional[SubBaseType] = None

    deck_height: Optional[float] = Field(default=None, ge=0)
    is_overgrown: Optional[bool] = None
    gate_count: Optional[int] = Field(default=None, ge=0)

    wants_drainage: Optional[bool] = None
    wants_led_lighting: Optional[bool] = None

    full_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    user_budget: Optional[int] = None
    postal_code: Optional[str] = None
    start_timing: Optional[str] = None
    soil_note: Optional[str] = None

    # Disambiguation flags consumed by the merge step
    explicit_budget: bool = Field(default=False, description="Budget carried a currency marker or the word 'budget'")
    strict_postcode: bool = Field(default=False, description="Postcode matched the national pattern")
    self_introduction: bool = Field(default=False, description="Utterance contained 'my name is' or similar")

    # Free-text reply suggested by a remote model, never merged into state
    reply: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def drop_area_with_pair(cls, data: Any) -> Any:
        """Area is derived later, so it is dropped when length and width exist."""
        if isinstance(data, dict) and data.get("length") is not None and data.get("width") is not None:
            data = {**data, "area": None}
        return data

    def fields_present(self) -> Set[IntakeField]:
        """Intake fields this result carries a value for."""
        present = {
            field
            for field, attribute in FIELD_ATTRIBUTES.items()
            if getattr(self, attribute) is not None
        }
        if self.length is not None and self.width is not None:
            present.add(IntakeField.DIMENSIONS)
        return present

    @property
    def is_empty(self) -> bool:
        return not self.model_dump(
            exclude_none=True,
            exclude={"explicit_budget", "strict_postcode", "self_introduction", "reply"},
        )

    @property
    def confidence(self) -> int:
        """Rough 0-100 signal of how much project detail was recognised."""
        score = 0
        if self.service is not None:
            score += 30
        if self.area is not None or (self.length is not None and self.width is not None):
            score += 40
        if self.material_tier is not None:
            score += 20
        if self.excavator_access is not None:
            score += 5
        if self.slope is not None:
            score += 5
        return min(score, 100)

    def merge_fields(self) -> List[str]:
        """Names of populated fact fields, for logging."""
        return sorted(
            self.model_dump(
                exclude_none=True,
                exclude={"explicit_budget", "strict_postcode", "self_introduction", "reply"},
            )
        )
