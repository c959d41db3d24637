"""Dialogue State Manager for QuoteDesk.

Owns the cumulative fact set for one conversation:
- merges extractor output with per-field acceptance rules
- scores completeness (0-100)
- walks the question ladder and decides when pricing can run
- tracks per-field retries for the quick-reply fallback

Every function is pure: states are frozen and a new one is returned.
"""

import math
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import ValidationError
from models.conversation import ConversationState, ExtractionResult
from models.estimate import ValidatedProjectInput
from models.fields import (
    DEMOLITION_SERVICES,
    EXCAVATION_SERVICES,
    GROUND_SERVICES,
    LIGHT_SITE_SERVICES,
    IntakeField,
    MaterialTier,
    ServiceType,
    SlopeLevel,
    SubBaseType,
)

logger = structlog.get_logger()

# A new area below this cannot shrink a larger known area unless dimensions were asked
SMALL_AREA_GUARD_M2 = 2.0
READY_THRESHOLD = 85


# =============================================================================
# QUESTION TEXT
# =============================================================================

GREETING = (
    "Good day. I'm the Digital Front Desk for your professional landscaping requirements. "
    "I'll calculate a ballpark investment for your project. What service are you interested in today?"
)

DIMENSION_QUESTIONS: Dict[ServiceType, str] = {
    ServiceType.HARDSCAPING: "How large of an area are we working with? You can give me rough dimensions like '10 meters by 5 meters' or just the total area.",
    ServiceType.DECKING: "How large of an area are we working with? You can give me rough dimensions like '8m x 4m' or just the total area.",
    ServiceType.SOFTSCAPING: "What's the size of the area you'd like landscaped? Rough dimensions are fine.",
    ServiceType.MOWING: "How large is your lawn? You can tell me in square meters or give rough dimensions.",
    ServiceType.PLANTING: "What size is the planting area? Rough dimensions or total area would help.",
    ServiceType.FENCING: "How much fencing do you need? You can give me the perimeter length in meters.",
    ServiceType.FRAMING: "What's the footprint of the structure you're thinking about? Give me rough dimensions.",
}

TIER_QUESTIONS: Dict[ServiceType, str] = {
    ServiceType.HARDSCAPING: "What material are you considering? Options range from concrete pavers (budget-friendly) to Indian sandstone (mid-range) to porcelain paving (premium).",
    ServiceType.DECKING: "What material are you considering: softwood, composite, or hardwood like Ipe?",
    ServiceType.SOFTSCAPING: "What level of landscaping are you thinking? Basic planting, premium specimens, or full architectural design?",
    ServiceType.MOWING: "What level of service do you need? Basic cut and collect, precision cut with edging, or full grounds maintenance?",
    ServiceType.PLANTING: "What type of plants are you thinking about? Container plants, specimen plants, or architectural planting?",
    ServiceType.FENCING: "What material are you considering? Softwood panels, treated slats, or premium cedar?",
    ServiceType.FRAMING: "What type of structure? Basic pergola frame, engineered timber, or custom hardwood?",
}

QUESTIONS: Dict[IntakeField, str] = {
    IntakeField.SERVICE: GREETING,
    IntakeField.EXCAVATOR_ACCESS: "Is there a way for a small digger (about 90cm wide) to get into your garden, or is the gate narrower than that?",
    IntakeField.DECK_HEIGHT: "How high off the ground will this deck be? This helps me factor in safety requirements.",
    IntakeField.OVERGROWN: "When was it last cut? If it's been more than 2 weeks, I'll need to factor in extra time for collection.",
    IntakeField.GATE_COUNT: "Will you need any gates in this fence?",
    IntakeField.DRIVEWAY: "Is there a driveway where we can place a skip for waste disposal, or would it need to go on the street?",
    IntakeField.SLOPE: "How would you describe the ground: fairly flat, moderate slope, or quite steep?",
    IntakeField.DEMOLITION: "Is there any existing hardscape or structure we'd need to remove first?",
    IntakeField.FULL_NAME: "Before I prepare your estimate, may I have your full name for the project summary?",
    IntakeField.CONTACT_PHONE: "And what's the best phone number to reach you at?",
    IntakeField.CONTACT_EMAIL: "And your email address?",
    IntakeField.USER_BUDGET: "What budget have you set aside for this project? This helps me understand if we're aligned.",
    IntakeField.POSTAL_CODE: "Finally, what's the postcode for the project site?",
}

SERVICE_ACKS: Dict[ServiceType, str] = {
    ServiceType.HARDSCAPING: "Hardscaping can really transform a space.",
    ServiceType.DECKING: "Decking is a great choice for outdoor living.",
    ServiceType.SOFTSCAPING: "Landscaping will bring so much character to your garden.",
    ServiceType.MOWING: "I can help you get that lawn looking pristine.",
    ServiceType.PLANTING: "Beautiful planting can make all the difference.",
    ServiceType.FENCING: "A good fence adds privacy and defines your space.",
    ServiceType.FRAMING: "Outdoor structures create wonderful focal points.",
}

TIER_ACKS: Dict[MaterialTier, str] = {
    MaterialTier.LUXURY: "Premium choice, that'll look stunning.",
    MaterialTier.PREMIUM: "Solid mid-range option with great longevity.",
    MaterialTier.STANDARD: "Good budget-friendly option.",
}


# =============================================================================
# LADDER
# =============================================================================


def current_field(state: ConversationState) -> Optional[IntakeField]:
    """First unsatisfied field on the question ladder, or None when done."""
    service = state.service
    if service is None:
        return IntakeField.SERVICE
    if state.area is None:
        return IntakeField.DIMENSIONS
    if state.material_tier is None:
        return IntakeField.MATERIAL_TIER
    if service in EXCAVATION_SERVICES and state.excavator_access is None:
        return IntakeField.EXCAVATOR_ACCESS
    if service == ServiceType.DECKING and state.deck_height is None:
        return IntakeField.DECK_HEIGHT
    if service == ServiceType.MOWING and state.is_overgrown is None:
        return IntakeField.OVERGROWN
    if service == ServiceType.FENCING and state.gate_count is None:
        return IntakeField.GATE_COUNT
    if service in GROUND_SERVICES and state.driveway_access is None:
        return IntakeField.DRIVEWAY
    if service in GROUND_SERVICES and state.slope is None:
        return IntakeField.SLOPE
    if service in DEMOLITION_SERVICES and state.has_demolition is None:
        return IntakeField.DEMOLITION
    for field in (
        IntakeField.FULL_NAME,
        IntakeField.CONTACT_PHONE,
        IntakeField.CONTACT_EMAIL,
        IntakeField.USER_BUDGET,
        IntakeField.POSTAL_CODE,
    ):
        if not state.has(field):
            return field
    return None


def question_for(field: IntakeField, service: Optional[ServiceType]) -> str:
    """Question text for a field, specialised per service where it matters."""
    if field == IntakeField.DIMENSIONS and service is not None:
        return DIMENSION_QUESTIONS[service]
    if field == IntakeField.MATERIAL_TIER and service is not None:
        return TIER_QUESTIONS[service]
    return QUESTIONS.get(field, "Could you tell me a bit more?")


def next_question(state: ConversationState) -> Optional[str]:
    """Next question to ask, or None once every ladder stage is satisfied."""
    field = current_field(state)
    if field is None:
        return None
    return question_for(field, state.service)


# =============================================================================
# COMPLETENESS
# =============================================================================


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completeness(state: ConversationState) -> int:
    """Weighted 0-100 score of how much pricing information is known.

    Service 25, geometry 30, material tier 20, plus a service-dependent
    bundle: mowing 25 (overgrowth), planting/softscaping 10 (slope 5,
    driveway 5), everything else 25 (access 10, driveway 5, slope 5,
    demolition 5). The score is normalised by the bundle's maximum.
    """
    score = 0
    max_score = 75

    if state.service is not None:
        score += 25
    if state.area is not None or (state.length is not None and state.width is not None):
        score += 30
    if state.material_tier is not None:
        score += 20

    if state.service == ServiceType.MOWING:
        max_score += 25
        if state.is_overgrown is not None:
            score += 25
    elif state.service in LIGHT_SITE_SERVICES:
        max_score += 10
        if state.slope is not None:
            score += 5
        if state.driveway_access is not None:
            score += 5
    else:
        max_score += 25
        if state.excavator_access is not None:
            score += 10
        if state.driveway_access is not None:
            score += 5
        if state.slope is not None:
            score += 5
        if state.has_demolition is not None:
            score += 5

    return _round_half_up(score / max_score * 100)


def ready_for_estimate(state: ConversationState) -> bool:
    """Whether the fact set is complete enough to price.

    The completeness score is necessary but not sufficient.
    """
    if state.user_budget is None or state.postal_code is None:
        return False
    if state.service is None or state.area is None or state.material_tier is None:
        return False
    if state.service in GROUND_SERVICES and state.slope is None:
        return False
    if state.service in EXCAVATION_SERVICES and state.excavator_access is None:
        return False
    if state.service == ServiceType.FENCING and state.gate_count is None:
        return False
    if state.service == ServiceType.DECKING and state.deck_height is None:
        return False
    return completeness(state) >= READY_THRESHOLD


# =============================================================================
# MERGE
# =============================================================================


def _open(state: ConversationState, attribute: str, field: IntakeField, asked: Optional[IntakeField]) -> bool:
    """Accept a value while the slot is empty or the field is being asked."""
    return getattr(state, attribute) is None or asked == field


def _geometry_updates(
    state: ConversationState,
    extracted: ExtractionResult,
    asked: Optional[IntakeField],
) -> Dict[str, Any]:
    if extracted.length is not None and extracted.width is not None:
        new_area = extracted.length * extracted.width
        updates = {"length": extracted.length, "width": extracted.width, "area": new_area}
    elif extracted.area is not None:
        new_area = extracted.area
        updates = {"length": None, "width": None, "area": new_area}
    else:
        return {}

    shrinks_real_area = (
        new_area < SMALL_AREA_GUARD_M2
        and state.area is not None
        and state.area > SMALL_AREA_GUARD_M2
    )
    if shrinks_real_area and asked != IntakeField.DIMENSIONS:
        logger.debug("small_area_rejected", new_area=new_area, existing_area=state.area)
        return {}
    return updates


def merge(
    state: ConversationState,
    extracted: ExtractionResult,
    asked: Optional[IntakeField],
) -> ConversationState:
    """Fold one extraction into the fact set.

    Args:
        state: Current fact set
        extracted: Output of extract() (or the remote fallback)
        asked: Field the last question asked about

    Returns:
        New ConversationState with accepted fields and a fresh completeness score
    """
    updates: Dict[str, Any] = {}

    if extracted.service is not None and _open(state, "service", IntakeField.SERVICE, asked):
        updates["service"] = extracted.service

    updates.update(_geometry_updates(state, extracted, asked))

    simple_fields = (
        ("material_tier", IntakeField.MATERIAL_TIER),
        ("excavator_access", IntakeField.EXCAVATOR_ACCESS),
        ("driveway_access", IntakeField.DRIVEWAY),
        ("slope", IntakeField.SLOPE),
        ("has_demolition", IntakeField.DEMOLITION),
        ("is_overgrown", IntakeField.OVERGROWN),
        ("contact_phone", IntakeField.CONTACT_PHONE),
        ("contact_email", IntakeField.CONTACT_EMAIL),
    )
    for attribute, field in simple_fields:
        value = getattr(extracted, attribute)
        if value is not None and _open(state, attribute, field, asked):
            updates[attribute] = value

    merged_service = updates.get("service", state.service)
    if extracted.deck_height is not None and _open(state, "deck_height", IntakeField.DECK_HEIGHT, asked):
        if asked == IntakeField.DECK_HEIGHT or merged_service == ServiceType.DECKING:
            updates["deck_height"] = extracted.deck_height

    if extracted.gate_count is not None and _open(state, "gate_count", IntakeField.GATE_COUNT, asked):
        if asked == IntakeField.GATE_COUNT or merged_service == ServiceType.FENCING:
            updates["gate_count"] = extracted.gate_count

    if extracted.full_name and (asked == IntakeField.FULL_NAME or extracted.self_introduction):
        updates["full_name"] = extracted.full_name

    if extracted.user_budget is not None and (asked == IntakeField.USER_BUDGET or extracted.explicit_budget):
        updates["user_budget"] = extracted.user_budget

    if extracted.postal_code and (extracted.strict_postcode or asked == IntakeField.POSTAL_CODE):
        updates["postal_code"] = extracted.postal_code

    for attribute in ("sub_base", "wants_drainage", "wants_led_lighting", "start_timing", "soil_note"):
        value = getattr(extracted, attribute)
        if value is not None and getattr(state, attribute) is None:
            updates[attribute] = value

    merged = state.with_fields(**updates)
    return merged.with_fields(completeness=completeness(merged))


# =============================================================================
# RETRY PROTOCOL
# =============================================================================


def field_was_set(field: IntakeField, before: ConversationState, after: ConversationState) -> bool:
    """Whether the merge produced a value for this specific field."""
    new_value = after.value_of(field)
    return new_value is not None and new_value != before.value_of(field)


def apply_retry_outcome(
    before: ConversationState,
    after: ConversationState,
    asked: Optional[IntakeField],
) -> ConversationState:
    """Clear retries on success; otherwise count the miss and surface quick replies."""
    if asked is None:
        return after
    if field_was_set(asked, before, after):
        return after.with_fields(retry_counts={}, show_quick_replies=False, last_asked=asked)

    count = after.retry_counts.get(asked, 0) + 1
    logger.info("field_retry", field=asked.value, attempt=count)
    return after.with_fields(
        retry_counts={**after.retry_counts, asked: count},
        show_quick_replies=count >= 1,
        last_asked=asked,
    )


# =============================================================================
# ACKNOWLEDGMENT
# =============================================================================


def acknowledgment(before: ConversationState, after: ConversationState) -> str:
    """Short acknowledgment of what this turn added, from fixed templates."""
    acks = []
    if after.service is not None and after.service != before.service:
        acks.append(SERVICE_ACKS[after.service])
    if after.area is not None and after.area != before.area:
        unit = "meters" if after.service == ServiceType.FENCING else "square meters"
        acks.append(f"So roughly {after.area:.0f} {unit}.")
    if after.material_tier is not None and after.material_tier != before.material_tier:
        acks.append(TIER_ACKS[after.material_tier])
    if after.excavator_access is False and before.excavator_access is None:
        acks.append("Since the access is narrow, I'll need to factor in manual labor for the excavation phase.")
    if after.slope == SlopeLevel.STEEP and before.slope != SlopeLevel.STEEP:
        acks.append("Given that the ground is steep, we'll need specialized grading equipment.")
    if after.deck_height is not None and after.deck_height > 1.5 and after.deck_height != before.deck_height:
        acks.append(f"At {after.deck_height:.1f}m height, we'll need scaffolding for safety.")
    if after.is_overgrown and not before.is_overgrown:
        acks.append("Since it's been a while since the last cut, I'll factor in extra time for collection.")
    if after.gate_count and after.gate_count != before.gate_count:
        plural = "gates" if after.gate_count > 1 else "gate"
        acks.append(f"I'll include {after.gate_count} {plural} in the estimate.")
    return " ".join(acks)


# =============================================================================
# PRICING HAND-OFF
# =============================================================================


def project_input_from_state(state: ConversationState) -> ValidatedProjectInput:
    """Build the pricing input from a conversational fact set.

    Unasked site conditions take their cheapest assumption: access yes,
    driveway yes, flat, no demolition, dirt sub-base. With only an area the
    footprint is recorded as area × 1.

    Raises:
        ValidationError: If service, geometry or material tier is missing
    """
    for field, value in (
        (IntakeField.SERVICE, state.service),
        (IntakeField.DIMENSIONS, state.area),
        (IntakeField.MATERIAL_TIER, state.material_tier),
    ):
        if value is None:
            raise ValidationError(f"Cannot price without {field.value}", field=field.value)

    if state.length is not None and state.width is not None:
        length, width = state.length, state.width
    else:
        length, width = state.area, 1.0

    try:
        return ValidatedProjectInput(
            service=state.service,
            excavator_access=True if state.excavator_access is None else state.excavator_access,
            driveway_access=True if state.driveway_access is None else state.driveway_access,
            slope=state.slope or SlopeLevel.FLAT,
            sub_base=state.sub_base or SubBaseType.DIRT,
            has_demolition=bool(state.has_demolition),
            length=length,
            width=width,
            material_tier=state.material_tier,
            deck_height=state.deck_height,
        )
    except PydanticValidationError as e:
        errors = [f"{err['loc']}: {err['msg']}" for err in e.errors()]
        raise ValidationError("Fact set failed project validation", details={"errors": errors})
