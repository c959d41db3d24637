"""Quick-reply suggestions for QuoteDesk.

Canned answers offered after a failed free-text attempt. Every value is
chosen so that extract() accepts it when the same field is being asked;
tests/unit/test_quick_replies.py checks each one.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from models.fields import IntakeField, ServiceType


@dataclass(frozen=True)
class QuickReply:
    """A clickable option: label shown to the user, value sent as their reply."""
    text: str
    value: str


SERVICE_REPLIES: Tuple[QuickReply, ...] = (
    QuickReply("Patio/Paving", "patio"),
    QuickReply("Decking", "decking"),
    QuickReply("Lawn Mowing", "lawn mowing"),
    QuickReply("Landscaping", "landscaping"),
    QuickReply("Planting", "planting"),
    QuickReply("Fencing", "fencing"),
    QuickReply("Pergola/Structure", "pergola"),
)

DIMENSION_REPLIES: Tuple[QuickReply, ...] = (
    QuickReply("Small (<20m²)", "15 square meters"),
    QuickReply("Medium (20-50m²)", "35 square meters"),
    QuickReply("Large (50-100m²)", "75 square meters"),
    QuickReply("Very Large (>100m²)", "120 square meters"),
)

FENCING_DIMENSION_REPLIES: Tuple[QuickReply, ...] = (
    QuickReply("Short run (~10m)", "10 metres of fencing"),
    QuickReply("Medium run (~25m)", "25 metres of fencing"),
    QuickReply("Long run (~50m)", "50 metres of fencing"),
)

TIER_REPLIES: Dict[ServiceType, Tuple[QuickReply, ...]] = {
    ServiceType.HARDSCAPING: (
        QuickReply("Concrete (Budget)", "basic concrete pavers"),
        QuickReply("Sandstone (Mid)", "indian sandstone"),
        QuickReply("Porcelain (Premium)", "porcelain paving"),
    ),
    ServiceType.DECKING: (
        QuickReply("Softwood", "treated softwood"),
        QuickReply("Composite", "composite decking"),
        QuickReply("Hardwood", "ipe hardwood"),
    ),
    ServiceType.MOWING: (
        QuickReply("Basic Cut", "basic cut and collect"),
        QuickReply("Precision", "precision cut with edging"),
        QuickReply("Full Service", "full grounds maintenance"),
    ),
    ServiceType.PLANTING: (
        QuickReply("Container Plants", "container plants"),
        QuickReply("Specimens", "specimen plants"),
        QuickReply("Architectural", "architectural planting"),
    ),
    ServiceType.FENCING: (
        QuickReply("Softwood", "softwood panels"),
        QuickReply("Treated Slats", "treated slats"),
        QuickReply("Cedar", "premium cedar"),
    ),
    ServiceType.FRAMING: (
        QuickReply("Basic Pergola", "basic pergola frame"),
        QuickReply("Engineered", "engineered timber"),
        QuickReply("Custom Hardwood", "custom hardwood"),
    ),
    ServiceType.SOFTSCAPING: (
        QuickReply("Basic", "basic landscaping"),
        QuickReply("Premium", "premium planting"),
        QuickReply("Luxury", "full architectural design"),
    ),
}

GENERIC_TIER_REPLIES: Tuple[QuickReply, ...] = (
    QuickReply("Budget", "budget option"),
    QuickReply("Mid-Range", "mid range"),
    QuickReply("Premium", "premium quality"),
)

FIELD_REPLIES: Dict[IntakeField, Tuple[QuickReply, ...]] = {
    IntakeField.EXCAVATOR_ACCESS: (
        QuickReply("Yes, wide access", "yes wide access"),
        QuickReply("No, narrow gate", "narrow gate"),
    ),
    IntakeField.DRIVEWAY: (
        QuickReply("Yes, have driveway", "yes driveway"),
        QuickReply("No, street parking", "on the street"),
    ),
    IntakeField.SLOPE: (
        QuickReply("Flat", "flat ground"),
        QuickReply("Moderate slope", "moderate slope"),
        QuickReply("Steep", "steep slope"),
    ),
    IntakeField.DEMOLITION: (
        QuickReply("Yes, removal needed", "yes need to remove existing"),
        QuickReply("No, fresh site", "no nothing to remove"),
    ),
    IntakeField.DECK_HEIGHT: (
        QuickReply("Ground level", "0.3 meters high"),
        QuickReply("Low (0.5-1m)", "0.8 meters high"),
        QuickReply("Medium (1-1.5m)", "1.2 meters high"),
        QuickReply("High (>1.5m)", "2 meters high"),
    ),
    IntakeField.OVERGROWN: (
        QuickReply("Recent (<2 weeks)", "last week"),
        QuickReply("Overgrown (>2 weeks)", "3 weeks ago"),
    ),
    IntakeField.GATE_COUNT: (
        QuickReply("No gates", "no gates"),
        QuickReply("1 gate", "one gate"),
        QuickReply("2 gates", "two gates"),
        QuickReply("3+ gates", "three gates"),
    ),
    IntakeField.USER_BUDGET: (
        QuickReply("£5,000", "£5,000"),
        QuickReply("£10,000", "£10,000"),
        QuickReply("£20,000+", "£20,000"),
    ),
}


def quick_replies_for(field: Optional[IntakeField], service: Optional[ServiceType]) -> List[QuickReply]:
    """Canned answers for the field being asked.

    Contact details and postcode have no canned values.

    Args:
        field: Field currently being asked
        service: Service in the fact set, for tier and dimension wording

    Returns:
        List of QuickReply (empty when the field has none)
    """
    if field is None:
        return []
    if field == IntakeField.SERVICE:
        return list(SERVICE_REPLIES)
    if field == IntakeField.DIMENSIONS:
        if service == ServiceType.FENCING:
            return list(FENCING_DIMENSION_REPLIES)
        return list(DIMENSION_REPLIES)
    if field == IntakeField.MATERIAL_TIER:
        if service is None:
            return list(GENERIC_TIER_REPLIES)
        return list(TIER_REPLIES[service])
    return list(FIELD_REPLIES.get(field, ()))
