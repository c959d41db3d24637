"""Reusable conversation and project builders for QuoteDesk tests."""

from typing import Any, Dict

from models.conversation import ConversationState
from models.estimate import ValidatedProjectInput
from models.fields import MaterialTier, ServiceType, SlopeLevel, SubBaseType


# Hardscaping fact set that satisfies every ladder stage
READY_FACTS: Dict[str, Any] = {
    "service": ServiceType.HARDSCAPING,
    "length": 10.0,
    "width": 10.0,
    "material_tier": MaterialTier.STANDARD,
    "excavator_access": False,
    "driveway_access": True,
    "slope": SlopeLevel.FLAT,
    "has_demolition": False,
    "full_name": "Jane Smith",
    "contact_phone": "07700 900123",
    "contact_email": "jane.smith@example.com",
    "user_budget": 15000,
    "postal_code": "SL4 1AA",
}


# Scripted customer for a full hardscaping conversation
HARDSCAPING_SCRIPT = [
    "Hi, I'm looking to get a new patio laid",
    "It's about 10m by 8m",
    "Indian sandstone please",
    "The side gate is too narrow for a digger",
    "Yes, there's a driveway",
    "Fairly flat",
    "Yes, we need to remove the old patio",
    "My name is Jane Smith",
    "07700 900123",
    "jane.smith@example.com",
    "Around £15k",
    "SL4 1AA",
]


def build_state(**facts: Any) -> ConversationState:
    """ConversationState with the given facts (area derived from length × width)."""
    return ConversationState(**facts)


def build_project(**overrides: Any) -> ValidatedProjectInput:
    """Hardscaping, standard tier, 10m × 10m, no excavator access, otherwise cheapest."""
    data: Dict[str, Any] = {
        "service": ServiceType.HARDSCAPING,
        "excavator_access": False,
        "driveway_access": True,
        "slope": SlopeLevel.FLAT,
        "sub_base": SubBaseType.DIRT,
        "has_demolition": False,
        "length": 10.0,
        "width": 10.0,
        "material_tier": MaterialTier.STANDARD,
    }
    data.update(overrides)
    return ValidatedProjectInput(**data)
