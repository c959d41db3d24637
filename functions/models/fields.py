"""Field vocabulary for the QuoteDesk intake conversation.

Closed enums for services, tiers, site conditions and the fields the
dialogue manager can ask about.
"""

from enum import Enum
from typing import FrozenSet


# =============================================================================
# PROJECT ENUMS
# =============================================================================


class ServiceType(str, Enum):
    """Landscaping service categories."""

    HARDSCAPING = "hardscaping"
    DECKING = "decking"
    SOFTSCAPING = "softscaping"
    MOWING = "mowing"
    PLANTING = "planting"
    FENCING = "fencing"
    FRAMING = "framing"


class MaterialTier(str, Enum):
    """Material quality tier."""

    STANDARD = "standard"
    PREMIUM = "premium"
    LUXURY = "luxury"


class SlopeLevel(str, Enum):
    """Garden gradient as described by the customer."""

    FLAT = "flat"
    MODERATE = "moderate"
    STEEP = "steep"


class SubBaseType(str, Enum):
    """What currently sits under the work area."""

    DIRT = "dirt"
    HARDSCAPE = "hardscape"


# =============================================================================
# INTAKE FIELDS
# =============================================================================


class IntakeField(str, Enum):
    """Fields the dialogue manager can ask about.

    The value doubles as the key used for retry counters and quick replies.
    """

    SERVICE = "service"
    DIMENSIONS = "dimensions"
    MATERIAL_TIER = "material_tier"
    EXCAVATOR_ACCESS = "excavator_access"
    DECK_HEIGHT = "deck_height"
    OVERGROWN = "overgrown"
    GATE_COUNT = "gate_count"
    DRIVEWAY = "driveway"
    SLOPE = "slope"
    DEMOLITION = "demolition"
    FULL_NAME = "full_name"
    CONTACT_PHONE = "contact_phone"
    CONTACT_EMAIL = "contact_email"
    USER_BUDGET = "user_budget"
    POSTAL_CODE = "postal_code"


# Services that need machine digging, so excavator access changes labor cost
EXCAVATION_SERVICES: FrozenSet[ServiceType] = frozenset({
    ServiceType.HARDSCAPING,
    ServiceType.DECKING,
    ServiceType.FENCING,
    ServiceType.FRAMING,
})

# Services that disturb the ground and generate waste (driveway and slope matter)
GROUND_SERVICES: FrozenSet[ServiceType] = EXCAVATION_SERVICES | {ServiceType.SOFTSCAPING}

# Services where existing surfaces may need breaking out
DEMOLITION_SERVICES: FrozenSet[ServiceType] = frozenset({
    ServiceType.HARDSCAPING,
    ServiceType.DECKING,
})

# Services with the lighter completeness bundle (slope 5 + driveway 5)
LIGHT_SITE_SERVICES: FrozenSet[ServiceType] = frozenset({
    ServiceType.PLANTING,
    ServiceType.SOFTSCAPING,
})
