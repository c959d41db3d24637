"""Rate Catalog for QuoteDesk.

UK installed rates per service and material tier, labor productivity
and fixed surcharges. Rates include supplier markup and the 2026 uplift.

The catalog is built once at import and exposed read-only.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from models.fields import MaterialTier, ServiceType


@dataclass(frozen=True)
class RateEntry:
    """Installed material rate for one service/tier pair."""
    material: str
    rate: float  # GBP per m² (per linear metre for fencing)


# =============================================================================
# MATERIAL RATES
# =============================================================================

_RATES = {
    ServiceType.HARDSCAPING: {
        MaterialTier.STANDARD: RateEntry("Concrete Pavers", 95),
        MaterialTier.PREMIUM: RateEntry("Indian Sandstone", 125),
        MaterialTier.LUXURY: RateEntry("Porcelain Paving", 155),
    },
    ServiceType.DECKING: {
        MaterialTier.STANDARD: RateEntry("Treated Softwood", 105),
        MaterialTier.PREMIUM: RateEntry("Premium Composite", 180),
        MaterialTier.LUXURY: RateEntry("Ipe Hardwood", 240),
    },
    ServiceType.SOFTSCAPING: {
        MaterialTier.STANDARD: RateEntry("Basic Landscaping", 45),
        MaterialTier.PREMIUM: RateEntry("Premium Planting", 75),
        MaterialTier.LUXURY: RateEntry("Architectural Softscape", 110),
    },
    ServiceType.MOWING: {
        MaterialTier.STANDARD: RateEntry("Basic Cut & Collect", 45),
        MaterialTier.PREMIUM: RateEntry("Precision Cut & Edge", 65),
        MaterialTier.LUXURY: RateEntry("Full Grounds Maintenance", 95),
    },
    ServiceType.PLANTING: {
        MaterialTier.STANDARD: RateEntry("Container Plants", 45),
        MaterialTier.PREMIUM: RateEntry("Specimen Plants", 95),
        MaterialTier.LUXURY: RateEntry("Architectural Planting", 150),
    },
    ServiceType.FENCING: {
        MaterialTier.STANDARD: RateEntry("Softwood Panel Fence", 75),
        MaterialTier.PREMIUM: RateEntry("Treated Slat Fence", 125),
        MaterialTier.LUXURY: RateEntry("Cedar Privacy Screen", 185),
    },
    ServiceType.FRAMING: {
        MaterialTier.STANDARD: RateEntry("Basic Pergola Frame", 350),
        MaterialTier.PREMIUM: RateEntry("Engineered Timber Frame", 550),
        MaterialTier.LUXURY: RateEntry("Custom Hardwood Structure", 850),
    },
}

RATE_CATALOG: Mapping[ServiceType, Mapping[MaterialTier, RateEntry]] = MappingProxyType(
    {service: MappingProxyType(tiers) for service, tiers in _RATES.items()}
)


# =============================================================================
# LABOR
# =============================================================================

LABOR_RATE_PER_HOUR = 85

# Crew hours per m² (per linear metre for fencing)
LABOR_HOURS_PER_UNIT: Mapping[ServiceType, float] = MappingProxyType({
    ServiceType.HARDSCAPING: 0.5,    # Excavation, sub-base, laying, pointing
    ServiceType.DECKING: 0.6,        # Footings, joists, boards
    ServiceType.SOFTSCAPING: 0.3,
    ServiceType.MOWING: 0.08,
    ServiceType.PLANTING: 0.4,
    ServiceType.FENCING: 0.25,
    ServiceType.FRAMING: 0.8,
})

# Hand-labor substitution when a mini excavator cannot reach the site
ACCESS_PENALTY_MULTIPLIER = 1.45


# =============================================================================
# SURCHARGES AND FEES
# =============================================================================

COUNCIL_PERMIT = 60
STEEP_SLOPE_GRADING = 8000
SKIP_LOAD = 350
HIGH_ALTITUDE_SCAFFOLDING = 1800
SCAFFOLDING_HEIGHT_THRESHOLD_M = 1.5

# Demolition debris model
DEBRIS_THICKNESS_M = 0.15
DEBRIS_DENSITY_TONS_PER_M3 = 0.6
TONS_PER_SKIP = 1.0  # Conservative capacity for dense debris

PROJECT_MANAGEMENT_RATE = 0.10
CONTINGENCY_RATE = 0.05
NET_PROFIT_RATE = 0.15

RANGE_SPREAD = 0.10
VIP_THRESHOLD = 5000


def get_rate(service: ServiceType, tier: MaterialTier) -> RateEntry:
    """Look up the installed rate for a service/tier pair."""
    return RATE_CATALOG[service][tier]
