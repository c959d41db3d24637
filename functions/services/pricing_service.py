"""Pricing Service for QuoteDesk.

Deterministic cumulative estimate for a validated landscaping project:

1. Material = area × catalog rate
2. Labor = area × hours per unit × hourly rate
3. Access penalty (labor only) when no excavator access
4. Additive surcharges (permit, slope grading, demolition skips, scaffolding)
5. Subtotal
6. Business wrapper (project management, contingency, net profit)
7. Point estimate
8. Ballpark range (±10%)
9. Priority tier

The order is fixed; each step feeds the next.
"""

import math
from typing import List

import structlog

from config.errors import PricingContractError
from models.estimate import (
    EstimateResult,
    LineItem,
    LineItemKind,
    PriorityTier,
    ValidatedProjectInput,
)
from models.fields import ServiceType, SlopeLevel, SubBaseType
from services import rate_catalog as rates

logger = structlog.get_logger()


# Line item codes
MATERIAL = "MATERIAL"
LABOR = "LABOR"
LABOR_RESTRICTED_ACCESS = "LABOR_RESTRICTED_ACCESS"
COUNCIL_PERMIT = "COUNCIL_PERMIT"
SLOPE_GRADING = "SLOPE_GRADING"
DEMOLITION_WASTE = "DEMOLITION_WASTE"
SCAFFOLDING = "SCAFFOLDING"
PROJECT_MANAGEMENT = "PROJECT_MANAGEMENT"
CONTINGENCY = "CONTINGENCY"
NET_PROFIT = "NET_PROFIT"


# =============================================================================
# HELPERS
# =============================================================================


def round_gbp(value: float) -> int:
    """Round to the nearest whole pound, halves rounding up."""
    return int(math.floor(value + 0.5))


def format_gbp(value: int) -> str:
    """Format whole pounds for display, e.g. £20,361."""
    return f"£{value:,}"


def _unit(service: ServiceType) -> str:
    return "m" if service == ServiceType.FENCING else "m²"


def calculate_skip_loads(area: float) -> int:
    """Number of skips needed to clear demolished material.

    volume = area × 0.15m thickness, weight = volume × 0.6 t/m³,
    skips = ceil(weight / 1 t per skip). 15 m² needs 2 skips.

    Args:
        area: Demolished area in m²

    Returns:
        Whole number of skip loads
    """
    weight_tons = area * rates.DEBRIS_THICKNESS_M * rates.DEBRIS_DENSITY_TONS_PER_M3
    # Trim float noise (e.g. 2.0000000000000004) before taking the ceiling
    return math.ceil(round(weight_tons / rates.TONS_PER_SKIP, 6))


def determine_priority_tier(estimate: int) -> PriorityTier:
    """Projects strictly above £5,000 are VIP."""
    return PriorityTier.VIP if estimate > rates.VIP_THRESHOLD else PriorityTier.STANDARD


def _check_contract(project: ValidatedProjectInput) -> None:
    """Fail loudly when something other than a valid input reaches pricing."""
    if not isinstance(project, ValidatedProjectInput):
        raise PricingContractError(
            "Pricing requires a ValidatedProjectInput",
            details={"received_type": type(project).__name__},
        )
    if not (project.length > 0 and project.width > 0):
        raise PricingContractError(
            "Length and width must be positive",
            details={"length": project.length, "width": project.width},
        )
    if not math.isclose(project.area, project.length * project.width, rel_tol=1e-9, abs_tol=1e-9):
        raise PricingContractError(
            "Area must equal length × width",
            details={"area": project.area, "length": project.length, "width": project.width},
        )
    if project.service not in rates.RATE_CATALOG:
        raise PricingContractError(
            f"No rates for service {project.service!r}",
            details={"service": str(project.service)},
        )


# =============================================================================
# NARRATIVE
# =============================================================================


def generate_reasoning(project: ValidatedProjectInput, line_items: List[LineItem]) -> str:
    """Compose the surveyor's note from the line items that were produced.

    Args:
        project: Priced project input
        line_items: Line items returned by the calculation

    Returns:
        Narrative made of fixed sentence templates
    """
    codes = {item.code: item for item in line_items}
    entry = rates.get_rate(project.service, project.material_tier)
    unit = _unit(project.service)

    reasons = [
        f"{project.material_tier.value.capitalize()} tier {entry.material} specified at "
        f"£{entry.rate:g}/{unit} (installed rate, inc. 20% markup + 7.1% 2026 uplift)."
    ]

    if LABOR_RESTRICTED_ACCESS in codes:
        reasons.append(
            "A 45% labor multiplier was applied due to restricted excavator access. "
            "Site width does not accommodate a standard 90cm excavator; hand-labor "
            "and smaller equipment required."
        )

    if COUNCIL_PERMIT in codes:
        reasons.append(
            f"No driveway access for skip placement; {format_gbp(codes[COUNCIL_PERMIT].amount)} "
            "council permit surcharge added for on-street waste management."
        )

    if SLOPE_GRADING in codes:
        reasons.append(
            "Site slope exceeds 15° threshold, requiring specialized grading equipment, "
            "terracing, and additional stability measures "
            f"({format_gbp(codes[SLOPE_GRADING].amount)} surcharge)."
        )

    if DEMOLITION_WASTE in codes:
        skips = codes[DEMOLITION_WASTE].amount // rates.SKIP_LOAD
        existing = "hardscape" if project.sub_base == SubBaseType.HARDSCAPE else "structure"
        reasons.append(
            f"Demolition of existing {existing} ({project.area:.1f}m²) requires "
            f"{skips} skip load{'s' if skips > 1 else ''} at {format_gbp(rates.SKIP_LOAD)} each "
            "(based on 0.6 tons/m³ debris density, 0.15m average thickness)."
        )

    if SCAFFOLDING in codes:
        reasons.append(
            f"Deck height exceeds {rates.SCAFFOLDING_HEIGHT_THRESHOLD_M}m; mandatory scaffolding "
            "and lateral bracing required for safe construction "
            f"({format_gbp(codes[SCAFFOLDING].amount)} surcharge)."
        )

    reasons.append(
        "Final estimate includes 10% Project Management, 5% Contingency Reserve, and "
        "15% Net Profit. Ballpark range presented at ±10% for preliminary scope definition."
    )
    return " ".join(reasons)


# =============================================================================
# ESTIMATE
# =============================================================================


def estimate(project: ValidatedProjectInput) -> EstimateResult:
    """Price a validated project.

    Args:
        project: Schema-checked project facts

    Returns:
        EstimateResult with range, line items, narrative and priority tier

    Raises:
        PricingContractError: If the input is not a well-formed ValidatedProjectInput
    """
    _check_contract(project)

    entry = rates.get_rate(project.service, project.material_tier)
    unit = _unit(project.service)
    line_items: List[LineItem] = []

    # Step 1: material
    line_items.append(LineItem(
        code=MATERIAL,
        label=entry.material,
        amount=round_gbp(project.area * entry.rate),
        note=f"{project.area:.1f}{unit} × £{entry.rate:g}/{unit} (installed)",
        kind=LineItemKind.MATERIAL,
    ))

    # Step 2: labor
    labor_hours = project.area * rates.LABOR_HOURS_PER_UNIT[project.service]
    labor_cost = labor_hours * rates.LABOR_RATE_PER_HOUR

    # Step 3: access penalty, labor only
    if project.excavator_access:
        labor_code = LABOR
        labor_label = "Labor (crew + equipment)"
        labor_note = f"{labor_hours:.1f} hrs × £{rates.LABOR_RATE_PER_HOUR}/hr"
    else:
        labor_cost *= rates.ACCESS_PENALTY_MULTIPLIER
        labor_code = LABOR_RESTRICTED_ACCESS
        labor_label = f"Labor (restricted access - {rates.ACCESS_PENALTY_MULTIPLIER}x multiplier)"
        labor_note = (
            f"{labor_hours:.1f} hrs × £{rates.LABOR_RATE_PER_HOUR}/hr × "
            f"{rates.ACCESS_PENALTY_MULTIPLIER} (no excavator access)"
        )
    line_items.append(LineItem(
        code=labor_code,
        label=labor_label,
        amount=round_gbp(labor_cost),
        note=labor_note,
        kind=LineItemKind.LABOR,
    ))

    # Step 4: surcharges
    if not project.driveway_access:
        line_items.append(LineItem(
            code=COUNCIL_PERMIT,
            label="Council permit surcharge",
            amount=rates.COUNCIL_PERMIT,
            note="No driveway access for skip placement",
            kind=LineItemKind.SURCHARGE,
        ))

    if project.slope == SlopeLevel.STEEP:
        line_items.append(LineItem(
            code=SLOPE_GRADING,
            label="Slope grading (>15°)",
            amount=rates.STEEP_SLOPE_GRADING,
            note="Specialized equipment, terracing, stability measures",
            kind=LineItemKind.SURCHARGE,
        ))

    if project.has_demolition:
        skips = calculate_skip_loads(project.area)
        plural = "s" if skips > 1 else ""
        line_items.append(LineItem(
            code=DEMOLITION_WASTE,
            label=f"Demolition waste ({skips} skip{plural})",
            amount=skips * rates.SKIP_LOAD,
            note=f"{project.area:.1f}m² × 0.15m × 0.6 tons/m³ = {skips} skip load{plural}",
            kind=LineItemKind.SURCHARGE,
        ))

    if (
        project.service == ServiceType.DECKING
        and project.deck_height is not None
        and project.deck_height > rates.SCAFFOLDING_HEIGHT_THRESHOLD_M
    ):
        line_items.append(LineItem(
            code=SCAFFOLDING,
            label="High-altitude scaffolding",
            amount=rates.HIGH_ALTITUDE_SCAFFOLDING,
            note=f"Deck height {project.deck_height:.1f}m requires safety scaffolding + lateral bracing",
            kind=LineItemKind.SURCHARGE,
        ))

    # Step 5: subtotal
    subtotal = sum(item.amount for item in line_items)

    # Step 6: business wrapper
    fees = [
        (PROJECT_MANAGEMENT, "Project management (10%)", rates.PROJECT_MANAGEMENT_RATE,
         "Scheduling, procurement, coordination, QC"),
        (CONTINGENCY, "Contingency reserve (5%)", rates.CONTINGENCY_RATE,
         "Buffer for unforeseen site conditions"),
        (NET_PROFIT, "Net profit (15%)", rates.NET_PROFIT_RATE,
         "Company margin on project"),
    ]
    fee_total = 0
    for code, label, rate, note in fees:
        amount = round_gbp(subtotal * rate)
        fee_total += amount
        line_items.append(LineItem(code=code, label=label, amount=amount, note=note, kind=LineItemKind.FEE))

    # Step 7: point estimate
    final_cost = subtotal + fee_total
    point = round_gbp(final_cost)

    # Step 8: ballpark range
    lower = round_gbp(final_cost * (1 - rates.RANGE_SPREAD))
    upper = round_gbp(final_cost * (1 + rates.RANGE_SPREAD))

    # Step 9: priority
    tier = determine_priority_tier(point)

    result = EstimateResult(
        lower_bound=lower,
        estimate=point,
        upper_bound=upper,
        subtotal=subtotal,
        line_items=line_items,
        reasoning=generate_reasoning(project, line_items),
        priority_tier=tier,
        material_name=entry.material,
    )

    logger.info(
        "estimate_generated",
        service=project.service.value,
        tier=project.material_tier.value,
        area=project.area,
        subtotal=subtotal,
        estimate=point,
        priority_tier=tier.value,
        surcharges=[item.code for item in result.items_of_kind(LineItemKind.SURCHARGE)],
    )
    return result
