"""Conversation Logger for QuoteDesk.

Highly visible console output for the moments that matter in a
conversation (retries, the estimate hand-off), alongside the structured
structlog events.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import structlog

from models.conversation import ConversationState
from models.estimate import EstimateResult, PriorityTier
from models.lead import LeadRecord

logger = structlog.get_logger()

BANNER_WIDTH = 80
ESTIMATE_BANNER_CHAR = "═"
VIP_BANNER_CHAR = "█"
RETRY_BANNER_CHAR = "~"


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for console output at the given level."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def log_field_retry(field: str, attempt: int) -> None:
    """Log a question the customer's answer did not satisfy."""
    print(RETRY_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(RETRY_BANNER_CHAR, f"↻ RETRY #{attempt}: {field.upper()}"))
    print(f"~ Action : Offering quick replies")
    print(RETRY_BANNER_CHAR * BANNER_WIDTH)

    logger.info("field_retry_logged", field=field, attempt=attempt)


def log_estimate_handoff(
    state: ConversationState,
    estimate: EstimateResult,
    lead: Optional[LeadRecord] = None
) -> None:
    """Log the estimate shown to the customer with a prominent banner."""
    is_vip = estimate.priority_tier == PriorityTier.VIP
    char = VIP_BANNER_CHAR if is_vip else ESTIMATE_BANNER_CHAR
    timestamp = datetime.now(timezone.utc).isoformat()

    print("\n")
    print(char * BANNER_WIDTH)
    print(_create_banner(char, f"✓ ESTIMATE READY: {estimate.priority_tier.value.upper()}"))
    print(char * BANNER_WIDTH)
    print(f"║ Timestamp    : {timestamp}")
    print(f"║ Service      : {state.service.value if state.service else 'unknown'}")
    print(f"║ Area         : {state.area or 0:.1f}")
    print(f"║ Material     : {estimate.material_name or 'N/A'}")
    print(f"║ Estimate     : £{estimate.estimate:,}")
    print(f"║ Range        : £{estimate.lower_bound:,} - £{estimate.upper_bound:,}")
    print(f"║ Source       : {estimate.source}")
    print(f"║ Completeness : {state.completeness}%")
    print(char * BANNER_WIDTH)
    print("║ LINE ITEMS:")
    for item in estimate.line_items:
        print(f"║   • {item.label}: £{item.amount:,}")

    if lead is not None:
        print(char * BANNER_WIDTH)
        print("║ LEAD:")
        for key, value in lead.to_display_dict().items():
            print(f"║   {key}: {value}")

    print(char * BANNER_WIDTH)
    print("\n")

    logger.info(
        "estimate_handoff_logged",
        service=state.service.value if state.service else None,
        estimate=estimate.estimate,
        priority_tier=estimate.priority_tier.value,
        source=estimate.source,
        has_contact=bool(lead and (lead.contact_email or lead.contact_phone)),
    )
