"""Lead capture for QuoteDesk.

Builds the flat lead summary from a finished conversation and delivers
it to an optional webhook. Delivery is best effort: failures are logged
and never reach the customer.
"""

from typing import Optional

import httpx
import structlog
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from models.conversation import ConversationState
from models.estimate import EstimateResult
from models.lead import LeadRecord

logger = structlog.get_logger()


def build_lead_record(state: ConversationState, estimate: Optional[EstimateResult]) -> LeadRecord:
    """Flatten the fact set and estimate into a LeadRecord.

    Args:
        state: Final conversation state
        estimate: Estimate shown to the customer, if one was produced

    Returns:
        LeadRecord with explicit None for every missing fact
    """
    return LeadRecord(
        full_name=state.full_name,
        contact_phone=state.contact_phone,
        contact_email=state.contact_email,
        user_budget=state.user_budget,
        estimated_cost=estimate.estimate if estimate else None,
        priority_tier=estimate.priority_tier.value if estimate else None,
        service=state.service.value if state.service else None,
        area_m2=state.area,
        postal_code=state.postal_code,
        start_timing=state.start_timing,
        soil_note=state.soil_note,
        has_excavator_access=state.excavator_access,
    )


class LeadNotifier:
    """POSTs lead records to a webhook.

    Args:
        webhook_url: Destination URL (default from settings; None disables delivery)
        timeout_seconds: Per-request timeout
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout_seconds: Optional[float] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.lead_webhook_url
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None else settings.lead_webhook_timeout_seconds
        )

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.HTTPError, httpx.TimeoutException)),
    )
    async def _post_lead(self, record: LeadRecord) -> int:
        """POST one lead with retry logic.

        Raises:
            httpx.HTTPError: On HTTP errors after retries
        """
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self.webhook_url, json=record.to_payload())
            response.raise_for_status()
            return response.status_code

    async def send(self, record: LeadRecord) -> bool:
        """Deliver a lead.

        Args:
            record: Lead to deliver

        Returns:
            True if the webhook accepted it, False if skipped or failed
        """
        if not self.enabled:
            logger.info("lead_delivery_skipped", reason="no_webhook_configured")
            return False

        try:
            status_code = await self._post_lead(record)
        except (RetryError, httpx.HTTPError) as e:
            logger.warning(
                "lead_delivery_failed",
                error=str(e),
                priority_tier=record.priority_tier,
            )
            return False

        logger.info(
            "lead_delivered",
            status_code=status_code,
            priority_tier=record.priority_tier,
            estimated_cost=record.estimated_cost,
        )
        return True
