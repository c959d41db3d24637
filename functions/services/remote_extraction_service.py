"""Remote extraction fallback for QuoteDesk.

Asks an LLM to read a customer reply the local extractor could not
interpret. The call is bounded by a timeout and never raises: any
failure degrades to an empty extraction and the local result stands.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import structlog

from config.errors import QuoteDeskError
from config.settings import settings
from models.conversation import ConversationState, ExtractionResult
from models.fields import IntakeField
from services.extraction_service import POSTCODE_STRICT, coerce_extraction
from services.llm_service import LLMService

logger = structlog.get_logger()

# Acceptance flags are derived locally, never taken from the model
TRUST_FLAGS = ("strict_postcode", "explicit_budget", "self_introduction")

EXTRACTION_SYSTEM_PROMPT = """You are a UK landscape quantity surveyor's assistant reading one customer reply.

Understand informal answers: "ye", "yep", "y" mean yes; "nah", "nope", "n" mean no.
A single number given when asked about size is an area in square metres.
Weeks or months since the last cut, when asked about mowing, mean the lawn is overgrown if over 2 weeks.
Hedging and privacy screens count as fencing.

Return a JSON object with an "extracted" key holding only the facts present in THIS message,
using null for anything not mentioned:
{
  "extracted": {
    "service": "hardscaping" | "decking" | "softscaping" | "mowing" | "planting" | "fencing" | "framing" | null,
    "area": number | null,
    "length": number | null,
    "width": number | null,
    "material_tier": "standard" | "premium" | "luxury" | null,
    "excavator_access": boolean | null,
    "driveway_access": boolean | null,
    "slope": "flat" | "moderate" | "steep" | null,
    "sub_base": "dirt" | "hardscape" | null,
    "has_demolition": boolean | null,
    "deck_height": number | null,
    "is_overgrown": boolean | null,
    "gate_count": integer | null,
    "wants_drainage": boolean | null,
    "wants_led_lighting": boolean | null,
    "full_name": string | null,
    "contact_phone": string | null,
    "contact_email": string | null,
    "user_budget": integer | null,
    "postal_code": string | null
  },
  "reply": "one short professional sentence answering any question the customer asked" | null
}"""

# Known facts worth sending as context; transcript and bookkeeping stay local
CONTEXT_FIELDS = (
    "service", "area", "length", "width", "material_tier", "excavator_access",
    "driveway_access", "slope", "has_demolition", "deck_height", "is_overgrown", "gate_count",
)


class RemoteExtractionService:
    """LLM-backed extraction used when local extraction is not confident.

    Args:
        llm_service: LLMService instance (created lazily if omitted)
        timeout_seconds: Upper bound for one remote call
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._llm = llm_service
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = LLMService()
        return self._llm

    def _build_message(
        self,
        state: ConversationState,
        utterance: str,
        current_field: Optional[IntakeField],
    ) -> str:
        known = state.model_dump(mode="json", include=set(CONTEXT_FIELDS), exclude_none=True)
        return (
            f"Currently asking about: {current_field.value if current_field else 'nothing'}\n"
            f"Known facts: {json.dumps(known)}\n"
            f'Customer message: "{utterance}"'
        )

    @staticmethod
    def parse_response(content: Any) -> ExtractionResult:
        """Turn the model's JSON into an ExtractionResult, dropping bad fields."""
        if not isinstance(content, dict):
            return ExtractionResult()
        extracted = content.get("extracted", content)
        if not isinstance(extracted, dict):
            return ExtractionResult()

        data: Dict[str, Any] = {k: v for k, v in extracted.items() if k not in TRUST_FLAGS}
        postcode = data.get("postal_code")
        if isinstance(postcode, str) and POSTCODE_STRICT.fullmatch(postcode.strip()):
            data["strict_postcode"] = True
        reply = content.get("reply")
        if isinstance(reply, str) and reply.strip():
            data["reply"] = reply.strip()
        return coerce_extraction(data)

    async def extract(
        self,
        state: ConversationState,
        utterance: str,
        current_field: Optional[IntakeField],
    ) -> ExtractionResult:
        """Extract facts from one reply via the LLM.

        Args:
            state: Current fact set, sent as context
            utterance: Raw customer reply
            current_field: Field the last question asked about

        Returns:
            ExtractionResult (empty on timeout or any remote failure)
        """
        try:
            result = await asyncio.wait_for(
                self.llm.generate_json(
                    EXTRACTION_SYSTEM_PROMPT,
                    self._build_message(state, utterance, current_field),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("remote_extraction_timeout", timeout_seconds=self.timeout_seconds)
            return ExtractionResult()
        except QuoteDeskError as e:
            logger.warning("remote_extraction_failed", code=e.code, error=e.message)
            return ExtractionResult()

        extracted = self.parse_response(result["content"])
        logger.info(
            "remote_extraction_complete",
            current_field=current_field.value if current_field else None,
            fields=extracted.merge_fields(),
            tokens_used=result.get("tokens_used", 0),
        )
        return extracted
