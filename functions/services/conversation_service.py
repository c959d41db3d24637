"""Conversation Engine for QuoteDesk.

Runs one customer turn end to end:

1. Work out which field the last question asked about
2. Local extraction and merge
3. Remote extraction fallback when the local pass missed the asked field
4. Retry protocol (quick replies after a miss)
5. Acknowledgment of what this turn added
6. Estimate, optional review and lead hand-off once the ladder is done,
   otherwise the next question
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from config.errors import QuoteDeskError
from config.settings import settings
from models.conversation import ConversationState, ExtractionResult, MessageRole
from models.estimate import EstimateResult
from models.fields import IntakeField
from models.lead import LeadRecord
from services import dialogue_service as dialogue
from services import pricing_service
from services.estimate_review_service import EstimateReviewService
from services.extraction_service import extract
from services.lead_service import LeadNotifier, build_lead_record
from services.quick_replies import QuickReply, quick_replies_for
from services.remote_extraction_service import RemoteExtractionService
from utils.conversation_logger import log_estimate_handoff, log_field_retry

logger = structlog.get_logger()

RETRY_PROMPT = "Apologies, I didn't verify that. Could you please select an option below or clarify?"
UNCLEAR_PREFIX = "Apologies, I didn't quite catch that."
FALLBACK_PROMPT = "I understand. Could you tell me a bit more?"
ESTIMATE_ERROR_PROMPT = (
    "I'm having trouble calculating that estimate. Could you verify the project details? "
    "(Error code: invalid_inputs)"
)

# Remote extraction is not worth a round trip above this local confidence
REMOTE_CONFIDENCE_CEILING = 50

# Replies the local extractor always handles on its own
SIMPLE_REPLY = re.compile(r"^(?:yes|no|yep|nope|\d+(?:\.\d+)?)$", re.IGNORECASE)


@dataclass
class TurnResult:
    """Outcome of one customer turn."""
    state: ConversationState
    reply: str
    quick_replies: List[QuickReply] = field(default_factory=list)
    estimate: Optional[EstimateResult] = None
    lead: Optional[LeadRecord] = None


def closing_message(state: ConversationState) -> str:
    service_name = state.service.value if state.service else "landscaping"
    return (
        "I've gathered everything. Because it's currently peak season, we are only taking on "
        f"3 more {service_name} projects before the summer starts to ensure we maintain our "
        "high standards. I'll send this over to our senior surveyor right now."
    )


def estimate_summary(estimate: EstimateResult) -> str:
    """Transcript text for the estimate message."""
    fmt = pricing_service.format_gbp
    return (
        f"Estimated investment: {fmt(estimate.estimate)} "
        f"(ballpark {fmt(estimate.lower_bound)} - {fmt(estimate.upper_bound)}). "
        f"Status: {estimate.priority_tier.value}. {estimate.reasoning}"
    )


class ConversationEngine:
    """Turn orchestrator for the conversational intake.

    Every collaborator is optional: without them the engine runs fully
    local, prices locally and skips lead delivery.

    Args:
        remote_extractor: Fallback extraction service
        estimate_reviewer: Remote estimate review service
        notifier: Lead webhook notifier
    """

    def __init__(
        self,
        remote_extractor: Optional[RemoteExtractionService] = None,
        estimate_reviewer: Optional[EstimateReviewService] = None,
        notifier: Optional[LeadNotifier] = None,
    ):
        self.remote_extractor = remote_extractor
        self.estimate_reviewer = estimate_reviewer
        self.notifier = notifier

    @classmethod
    def from_settings(cls) -> "ConversationEngine":
        """Build an engine with the remote features the environment enables."""
        settings.validate()
        remote_extractor = RemoteExtractionService() if settings.remote_extraction_enabled else None
        estimate_reviewer = EstimateReviewService() if settings.estimate_review_enabled else None
        notifier = LeadNotifier() if settings.lead_webhook_url else None
        return cls(remote_extractor, estimate_reviewer, notifier)

    # -------------------------------------------------------------------------
    # Conversation lifecycle
    # -------------------------------------------------------------------------

    def start_conversation(self) -> TurnResult:
        """Empty fact set plus the greeting."""
        state = ConversationState(last_asked=IntakeField.SERVICE).with_message(
            MessageRole.AGENT, dialogue.GREETING
        )
        return TurnResult(state=state, reply=dialogue.GREETING)

    async def process_turn(self, state: ConversationState, utterance: str) -> TurnResult:
        """Process one customer reply.

        Args:
            state: Fact set before the reply
            utterance: Raw reply text

        Returns:
            TurnResult with the new state, the agent reply and any estimate
        """
        text = (utterance or "").strip()
        if not text:
            return TurnResult(state=state, reply=dialogue.next_question(state) or FALLBACK_PROMPT)

        asked = dialogue.current_field(state)
        before = state.with_message(MessageRole.USER, text)

        local = extract(text, asked)
        merged = dialogue.merge(before, local, asked)

        remote = ExtractionResult()
        if self._should_call_remote(before, merged, local, asked, text):
            remote = await self.remote_extractor.extract(before, text, asked)
            if not remote.is_empty:
                merged = dialogue.merge(merged, remote, asked)

        after = dialogue.apply_retry_outcome(before, merged, asked)

        parts = []
        if remote.reply:
            parts.append(remote.reply)
        ack = dialogue.acknowledgment(before, after)
        if ack:
            parts.append(ack)

        estimate = None
        lead = None
        quick_replies: List[QuickReply] = []
        question = dialogue.next_question(after)

        if dialogue.ready_for_estimate(after) and question is None:
            parts.append(closing_message(after))
            after = after.with_message(MessageRole.AGENT, " ".join(parts))
            after, estimate, lead = await self._finish(after)
            reply = " ".join(parts) if estimate is not None else ESTIMATE_ERROR_PROMPT
        elif question is not None:
            if after.show_quick_replies and asked is not None:
                quick_replies = quick_replies_for(asked, after.service)
                # Free-text fields have no canned answers, so ask again instead
                parts.append(RETRY_PROMPT if quick_replies else f"{UNCLEAR_PREFIX} {question}")
                reply = " ".join(parts)
                log_field_retry(asked.value, after.retry_counts.get(asked, 0))
            else:
                parts.append(question)
                reply = " ".join(parts)
            after = after.with_message(MessageRole.AGENT, reply)
        else:
            reply = ack or FALLBACK_PROMPT
            after = after.with_message(MessageRole.AGENT, reply)

        logger.info(
            "turn_processed",
            asked=asked.value if asked else None,
            local_fields=local.merge_fields(),
            remote_fields=remote.merge_fields(),
            completeness=after.completeness,
            retry=after.show_quick_replies,
            estimated=estimate is not None,
        )
        return TurnResult(
            state=after,
            reply=reply,
            quick_replies=quick_replies,
            estimate=estimate,
            lead=lead,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _should_call_remote(
        self,
        before: ConversationState,
        merged: ConversationState,
        local: ExtractionResult,
        asked: Optional[IntakeField],
        text: str,
    ) -> bool:
        if self.remote_extractor is None or asked is None:
            return False
        if dialogue.field_was_set(asked, before, merged):
            return False
        if local.confidence > REMOTE_CONFIDENCE_CEILING:
            return False
        return not SIMPLE_REPLY.match(text)

    async def _finish(
        self, state: ConversationState
    ) -> Tuple[ConversationState, Optional[EstimateResult], Optional[LeadRecord]]:
        """Price the fact set, review it and hand off the lead."""
        try:
            project = dialogue.project_input_from_state(state)
            estimate = pricing_service.estimate(project)
        except QuoteDeskError as e:
            logger.error("estimate_failed", code=e.code, error=e.message, details=e.details)
            return state.with_message(MessageRole.AGENT, ESTIMATE_ERROR_PROMPT), None, None

        if self.estimate_reviewer is not None:
            estimate = await self.estimate_reviewer.review(project, estimate)

        lead = build_lead_record(state, estimate)
        if self.notifier is not None:
            await self.notifier.send(lead)

        log_estimate_handoff(state, estimate, lead)
        return state.with_message(MessageRole.ESTIMATE, estimate_summary(estimate)), estimate, lead
