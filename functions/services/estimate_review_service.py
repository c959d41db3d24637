"""Remote estimate review for QuoteDesk.

Optionally asks an LLM, acting as a quantity surveyor, to check the local
estimate and rewrite the surveyor's note. The local breakdown is kept;
the reviewed range and narrative replace the local ones only when they
validate. Any failure returns the local estimate untouched.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from config.errors import QuoteDeskError
from config.settings import settings
from models.estimate import EstimateResult, ValidatedProjectInput
from services.llm_service import LLMService
from services.pricing_service import determine_priority_tier, round_gbp

logger = structlog.get_logger()

REVIEW_SOURCE = "remote_review"

REVIEW_SYSTEM_PROMPT = """You are a Senior Landscape Quantity Surveyor specialising in UK residential landscaping, working to 2026 rates in GBP and metric units only.

Pricing rules already applied to the local estimate:
- Installed material rates include a 20% markup and a 7.1% 2026 uplift
- Labor at £85/hr; 1.45x labor multiplier when a 90cm excavator cannot reach the site
- Surcharges: skip load £350, council permit £60 (no driveway), scaffolding £1,800 (deck over 1.5m), slope grading £8,000 (over 15°)
- Business wrapper on the subtotal: 10% project management, 5% contingency, 15% net profit
- Ballpark range is the final cost ±10%

Review the project input and the local estimate. Correct the range only if a rule was misapplied.
Write a concise Surveyor's Note in professional UK QS terminology covering the access multiplier,
slope, demolition waste, material tier, permit and scaffolding where relevant, ending with the ±10% range.

Return JSON:
{
  "lower_bound": integer,
  "estimate": integer,
  "upper_bound": integer,
  "reasoning": string
}"""


class EstimateReviewService:
    """LLM review of a locally computed estimate.

    Args:
        llm_service: LLMService instance (created lazily if omitted)
        enabled: Whether to call the LLM at all (default from settings)
        timeout_seconds: Upper bound for one remote call
    """

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        enabled: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._llm = llm_service
        self.enabled = enabled if enabled is not None else settings.estimate_review_enabled
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds

    @property
    def llm(self) -> LLMService:
        if self._llm is None:
            self._llm = LLMService()
        return self._llm

    @staticmethod
    def apply_review(baseline: EstimateResult, content: Any) -> EstimateResult:
        """Overlay reviewed figures onto the baseline.

        Args:
            baseline: Local estimate
            content: Parsed JSON returned by the model

        Returns:
            Reviewed EstimateResult

        Raises:
            pydantic.ValidationError: If the reviewed figures are inconsistent
            ValueError: If the content is not a JSON object
        """
        if not isinstance(content, dict):
            raise ValueError("Review response must be a JSON object")

        update: Dict[str, Any] = {}
        for key in ("lower_bound", "estimate", "upper_bound"):
            value = content.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                update[key] = round_gbp(value)
        reasoning = content.get("reasoning")
        if isinstance(reasoning, str) and reasoning.strip():
            update["reasoning"] = reasoning.strip()

        merged = {**baseline.model_dump(), **update, "source": REVIEW_SOURCE}
        merged["priority_tier"] = determine_priority_tier(merged["estimate"])
        return EstimateResult.model_validate(merged)

    async def review(self, project: ValidatedProjectInput, baseline: EstimateResult) -> EstimateResult:
        """Review an estimate, falling back to the baseline on any failure.

        Args:
            project: Input the baseline was priced from
            baseline: Local EstimateResult

        Returns:
            Reviewed estimate, or the baseline when disabled or on failure
        """
        if not self.enabled:
            return baseline

        message = json.dumps(
            {
                "estimate_input": project.model_dump(mode="json"),
                "local_estimate": baseline.model_dump(mode="json"),
            },
            indent=2,
        )

        try:
            result = await asyncio.wait_for(
                self.llm.generate_json(REVIEW_SYSTEM_PROMPT, message),
                timeout=self.timeout_seconds,
            )
            reviewed = self.apply_review(baseline, result["content"])
        except asyncio.TimeoutError:
            logger.warning("estimate_review_timeout", timeout_seconds=self.timeout_seconds)
            return baseline
        except QuoteDeskError as e:
            logger.warning("estimate_review_failed", code=e.code, error=e.message)
            return baseline
        except (PydanticValidationError, ValueError) as e:
            logger.warning("estimate_review_rejected", error=str(e))
            return baseline

        logger.info(
            "estimate_reviewed",
            local_estimate=baseline.estimate,
            reviewed_estimate=reviewed.estimate,
            tokens_used=result.get("tokens_used", 0),
        )
        return reviewed
