"""Unit tests for the remote estimate review."""

import asyncio

import pytest

from config.errors import ErrorCode, RemoteServiceError
from models.estimate import PriorityTier
from services.estimate_review_service import REVIEW_SOURCE, EstimateReviewService
from services.pricing_service import estimate


@pytest.fixture
def baseline(hardscaping_project):
    return estimate(hardscaping_project)


class TestApplyReview:
    """Tests for overlaying reviewed figures."""

    def test_overlay_keeps_breakdown(self, baseline):
        reviewed = EstimateReviewService.apply_review(baseline, {
            "lower_bound": 18000.4,
            "estimate": 20000,
            "upper_bound": 22000,
            "reasoning": "Surveyor's Note: manual excavation drives labor.",
        })

        assert (reviewed.lower_bound, reviewed.estimate, reviewed.upper_bound) == (18000, 20000, 22000)
        assert reviewed.reasoning == "Surveyor's Note: manual excavation drives labor."
        assert reviewed.source == REVIEW_SOURCE
        assert reviewed.line_items == baseline.line_items
        assert reviewed.subtotal == baseline.subtotal

    def test_priority_recomputed(self, baseline):
        reviewed = EstimateReviewService.apply_review(baseline, {
            "lower_bound": 4000,
            "estimate": 4500,
            "upper_bound": 4950,
        })

        assert reviewed.priority_tier == PriorityTier.STANDARD
        assert reviewed.reasoning == baseline.reasoning

    def test_non_numeric_values_ignored(self, baseline):
        reviewed = EstimateReviewService.apply_review(baseline, {"estimate": "lots", "lower_bound": True})

        assert reviewed.estimate == baseline.estimate
        assert reviewed.lower_bound == baseline.lower_bound

    def test_inconsistent_range_raises(self, baseline):
        with pytest.raises(ValueError):
            EstimateReviewService.apply_review(baseline, {"lower_bound": 30000})

    def test_non_object_raises(self, baseline):
        with pytest.raises(ValueError):
            EstimateReviewService.apply_review(baseline, ["20000"])


class TestReview:
    """Tests for the bounded review call."""

    @pytest.mark.asyncio
    async def test_disabled_returns_baseline(self, json_llm_service, hardscaping_project, baseline):
        service = EstimateReviewService(llm_service=json_llm_service, enabled=False, timeout_seconds=1.0)

        result = await service.review(hardscaping_project, baseline)

        assert result is baseline
        json_llm_service.generate_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_enabled_review(self, json_llm_service, hardscaping_project, baseline):
        json_llm_service.generate_json.return_value = {
            "content": {"lower_bound": 18400, "estimate": 20400, "upper_bound": 22400, "reasoning": "Checked."},
            "tokens_used": 300,
        }
        service = EstimateReviewService(llm_service=json_llm_service, enabled=True, timeout_seconds=1.0)

        result = await service.review(hardscaping_project, baseline)

        assert result.estimate == 20400
        assert result.source == REVIEW_SOURCE
        _, message = json_llm_service.generate_json.call_args.args
        assert '"estimate_input"' in message
        assert '"local_estimate"' in message

    @pytest.mark.asyncio
    async def test_rejected_review_falls_back(self, json_llm_service, hardscaping_project, baseline):
        json_llm_service.generate_json.return_value = {
            "content": {"lower_bound": 25000, "estimate": 20000, "upper_bound": 22000},
            "tokens_used": 300,
        }
        service = EstimateReviewService(llm_service=json_llm_service, enabled=True, timeout_seconds=1.0)

        assert await service.review(hardscaping_project, baseline) is baseline

    @pytest.mark.asyncio
    async def test_remote_error_falls_back(self, json_llm_service, hardscaping_project, baseline):
        json_llm_service.generate_json.side_effect = RemoteServiceError(
            code=ErrorCode.LLM_ERROR,
            message="LLM did not return valid JSON",
            service="llm",
        )
        service = EstimateReviewService(llm_service=json_llm_service, enabled=True, timeout_seconds=1.0)

        assert await service.review(hardscaping_project, baseline) is baseline

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self, json_llm_service, hardscaping_project, baseline):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return {"content": {}, "tokens_used": 0}

        json_llm_service.generate_json.side_effect = slow
        service = EstimateReviewService(llm_service=json_llm_service, enabled=True, timeout_seconds=0.01)

        assert await service.review(hardscaping_project, baseline) is baseline
