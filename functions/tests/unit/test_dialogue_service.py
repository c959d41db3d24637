"""Unit tests for the dialogue state manager."""

import pytest

from config.errors import ValidationError
from models.conversation import ConversationState, ExtractionResult
from models.fields import IntakeField, MaterialTier, ServiceType, SlopeLevel, SubBaseType
from services import dialogue_service as dialogue
from services.extraction_service import extract
from tests.fixtures.mock_conversation_data import READY_FACTS, build_state


class TestQuestionLadder:
    """Tests for current_field and question text."""

    def test_starts_with_service(self, empty_state):
        assert dialogue.current_field(empty_state) == IntakeField.SERVICE
        assert dialogue.next_question(empty_state) == dialogue.GREETING

    def test_hardscaping_ladder(self):
        """Geometry, tier, then site conditions, then contact details."""
        state = build_state(service=ServiceType.HARDSCAPING)
        expected = [
            (IntakeField.DIMENSIONS, {"length": 10.0, "width": 10.0}),
            (IntakeField.MATERIAL_TIER, {"material_tier": MaterialTier.STANDARD}),
            (IntakeField.EXCAVATOR_ACCESS, {"excavator_access": True}),
            (IntakeField.DRIVEWAY, {"driveway_access": True}),
            (IntakeField.SLOPE, {"slope": SlopeLevel.FLAT}),
            (IntakeField.DEMOLITION, {"has_demolition": False}),
            (IntakeField.FULL_NAME, {"full_name": "Jane Smith"}),
            (IntakeField.CONTACT_PHONE, {"contact_phone": "07700 900123"}),
            (IntakeField.CONTACT_EMAIL, {"contact_email": "jane@example.com"}),
            (IntakeField.USER_BUDGET, {"user_budget": 10000}),
            (IntakeField.POSTAL_CODE, {"postal_code": "SL4 1AA"}),
        ]
        for field, facts in expected:
            assert dialogue.current_field(state) == field
            state = state.with_fields(**facts)
            if "length" in facts:
                state = state.with_fields(area=100.0)

        assert dialogue.current_field(state) is None
        assert dialogue.next_question(state) is None

    def test_decking_asks_height(self):
        state = build_state(
            service=ServiceType.DECKING,
            area=20.0,
            material_tier=MaterialTier.PREMIUM,
            excavator_access=True,
        )
        assert dialogue.current_field(state) == IntakeField.DECK_HEIGHT

    def test_mowing_skips_site_conditions(self):
        state = build_state(
            service=ServiceType.MOWING,
            area=200.0,
            material_tier=MaterialTier.STANDARD,
            is_overgrown=False,
        )
        assert dialogue.current_field(state) == IntakeField.FULL_NAME

    def test_fencing_asks_gates(self):
        state = build_state(
            service=ServiceType.FENCING,
            area=25.0,
            material_tier=MaterialTier.STANDARD,
            excavator_access=True,
        )
        assert dialogue.current_field(state) == IntakeField.GATE_COUNT

    def test_service_specific_wording(self):
        """Fencing asks for a perimeter length."""
        question = dialogue.question_for(IntakeField.DIMENSIONS, ServiceType.FENCING)
        assert "perimeter" in question


class TestCompleteness:
    """Tests for the completeness score and readiness."""

    def test_empty_is_zero(self, empty_state):
        assert dialogue.completeness(empty_state) == 0

    def test_core_fields_hardscaping(self):
        state = build_state(service=ServiceType.HARDSCAPING, area=50.0, material_tier=MaterialTier.STANDARD)
        assert dialogue.completeness(state) == 75

    def test_planting_normalised(self):
        """Planting has a smaller bundle, so core fields score higher."""
        state = build_state(service=ServiceType.PLANTING, area=50.0, material_tier=MaterialTier.STANDARD)
        assert dialogue.completeness(state) == 88

    def test_full_hardscaping_is_100(self):
        assert dialogue.completeness(build_state(**READY_FACTS)) == 100

    def test_ready_requires_postcode(self, ready_state):
        assert dialogue.ready_for_estimate(ready_state) is False
        assert dialogue.ready_for_estimate(ready_state.with_fields(postal_code="SL4 1AA")) is True

    def test_ready_requires_budget(self, ready_state):
        state = ready_state.with_fields(postal_code="SL4 1AA", user_budget=None)
        assert dialogue.ready_for_estimate(state) is False

    def test_ready_requires_deck_height(self):
        state = build_state(
            service=ServiceType.DECKING,
            area=20.0,
            material_tier=MaterialTier.PREMIUM,
            excavator_access=True,
            driveway_access=True,
            slope=SlopeLevel.FLAT,
            has_demolition=False,
            user_budget=10000,
            postal_code="SL4 1AA",
        )
        assert dialogue.ready_for_estimate(state) is False
        assert dialogue.ready_for_estimate(state.with_fields(deck_height=0.5)) is True


class TestMerge:
    """Tests for per-field acceptance rules."""

    def test_service_not_overwritten_unless_asked(self):
        state = build_state(service=ServiceType.HARDSCAPING)
        extracted = ExtractionResult(service=ServiceType.DECKING)

        assert dialogue.merge(state, extracted, IntakeField.DIMENSIONS).service == ServiceType.HARDSCAPING
        assert dialogue.merge(state, extracted, IntakeField.SERVICE).service == ServiceType.DECKING

    def test_pair_then_bare_area(self):
        """A pair sets the footprint; a later bare area clears it."""
        state = dialogue.merge(ConversationState(), ExtractionResult(length=5.0, width=4.0), IntakeField.DIMENSIONS)
        assert (state.length, state.width, state.area) == (5.0, 4.0, 20.0)

        state = dialogue.merge(state, ExtractionResult(area=30.0), IntakeField.DIMENSIONS)
        assert (state.length, state.width, state.area) == (None, None, 30.0)

    def test_small_area_guard(self):
        """A tiny area only replaces a real one when dimensions were asked."""
        state = build_state(service=ServiceType.HARDSCAPING, area=100.0)
        tiny = ExtractionResult(area=1.5)

        assert dialogue.merge(state, tiny, None).area == 100.0
        assert dialogue.merge(state, tiny, IntakeField.DIMENSIONS).area == 1.5

    def test_gate_count_needs_fencing_or_question(self):
        hardscaping = build_state(service=ServiceType.HARDSCAPING)
        fencing = build_state(service=ServiceType.FENCING)
        gates = ExtractionResult(gate_count=2)

        assert dialogue.merge(hardscaping, gates, None).gate_count is None
        assert dialogue.merge(fencing, gates, None).gate_count == 2
        assert dialogue.merge(hardscaping, gates, IntakeField.GATE_COUNT).gate_count == 2

    def test_deck_height_needs_decking_or_question(self):
        hardscaping = build_state(service=ServiceType.HARDSCAPING)
        decking = build_state(service=ServiceType.DECKING)
        height = ExtractionResult(deck_height=2.0)

        assert dialogue.merge(hardscaping, height, None).deck_height is None
        assert dialogue.merge(decking, height, None).deck_height == 2.0
        assert dialogue.merge(hardscaping, height, IntakeField.DECK_HEIGHT).deck_height == 2.0

    def test_fence_height_is_not_a_deck_height(self, empty_state):
        """A fence described by its height stays a fence without a deck height."""
        state = dialogue.merge(empty_state, extract("I need a 2m high fence, 20 metres long", None), None)

        assert state.service == ServiceType.FENCING
        assert state.deck_height is None

    def test_name_needs_question_or_introduction(self, empty_state):
        name = ExtractionResult(full_name="Jane Smith")
        intro = ExtractionResult(full_name="Jane Smith", self_introduction=True)

        assert dialogue.merge(empty_state, name, None).full_name is None
        assert dialogue.merge(empty_state, name, IntakeField.FULL_NAME).full_name == "Jane Smith"
        assert dialogue.merge(empty_state, intro, None).full_name == "Jane Smith"

    def test_budget_needs_marker_or_question(self, empty_state):
        bare = extract("5000", IntakeField.USER_BUDGET)

        assert dialogue.merge(empty_state, bare, None).user_budget is None
        assert dialogue.merge(empty_state, bare, IntakeField.USER_BUDGET).user_budget == 5000
        assert dialogue.merge(empty_state, extract("£8k", None), None).user_budget == 8000

    def test_postcode_needs_strict_match_or_question(self, empty_state):
        loose = ExtractionResult(postal_code="SW1A")
        strict = ExtractionResult(postal_code="SL4 1AA", strict_postcode=True)

        assert dialogue.merge(empty_state, loose, None).postal_code is None
        assert dialogue.merge(empty_state, loose, IntakeField.POSTAL_CODE).postal_code == "SW1A"
        assert dialogue.merge(empty_state, strict, None).postal_code == "SL4 1AA"

    def test_first_mention_wins_for_extras(self):
        state = build_state(soil_note="clay", sub_base=SubBaseType.DIRT)
        extracted = ExtractionResult(soil_note="sandy", sub_base=SubBaseType.HARDSCAPE, wants_drainage=True)

        merged = dialogue.merge(state, extracted, None)

        assert merged.soil_note == "clay"
        assert merged.sub_base == SubBaseType.DIRT
        assert merged.wants_drainage is True

    def test_completeness_recomputed(self, empty_state):
        merged = dialogue.merge(empty_state, extract("10m by 8m patio in porcelain", None), None)
        assert merged.completeness == 75

    def test_merge_keeps_input_unchanged(self, empty_state):
        dialogue.merge(empty_state, ExtractionResult(service=ServiceType.DECKING), IntakeField.SERVICE)
        assert empty_state.service is None


class TestRetryProtocol:
    """Tests for retry counters and quick-reply flags."""

    def test_miss_counts_and_shows_quick_replies(self, empty_state):
        after = dialogue.apply_retry_outcome(empty_state, empty_state, IntakeField.SERVICE)

        assert after.retry_counts == {IntakeField.SERVICE: 1}
        assert after.show_quick_replies is True
        assert after.last_asked == IntakeField.SERVICE

    def test_success_clears_retries(self, empty_state):
        before = empty_state.with_fields(retry_counts={IntakeField.SERVICE: 2}, show_quick_replies=True)
        after = before.with_fields(service=ServiceType.FENCING)

        result = dialogue.apply_retry_outcome(before, after, IntakeField.SERVICE)

        assert result.retry_counts == {}
        assert result.show_quick_replies is False

    def test_other_field_does_not_count(self, empty_state):
        """Answering a different field is still a miss for the asked one."""
        after = empty_state.with_fields(contact_email="jane@example.com")

        assert dialogue.field_was_set(IntakeField.SERVICE, empty_state, after) is False
        assert dialogue.field_was_set(IntakeField.CONTACT_EMAIL, empty_state, after) is True

    def test_nothing_asked(self, empty_state):
        assert dialogue.apply_retry_outcome(empty_state, empty_state, None) == empty_state


class TestAcknowledgment:
    """Tests for acknowledgment templates."""

    def test_service_and_area(self, empty_state):
        after = empty_state.with_fields(service=ServiceType.DECKING, area=20.0)

        ack = dialogue.acknowledgment(empty_state, after)

        assert dialogue.SERVICE_ACKS[ServiceType.DECKING] in ack
        assert "20 square meters" in ack

    def test_narrow_access(self, empty_state):
        ack = dialogue.acknowledgment(empty_state, empty_state.with_fields(excavator_access=False))
        assert "manual labor" in ack

    def test_nothing_new(self, ready_state):
        assert dialogue.acknowledgment(ready_state, ready_state) == ""


class TestProjectInput:
    """Tests for the pricing hand-off."""

    def test_from_ready_state(self, ready_state):
        project = dialogue.project_input_from_state(ready_state)

        assert project.length == 10.0
        assert project.width == 10.0
        assert project.area == 100.0
        assert project.excavator_access is False

    def test_defaults_for_unasked_conditions(self):
        state = build_state(service=ServiceType.MOWING, area=40.0, material_tier=MaterialTier.STANDARD)

        project = dialogue.project_input_from_state(state)

        assert project.excavator_access is True
        assert project.driveway_access is True
        assert project.slope == SlopeLevel.FLAT
        assert project.sub_base == SubBaseType.DIRT
        assert project.has_demolition is False
        assert (project.length, project.width, project.area) == (40.0, 1.0, 40.0)

    def test_missing_tier_raises(self):
        state = build_state(service=ServiceType.HARDSCAPING, area=40.0)

        with pytest.raises(ValidationError) as exc_info:
            dialogue.project_input_from_state(state)

        assert exc_info.value.field == "material_tier"


class TestMergeProperties:
    """Tests for idempotence and monotonic completeness."""

    def test_pair_derives_area(self, empty_state):
        state = dialogue.merge(empty_state, extract("10x5", IntakeField.DIMENSIONS), IntakeField.DIMENSIONS)

        assert state.area == 50.0

    def test_remerge_is_idempotent(self, empty_state):
        extracted = extract("a 10m by 8m patio in sandstone", IntakeField.SERVICE)

        once = dialogue.merge(empty_state, extracted, IntakeField.SERVICE)
        twice = dialogue.merge(once, extracted, IntakeField.SERVICE)

        assert twice == once

    def test_completeness_never_decreases(self, empty_state):
        state = empty_state
        scores = []
        for facts in (
            {"service": ServiceType.DECKING},
            {"area": 20.0},
            {"material_tier": MaterialTier.PREMIUM},
            {"excavator_access": True},
            {"driveway_access": False},
            {"slope": SlopeLevel.MODERATE},
            {"has_demolition": True},
        ):
            state = state.with_fields(**facts)
            scores.append(dialogue.completeness(state))

        assert scores == sorted(scores)
        assert scores[-1] == 100
