"""Unit tests for the strict four-phase intake gate."""

import pytest

from config.errors import ErrorCode, ValidationError
from models.fields import MaterialTier, ServiceType, SlopeLevel, SubBaseType
from services.pricing_service import estimate
from validators import intake_validator as gate
from validators.intake_validator import AREA_REJECTED_MESSAGE, IntakePhase


LOGISTICS = {"excavator_access": False, "driveway_access": True}
GROUND = {"slope": "flat", "sub_base": "dirt", "has_demolition": False}
DIMENSIONS = {"length": 10, "width": 10}
MATERIAL = {"service": "hardscaping", "material_tier": "standard"}


def complete_state():
    state = gate.initial_state()
    for phase, data in (
        (IntakePhase.LOGISTICS, LOGISTICS),
        (IntakePhase.GROUND_CONDITIONS, GROUND),
        (IntakePhase.DIMENSIONS, DIMENSIONS),
        (IntakePhase.MATERIAL_TIER, MATERIAL),
    ):
        state = gate.submit(state, phase, data)
    return state


class TestPhaseValidation:
    """Tests for per-phase schemas."""

    def test_logistics_valid(self):
        result = gate.validate_phase(IntakePhase.LOGISTICS, LOGISTICS)

        assert result.is_valid is True
        assert result.parsed.excavator_access is False

    def test_logistics_requires_real_booleans(self):
        """Strings like 'yes' are not booleans here."""
        result = gate.validate_phase(
            IntakePhase.LOGISTICS, {"excavator_access": "yes", "driveway_access": True}
        )

        assert result.is_valid is False
        assert [e.path for e in result.errors] == ["excavator_access"]

    def test_unknown_keys_rejected(self):
        result = gate.validate_phase(IntakePhase.LOGISTICS, {**LOGISTICS, "notes": "side gate"})

        assert result.is_valid is False
        assert result.errors[0].path == "notes"

    def test_ground_conditions_enum(self):
        result = gate.validate_phase(
            IntakePhase.GROUND_CONDITIONS, {**GROUND, "slope": "vertical"}
        )

        assert result.is_valid is False
        assert result.errors[0].path == "slope"

    def test_single_area_refused(self):
        """Dimensions never accept an aggregate area."""
        result = gate.validate_phase(IntakePhase.DIMENSIONS, {"area": 50})

        assert result.is_valid is False
        assert len(result.errors) == 1
        assert result.errors[0].path == "length"
        assert result.errors[0].message == AREA_REJECTED_MESSAGE

    def test_non_positive_length(self):
        result = gate.validate_phase(IntakePhase.DIMENSIONS, {"length": 0, "width": 4})

        assert result.is_valid is False
        assert result.errors[0].path == "length"

    def test_dimensions_area_derived(self):
        result = gate.validate_phase(IntakePhase.DIMENSIONS, {"length": 5, "width": 4, "deck_height": 0.6})

        assert result.parsed.area == 20
        assert result.parsed.deck_height == 0.6

    def test_material_accepts_every_service(self):
        for service in ServiceType:
            result = gate.validate_phase(
                IntakePhase.MATERIAL_TIER, {"service": service.value, "material_tier": "luxury"}
            )
            assert result.is_valid is True

    def test_complete_accepts_nothing(self):
        result = gate.validate_phase(IntakePhase.COMPLETE, {})

        assert result.is_valid is False
        assert result.errors[0].path == "phase"


class TestTransitions:
    """Tests for submit, back and reset."""

    def test_valid_submission_advances(self):
        state = gate.submit(gate.initial_state(), IntakePhase.LOGISTICS, LOGISTICS)

        assert state.phase == IntakePhase.GROUND_CONDITIONS
        assert state.logistics.driveway_access is True
        assert state.errors == ()

    def test_invalid_submission_stays(self):
        state = gate.submit(gate.initial_state(), IntakePhase.LOGISTICS, {"excavator_access": True})

        assert state.phase == IntakePhase.LOGISTICS
        assert state.logistics is None
        assert [e.path for e in state.errors] == ["driveway_access"]

    def test_errors_cleared_on_success(self):
        state = gate.submit(gate.initial_state(), IntakePhase.LOGISTICS, {})
        assert state.errors

        state = gate.submit(state, IntakePhase.LOGISTICS, LOGISTICS)
        assert state.errors == ()

    def test_wrong_phase_rejected(self):
        state = gate.submit(gate.initial_state(), IntakePhase.DIMENSIONS, DIMENSIONS)

        assert state.phase == IntakePhase.LOGISTICS
        assert state.dimensions is None
        assert state.errors[0].path == "phase"

    def test_walks_to_complete(self):
        state = complete_state()

        assert state.is_complete
        assert state.material.service == ServiceType.HARDSCAPING

    def test_back_keeps_data(self):
        state = gate.submit(gate.initial_state(), IntakePhase.LOGISTICS, LOGISTICS)
        state = gate.submit(state, IntakePhase.GROUND_CONDITIONS, GROUND)

        state = gate.back(state)

        assert state.phase == IntakePhase.GROUND_CONDITIONS
        assert state.logistics is not None
        assert state.ground_conditions.slope == SlopeLevel.FLAT

    def test_back_from_first_and_complete_is_noop(self):
        first = gate.initial_state()
        done = complete_state()

        assert gate.back(first) == first
        assert gate.back(done) == done

    def test_reset_clears_everything(self):
        state = gate.reset(complete_state())

        assert state == gate.initial_state()
        assert state.phase == IntakePhase.LOGISTICS
        assert state.material is None

    def test_phase_numbers(self):
        assert IntakePhase.LOGISTICS.number == 1
        assert IntakePhase.MATERIAL_TIER.number == 4


class TestProjectInput:
    """Tests for the hand-off to pricing."""

    def test_build_from_complete_intake(self):
        project = gate.build_project_input(complete_state())

        assert project.service == ServiceType.HARDSCAPING
        assert project.material_tier == MaterialTier.STANDARD
        assert project.sub_base == SubBaseType.DIRT
        assert project.area == 100

    def test_complete_intake_prices(self):
        """Same facts as the conversational path give the same estimate."""
        result = estimate(gate.build_project_input(complete_state()))

        assert result.estimate == 20361

    def test_incomplete_intake_raises(self):
        state = gate.submit(gate.initial_state(), IntakePhase.LOGISTICS, LOGISTICS)

        with pytest.raises(ValidationError) as exc_info:
            gate.build_project_input(state)

        assert exc_info.value.field == "phase"
        assert exc_info.value.details["code"] == ErrorCode.INTAKE_INCOMPLETE
