"""Strict four-phase intake gate.

Logistics -> Ground Conditions -> Dimensions -> Material Tier -> Complete.

Each phase accepts one batch submission, validates it against its own
schema and only advances on success. On failure the gate stays put and
records field-keyed error messages. The Dimensions phase requires length
and width separately and refuses a single aggregate area.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic import ValidationError as PydanticValidationError

from config.errors import ErrorCode, ValidationError
from models.estimate import ValidatedProjectInput
from models.fields import MaterialTier, ServiceType, SlopeLevel, SubBaseType

logger = structlog.get_logger(__name__)

AREA_REJECTED_MESSAGE = "Cannot accept single-number area input. Provide length × width in meters."


# =============================================================================
# PHASE SCHEMAS
# =============================================================================


class LogisticsSubmission(BaseModel):
    """Phase 1: can a 90cm excavator reach the site, is there a driveway for a skip."""

    model_config = ConfigDict(extra="forbid")

    excavator_access: StrictBool
    driveway_access: StrictBool


class GroundConditionsSubmission(BaseModel):
    """Phase 2: slope, what is underneath, and whether anything must be demolished."""

    model_config = ConfigDict(extra="forbid")

    slope: SlopeLevel
    sub_base: SubBaseType
    has_demolition: StrictBool


class DimensionsSubmission(BaseModel):
    """Phase 3: length and width as two separate positive numbers."""

    model_config = ConfigDict(extra="forbid")

    length: float = Field(..., gt=0, description="Length in metres")
    width: float = Field(..., gt=0, description="Width in metres")
    deck_height: Optional[float] = Field(default=None, gt=0, description="Deck height in metres")

    @property
    def area(self) -> float:
        return self.length * self.width


class MaterialSubmission(BaseModel):
    """Phase 4: service and material tier."""

    model_config = ConfigDict(extra="forbid")

    service: ServiceType
    material_tier: MaterialTier


# =============================================================================
# GATE STATE
# =============================================================================


class IntakePhase(str, Enum):
    """Phases of the strict intake, in order."""

    LOGISTICS = "logistics"
    GROUND_CONDITIONS = "ground_conditions"
    DIMENSIONS = "dimensions"
    MATERIAL_TIER = "material_tier"
    COMPLETE = "complete"

    @property
    def number(self) -> int:
        return PHASE_ORDER.index(self) + 1


PHASE_ORDER: Tuple[IntakePhase, ...] = (
    IntakePhase.LOGISTICS,
    IntakePhase.GROUND_CONDITIONS,
    IntakePhase.DIMENSIONS,
    IntakePhase.MATERIAL_TIER,
    IntakePhase.COMPLETE,
)

PHASE_SCHEMAS: Dict[IntakePhase, Type[BaseModel]] = {
    IntakePhase.LOGISTICS: LogisticsSubmission,
    IntakePhase.GROUND_CONDITIONS: GroundConditionsSubmission,
    IntakePhase.DIMENSIONS: DimensionsSubmission,
    IntakePhase.MATERIAL_TIER: MaterialSubmission,
}

# Attribute on IntakeGateState that stores each phase's accepted data
PHASE_SLOTS: Dict[IntakePhase, str] = {
    IntakePhase.LOGISTICS: "logistics",
    IntakePhase.GROUND_CONDITIONS: "ground_conditions",
    IntakePhase.DIMENSIONS: "dimensions",
    IntakePhase.MATERIAL_TIER: "material",
}


@dataclass(frozen=True)
class FieldError:
    """Human-readable validation message keyed to the offending field path."""
    path: str
    message: str


@dataclass(frozen=True)
class IntakeGateState:
    """Snapshot of the strict intake. Transitions return a new snapshot."""
    phase: IntakePhase = IntakePhase.LOGISTICS
    logistics: Optional[LogisticsSubmission] = None
    ground_conditions: Optional[GroundConditionsSubmission] = None
    dimensions: Optional[DimensionsSubmission] = None
    material: Optional[MaterialSubmission] = None
    errors: Tuple[FieldError, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.phase == IntakePhase.COMPLETE


@dataclass
class ValidationResult:
    """Result of validating one phase submission."""
    is_valid: bool = True
    errors: List[FieldError] = field(default_factory=list)
    parsed: Optional[BaseModel] = None


# =============================================================================
# VALIDATION
# =============================================================================


def _field_errors(e: PydanticValidationError) -> List[FieldError]:
    errors = []
    for err in e.errors():
        path = ".".join(str(part) for part in err["loc"]) or "__root__"
        errors.append(FieldError(path=path, message=err["msg"]))
    return errors


def validate_phase(phase: IntakePhase, data: Any) -> ValidationResult:
    """Validate a batch submission against one phase's schema.

    Args:
        phase: Phase the data is meant for
        data: Raw submission (normally a dict)

    Returns:
        ValidationResult with parsed model or field errors
    """
    schema = PHASE_SCHEMAS.get(phase)
    if schema is None:
        return ValidationResult(
            is_valid=False,
            errors=[FieldError(path="phase", message=f"Phase '{phase.value}' accepts no submissions")],
        )

    if phase == IntakePhase.DIMENSIONS and isinstance(data, dict):
        has_pair = data.get("length") is not None and data.get("width") is not None
        if not has_pair and any(key in data for key in ("area", "area_m2")):
            return ValidationResult(
                is_valid=False,
                errors=[FieldError(path="length", message=AREA_REJECTED_MESSAGE)],
            )

    try:
        parsed = schema.model_validate(data)
    except PydanticValidationError as e:
        return ValidationResult(is_valid=False, errors=_field_errors(e))
    return ValidationResult(is_valid=True, parsed=parsed)


# =============================================================================
# TRANSITIONS
# =============================================================================


def initial_state() -> IntakeGateState:
    return IntakeGateState()


def submit(state: IntakeGateState, phase: IntakePhase, data: Any) -> IntakeGateState:
    """Submit data for a phase; advance only if it is the current phase and valid."""
    if phase != state.phase:
        logger.warning(
            "intake_submission_out_of_phase",
            current_phase=state.phase.value,
            submitted_phase=phase.value,
        )
        return replace(state, errors=(
            FieldError(
                path="phase",
                message=f"Expected a '{state.phase.value}' submission, got '{phase.value}'",
            ),
        ))

    result = validate_phase(phase, data)
    if not result.is_valid:
        logger.warning(
            "intake_validation_failed",
            phase=phase.value,
            errors=[f"{e.path}: {e.message}" for e in result.errors],
        )
        return replace(state, errors=tuple(result.errors))

    next_phase = PHASE_ORDER[PHASE_ORDER.index(phase) + 1]
    logger.info("intake_phase_advanced", from_phase=phase.value, to_phase=next_phase.value)
    return replace(state, **{PHASE_SLOTS[phase]: result.parsed}, phase=next_phase, errors=())


def back(state: IntakeGateState) -> IntakeGateState:
    """Return to the previous phase, keeping every phase's stored data.

    Not available from the first phase or once the intake is complete.
    """
    if state.phase in (IntakePhase.LOGISTICS, IntakePhase.COMPLETE):
        return state
    previous = PHASE_ORDER[PHASE_ORDER.index(state.phase) - 1]
    return replace(state, phase=previous, errors=())


def reset(state: IntakeGateState) -> IntakeGateState:
    """Return to phase one with all phase data cleared, from any phase."""
    logger.info("intake_reset", from_phase=state.phase.value)
    return initial_state()


def build_project_input(state: IntakeGateState) -> ValidatedProjectInput:
    """Assemble the pricing input from a completed intake.

    Raises:
        ValidationError: If the intake has not reached the Complete phase
    """
    if not state.is_complete:
        raise ValidationError(
            f"Intake incomplete: still in phase '{state.phase.value}'",
            field="phase",
            details={"code": ErrorCode.INTAKE_INCOMPLETE},
        )
    return ValidatedProjectInput(
        service=state.material.service,
        excavator_access=state.logistics.excavator_access,
        driveway_access=state.logistics.driveway_access,
        slope=state.ground_conditions.slope,
        sub_base=state.ground_conditions.sub_base,
        has_demolition=state.ground_conditions.has_demolition,
        length=state.dimensions.length,
        width=state.dimensions.width,
        area=state.dimensions.area,
        material_tier=state.material.material_tier,
        deck_height=state.dimensions.deck_height,
    )
