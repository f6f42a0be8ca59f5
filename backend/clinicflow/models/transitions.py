"""
Typed inputs for registration and for each kind of status transition.

Each clinical action submits its own patch model, so the validator can tell
from the type alone which fields a transition is allowed to carry.
"""
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import Sex, Specialty, TriageLevel
from .patient import ScreeningAnswer, Vitals


class RegistrationCandidate(BaseModel):
    """Identity and contact details captured at the registration desk."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    national_id: str = Field(min_length=1)
    phone: str = ""
    age: int = Field(ge=0, le=130)
    sex: Sex
    specialty: Specialty = Specialty.INTERNAL_MEDICINE
    email: Optional[str] = None
    address: Optional[str] = None
    medical_history: Optional[str] = None
    family_history: Optional[str] = None
    medications: Optional[str] = None
    surgeries: Optional[str] = None


class _Patch(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    actor: Optional[str] = None  # overrides the default role label on the pathway step


class TriagePatch(_Patch):
    """Nurse intake: REGISTERED -> PHYSICIAN_QUEUE / ER_QUEUE."""
    triage_level: TriageLevel
    chief_complaint: str = ""
    vitals: Vitals = Vitals()
    is_pregnant: Optional[bool] = None
    justification: Optional[str] = None
    manual_override: bool = False  # level chosen by a clinician, not the classifier
    screening: List[ScreeningAnswer] = []
    medical_history: Optional[str] = None
    family_history: Optional[str] = None
    medications: Optional[str] = None
    surgeries: Optional[str] = None


class EscalationPatch(_Patch):
    """PHYSICIAN_QUEUE -> ER_QUEUE. Notes state the reason."""
    notes: str = ""


class DeescalationPatch(_Patch):
    """ER_QUEUE -> PHYSICIAN_QUEUE after stabilization."""
    notes: str = ""


class AdmissionPatch(_Patch):
    notes: str = ""


class FollowUpPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    days: int = Field(gt=0)


class DischargePatch(_Patch):
    notes: str = ""
    follow_up: Optional[FollowUpPlan] = None

    @field_validator("follow_up", mode="before")
    @classmethod
    def _coerce_days(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return {"days": value}
        return value


class StabilizationPatch(_Patch):
    """Patient stabilized and sent home."""
    notes: str = ""


TransitionPatch = Union[
    TriagePatch,
    EscalationPatch,
    DeescalationPatch,
    AdmissionPatch,
    DischargePatch,
    StabilizationPatch,
]
