"""
Patient episode and vitals records.

A Patient value is frozen; every change goes through ``Patient.evolve`` which
re-runs validation, so an invalid combination can never be observed.
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import CLOSED_STATUSES, PatientStatus, ReferralSource, Sex, Specialty, TriageLevel
from .pathway import PathwayStep

_BP_RE = re.compile(r"^\d{2,3}\s*/\s*\d{2,3}$")
_INT_RE = re.compile(r"^\d{1,3}$")
_TEMP_RE = re.compile(r"^\d{2}(\.\d{1,2})?$")


class Vitals(BaseModel):
    """Bedside vitals as captured on the intake form (string encoded)."""
    model_config = ConfigDict(frozen=True)

    bp: str = ""    # "systolic/diastolic" mmHg
    hr: str = ""    # bpm
    temp: str = ""  # degrees Celsius
    spo2: str = ""  # %

    @field_validator("bp", "hr", "temp", "spo2", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("bp")
    @classmethod
    def _check_bp(cls, value: str) -> str:
        if value and not _BP_RE.match(value):
            raise ValueError(f"Blood pressure must look like 120/80, got {value!r}")
        return value.replace(" ", "")

    @field_validator("hr")
    @classmethod
    def _check_hr(cls, value: str) -> str:
        if value and not _INT_RE.match(value):
            raise ValueError(f"Heart rate must be a whole number, got {value!r}")
        return value

    @field_validator("temp")
    @classmethod
    def _check_temp(cls, value: str) -> str:
        if value and not _TEMP_RE.match(value):
            raise ValueError(f"Temperature must be a decimal like 37.2, got {value!r}")
        return value

    @field_validator("spo2")
    @classmethod
    def _check_spo2(cls, value: str) -> str:
        if value and (not _INT_RE.match(value) or int(value) > 100):
            raise ValueError(f"SpO2 must be a whole percentage, got {value!r}")
        return value

    @property
    def is_complete(self) -> bool:
        return all((self.bp, self.hr, self.temp, self.spo2))

    @property
    def systolic(self) -> Optional[int]:
        if not self.bp:
            return None
        return int(self.bp.split("/")[0])

    @property
    def heart_rate(self) -> Optional[int]:
        return int(self.hr) if self.hr else None

    @property
    def temperature(self) -> Optional[float]:
        return float(self.temp) if self.temp else None


class ScreeningAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str = ""


class Patient(BaseModel):
    """One episode for one identity, from registration to final disposition."""
    model_config = ConfigDict(frozen=True)

    # Identity
    episode_id: str = Field(min_length=1)
    mrn: str = Field(min_length=1)  # Medical Record Number, shared by all episodes of an identity
    national_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    age: int = Field(ge=0, le=130)
    sex: Sex
    is_pregnant: bool = False
    phone: str = ""
    email: Optional[str] = None
    address: Optional[str] = None
    specialty: Specialty = Specialty.INTERNAL_MEDICINE

    # History captured at intake
    medical_history: Optional[str] = None
    family_history: Optional[str] = None
    medications: Optional[str] = None
    surgeries: Optional[str] = None

    # Episode
    ticket: str = Field(min_length=1)
    chief_complaint: str = ""
    vitals: Vitals = Vitals()
    triage_level: Optional[TriageLevel] = None
    status: PatientStatus = PatientStatus.REGISTERED
    referral_source: ReferralSource = ReferralSource.REGISTRATION
    registered_at: datetime
    timestamp: datetime  # last transition; FCFS key inside a queue
    sequence: int = Field(default=0, ge=0)

    # Clinician and advisory output
    physician_notes: Optional[str] = None
    er_notes: Optional[str] = None
    ai_justification: Optional[str] = None
    ai_summary: Optional[str] = None
    screening: Tuple[ScreeningAnswer, ...] = ()

    # Follow-up scheduling
    follow_up_visit: bool = False
    follow_up_days: Optional[int] = Field(default=None, gt=0)
    follow_up_set_at: Optional[datetime] = None

    pathway: Tuple[PathwayStep, ...]

    @model_validator(mode="after")
    def _check_episode(self) -> "Patient":
        if self.is_pregnant and self.sex != Sex.FEMALE:
            raise ValueError("Pregnancy can only be recorded for female patients")
        if self.status != PatientStatus.REGISTERED and self.triage_level is None:
            raise ValueError(f"Status {self.status.value} requires a triage level")
        if self.follow_up_visit != (self.follow_up_days is not None):
            raise ValueError("follow_up_days must be set exactly when a follow-up visit is scheduled")
        if not self.pathway:
            raise ValueError("Pathway must start with the registration step")
        if self.pathway[-1].status != self.status:
            raise ValueError("Latest pathway step must record the current status")
        for earlier, later in zip(self.pathway, self.pathway[1:]):
            if later.timestamp < earlier.timestamp:
                raise ValueError("Pathway steps must be in chronological order")
        return self

    def evolve(self, **changes) -> "Patient":
        """Return a validated copy with ``changes`` applied."""
        if "mrn" in changes and changes["mrn"] != self.mrn:
            raise ValueError("MRN is immutable once assigned")
        data = dict(self)
        data.update(changes)
        return type(self)(**data)

    @property
    def is_active(self) -> bool:
        return self.status not in CLOSED_STATUSES

    def is_elderly(self, threshold: int = 75) -> bool:
        return self.age >= threshold

    @property
    def follow_up_due(self) -> Optional[date]:
        if not self.follow_up_visit or self.follow_up_set_at is None:
            return None
        return (self.follow_up_set_at + timedelta(days=self.follow_up_days)).date()
