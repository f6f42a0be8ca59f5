"""
Pytest configuration and fixtures shared by the pathway tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from clinicflow.core.config import Settings
from clinicflow.models.enums import PatientStatus, Sex, TriageLevel
from clinicflow.models.pathway import PathwayStep
from clinicflow.models.patient import Patient, Vitals
from clinicflow.models.transitions import RegistrationCandidate, TriagePatch
from clinicflow.services.registry import PatientRegistry

BASE_TIME = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns the current fake time, then moves it forward by ``step``."""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(_env_file=None, CLINIC_TIMEZONE="UTC")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock, test_settings) -> PatientRegistry:
    return PatientRegistry(clock=clock, config=test_settings)


@pytest.fixture
def make_candidate():
    def _make(national_id: str = "29001011234567", **overrides) -> RegistrationCandidate:
        data = dict(
            name="Test Patient",
            national_id=national_id,
            phone="01012345678",
            age=40,
            sex=Sex.MALE,
        )
        data.update(overrides)
        return RegistrationCandidate(**data)

    return _make


@pytest.fixture
def stable_vitals() -> Vitals:
    return Vitals(bp="120/80", hr="80", temp="37.0", spo2="98")


@pytest.fixture
def triage_patch(stable_vitals):
    def _make(level: TriageLevel = TriageLevel.GREEN, **overrides) -> TriagePatch:
        data = dict(
            triage_level=level,
            chief_complaint="Headache for two days",
            vitals=stable_vitals,
            justification="Vitals within stable range.",
        )
        data.update(overrides)
        return TriagePatch(**data)

    return _make


@pytest.fixture
def make_patient():
    """Build a queued patient directly, bypassing the registry."""

    def _make(
        mrn: str,
        level: TriageLevel,
        t: int,
        status: PatientStatus = PatientStatus.PHYSICIAN_QUEUE,
        age: int = 40,
        sex: Sex = Sex.MALE,
        pregnant: bool = False,
        sequence: int = 0,
    ) -> Patient:
        queued_at = BASE_TIME + timedelta(minutes=t)
        return Patient(
            episode_id=f"ep-{mrn}",
            mrn=mrn,
            national_id=f"id-{mrn}",
            name=f"Patient {mrn}",
            age=age,
            sex=sex,
            is_pregnant=pregnant,
            ticket="Q-001",
            triage_level=level,
            status=status,
            registered_at=BASE_TIME,
            timestamp=queued_at,
            sequence=sequence,
            pathway=(
                PathwayStep(
                    status=PatientStatus.REGISTERED,
                    description="Registered",
                    timestamp=BASE_TIME,
                    actor="Registration Clerk",
                ),
                PathwayStep(
                    status=status,
                    description="Queued",
                    timestamp=queued_at,
                    actor="Triage Nurse",
                ),
            ),
        )

    return _make
