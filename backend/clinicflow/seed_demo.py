"""
Demo data seeder for ClinicFlow.

Registers a small census so the queue screens have something to show right
after a fresh start:

  - one patient still waiting at triage (REGISTERED)
  - an ORANGE and an elderly GREEN patient in the physician queue
  - a RED patient in the emergency queue

This seeder is idempotent: identities that already have an episode are skipped.
"""
import logging
from typing import List

from .models.enums import Sex, Specialty, TriageLevel
from .models.patient import Vitals
from .models.transitions import RegistrationCandidate, TriagePatch
from .services.registry import PatientRegistry

logger = logging.getLogger(__name__)

DEMO_PATIENTS = [
    {
        "candidate": dict(
            name="Mona Demo", national_id="29001011234567", phone="01000000001",
            age=34, sex=Sex.FEMALE, specialty=Specialty.OBS_GYN,
        ),
        "triage": None,
    },
    {
        "candidate": dict(
            name="Karim Demo", national_id="28505051234567", phone="01000000002",
            age=41, sex=Sex.MALE,
        ),
        "triage": dict(
            triage_level=TriageLevel.ORANGE,
            chief_complaint="Persistent vomiting since last night",
            vitals=Vitals(bp="118/76", hr="115", temp="38.4", spo2="97"),
            justification="Priority outpatient review. Intermediate parameters: HR 115 bpm, Temp 38.4 C.",
        ),
    },
    {
        "candidate": dict(
            name="Samir Demo", national_id="24503031234567", phone="01000000003",
            age=79, sex=Sex.MALE,
        ),
        "triage": dict(
            triage_level=TriageLevel.GREEN,
            chief_complaint="Medication refill and mild knee pain",
            vitals=Vitals(bp="135/85", hr="72", temp="36.8", spo2="98"),
            justification="Vitals within stable range and no red-flag symptoms reported.",
        ),
    },
    {
        "candidate": dict(
            name="Hoda Demo", national_id="26007071234567", phone="01000000004",
            age=63, sex=Sex.FEMALE,
        ),
        "triage": dict(
            triage_level=TriageLevel.RED,
            chief_complaint="Central chest pain radiating to the left arm",
            vitals=Vitals(bp="88/60", hr="128", temp="36.5", spo2="93"),
            is_pregnant=False,
            justification="Immediate Emergency Department Referral Required. Red parameters: chest pain, SBP 88 mmHg.",
        ),
    },
]


def seed_demo_data(registry: PatientRegistry) -> List[str]:
    """Register and triage the demo patients that are not already present. Returns their MRNs."""
    seeded = []
    for entry in DEMO_PATIENTS:
        candidate = RegistrationCandidate(**entry["candidate"])
        if registry.search_archive(candidate.national_id):
            continue

        patient = registry.register(candidate)
        if entry["triage"] is not None:
            registry.triage(patient.mrn, TriagePatch(**entry["triage"]))
        seeded.append(patient.mrn)
        logger.info("[seed] Created demo patient %s (ticket %s)", patient.mrn, patient.ticket)
    return seeded
