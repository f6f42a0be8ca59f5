"""
Work-queue derivations.

Queues are never stored: every call filters and sorts the patient collection
it is given. Sort keys end in (timestamp, sequence, mrn) so two calls over the
same input always produce the same order.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..core.config import settings
from ..models.enums import PatientStatus, TriageLevel
from ..models.patient import Patient

# Urgency tier inside the physician queue (lower = seen first).
# RED should never wait here; if it does it goes to the top.
_PHYSICIAN_TIER = {
    TriageLevel.RED: 0,
    TriageLevel.ORANGE: 1,
    TriageLevel.GREEN: 2,
}


def _fcfs(patient: Patient) -> tuple:
    return (patient.timestamp, patient.sequence, patient.mrn)


def physician_sort_key(patient: Patient, elderly_age: int = 75) -> tuple:
    tier = _PHYSICIAN_TIER.get(patient.triage_level, len(_PHYSICIAN_TIER))
    if patient.triage_level == TriageLevel.GREEN:
        # Vulnerable-but-stable patients move up only among other GREEN patients
        elderly_rank = 0 if patient.is_elderly(elderly_age) else 1
        pregnant_rank = 0 if patient.is_pregnant else 1
    else:
        elderly_rank = pregnant_rank = 0
    return (tier, elderly_rank, pregnant_rank) + _fcfs(patient)


def emergency_sort_key(patient: Patient) -> tuple:
    red_rank = 0 if patient.triage_level == TriageLevel.RED else 1
    return (red_rank,) + _fcfs(patient)


def build_physician_queue(
    patients: Iterable[Patient],
    elderly_age: Optional[int] = None,
) -> List[Patient]:
    """
    Patients waiting for a physician, in the order they should be seen.

    ORANGE before GREEN. Within GREEN, patients aged >= ELDERLY_AGE_THRESHOLD
    come first, then pregnant patients. Everything else is first come, first
    served by the time the patient entered the queue.
    """
    threshold = settings.ELDERLY_AGE_THRESHOLD if elderly_age is None else elderly_age
    waiting = [p for p in patients if p.status == PatientStatus.PHYSICIAN_QUEUE]
    return sorted(waiting, key=lambda p: physician_sort_key(p, threshold))


def build_emergency_queue(patients: Iterable[Patient]) -> List[Patient]:
    """ER patients: RED first, then first come, first served."""
    waiting = [p for p in patients if p.status == PatientStatus.ER_QUEUE]
    return sorted(waiting, key=emergency_sort_key)


@dataclass
class QueueCensus:
    total: int
    active: int
    registered: int
    red: int
    orange: int
    green: int
    physician_queue: int
    er_queue: int
    admitted: int

    def to_dict(self) -> Dict[str, int]:
        return dict(self.__dict__)


def queue_census(patients: Iterable[Patient]) -> QueueCensus:
    """Headline counts for the live patient-flow feed."""
    patients = list(patients)
    levels = [p.triage_level for p in patients]
    statuses = [p.status for p in patients]
    return QueueCensus(
        total=len(patients),
        active=sum(1 for p in patients if p.is_active),
        registered=statuses.count(PatientStatus.REGISTERED),
        red=levels.count(TriageLevel.RED),
        orange=levels.count(TriageLevel.ORANGE),
        green=levels.count(TriageLevel.GREEN),
        physician_queue=statuses.count(PatientStatus.PHYSICIAN_QUEUE),
        er_queue=statuses.count(PatientStatus.ER_QUEUE),
        admitted=statuses.count(PatientStatus.ADMITTED),
    )


@dataclass
class FollowUpEntry:
    patient: Patient
    days: int
    return_date: date


def build_follow_up_roster(patients: Iterable[Patient]) -> List[FollowUpEntry]:
    """Scheduled return visits, most recently scheduled first."""
    scheduled = [p for p in patients if p.follow_up_visit and p.follow_up_set_at is not None]
    scheduled.sort(key=lambda p: (p.follow_up_set_at, p.sequence), reverse=True)
    return [
        FollowUpEntry(patient=p, days=p.follow_up_days, return_date=p.follow_up_due)
        for p in scheduled
    ]
