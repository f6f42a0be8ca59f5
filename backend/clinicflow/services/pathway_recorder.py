"""
Appends audit steps to a patient's pathway.

The recorder turns a validated TransitionOutcome into exactly one new
PathwayStep and returns the next Patient value with the status change and the
step applied together. Existing steps are carried over untouched.
"""
import logging
from datetime import datetime

from ..models.actor import ActorRole
from ..models.enums import PatientStatus, Specialty
from ..models.pathway import PathwayStep
from ..models.patient import Patient
from .transition_validator import TransitionKind, TransitionOutcome

logger = logging.getLogger(__name__)

_S = PatientStatus

DESCRIPTION_TEMPLATES = {
    (TransitionKind.TRIAGE, _S.REGISTERED):
        "Triage completed. Category: {level}. Complaint: {complaint}",
    (TransitionKind.ESCALATION, _S.PHYSICIAN_QUEUE):
        "Escalated to ER by Physician. Reason: {notes}",
    (TransitionKind.DEESCALATION, _S.ER_QUEUE):
        "Patient returned to Physician queue for clinic follow-up. Stabilization updates: {notes}",
    (TransitionKind.ADMISSION, _S.PHYSICIAN_QUEUE):
        "Patient admitted to hospital ward. Notes: {notes}",
    (TransitionKind.ADMISSION, _S.ER_QUEUE):
        "Patient hospitalized after stabilization. ER Notes: {notes}",
    (TransitionKind.STABILIZATION, _S.PHYSICIAN_QUEUE):
        "Patient stabilized and sent home. Notes: {notes}",
    (TransitionKind.STABILIZATION, _S.ER_QUEUE):
        "Patient stabilized and discharged home. ER Notes: {notes}",
}

DISCHARGE_WITH_FOLLOW_UP = (
    "Patient discharged home. Follow-up scheduled in {days} days. Instructions: {notes}"
)
DISCHARGE_WITHOUT_FOLLOW_UP = "Patient discharged home. No follow-up required. Instructions: {notes}"

REGISTRATION_TEMPLATE = "Patient registered for {specialty} and issued queue ticket."


def describe(outcome: TransitionOutcome, patient: Patient) -> str:
    """Render the human-readable pathway description for a transition."""
    notes = outcome.notes or "None"
    if outcome.kind == TransitionKind.DISCHARGE:
        if outcome.follow_up_days is not None:
            return DISCHARGE_WITH_FOLLOW_UP.format(days=outcome.follow_up_days, notes=notes)
        return DISCHARGE_WITHOUT_FOLLOW_UP.format(notes=notes)

    template = DESCRIPTION_TEMPLATES[(outcome.kind, outcome.source)]
    text = template.format(
        level=outcome.triage_level.value,
        complaint=outcome.changes.get("chief_complaint", patient.chief_complaint),
        notes=notes,
    )
    if outcome.manual_override:
        text += " (manual classification)"
    return text


def registration_step(specialty: Specialty, at: datetime) -> PathwayStep:
    return PathwayStep(
        status=PatientStatus.REGISTERED,
        description=REGISTRATION_TEMPLATE.format(specialty=specialty.value.replace("_", " ")),
        timestamp=at,
        actor=ActorRole.REGISTRATION_CLERK,
    )


def record(patient: Patient, outcome: TransitionOutcome) -> Patient:
    """
    Apply a validated transition and append its pathway step.

    The step timestamp never goes backwards: if the clock reads earlier than
    the last recorded step, the last step's time is used instead, and a
    follow-up scheduled by the transition is stamped with that same time.
    """
    last = patient.pathway[-1]
    at = max(outcome.at, last.timestamp)
    changes = dict(outcome.changes)
    if changes.get("follow_up_set_at") is not None:
        changes["follow_up_set_at"] = at
    step = PathwayStep(
        status=outcome.target,
        description=describe(outcome, patient),
        timestamp=at,
        actor=outcome.actor,
    )
    updated = patient.evolve(
        **changes,
        status=outcome.target,
        triage_level=outcome.triage_level,
        timestamp=at,
        pathway=patient.pathway + (step,),
    )
    logger.debug(
        "Pathway step %d recorded for %s: %s -> %s",
        len(updated.pathway), patient.mrn, outcome.source.value, outcome.target.value,
    )
    return updated
