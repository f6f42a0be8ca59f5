"""
Patient pathway state machine.

Decides whether a requested status change is legal for the patient's current
status, checks the preconditions carried by the typed patch, and returns the
full set of field changes the transition implies. Nothing is mutated here;
the pathway recorder applies the outcome.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..core.config import settings
from ..core.exceptions import ValidationError
from ..models.actor import ActorRole
from ..models.enums import (
    TERMINAL_STATUSES,
    PatientStatus,
    ReferralSource,
    Sex,
    TriageLevel,
)
from ..models.patient import Patient
from ..models.transitions import (
    AdmissionPatch,
    DeescalationPatch,
    DischargePatch,
    EscalationPatch,
    StabilizationPatch,
    TransitionPatch,
    TriagePatch,
)

logger = logging.getLogger(__name__)


class TransitionKind(str, Enum):
    TRIAGE = "triage"
    ESCALATION = "escalation"
    DEESCALATION = "deescalation"
    ADMISSION = "admission"
    DISCHARGE = "discharge"
    STABILIZATION = "stabilization"


_S = PatientStatus

TRANSITIONS: Dict[tuple, TransitionKind] = {
    (_S.REGISTERED, _S.PHYSICIAN_QUEUE): TransitionKind.TRIAGE,
    (_S.REGISTERED, _S.ER_QUEUE): TransitionKind.TRIAGE,
    (_S.PHYSICIAN_QUEUE, _S.ER_QUEUE): TransitionKind.ESCALATION,
    (_S.ER_QUEUE, _S.PHYSICIAN_QUEUE): TransitionKind.DEESCALATION,
    (_S.PHYSICIAN_QUEUE, _S.ADMITTED): TransitionKind.ADMISSION,
    (_S.ER_QUEUE, _S.ADMITTED): TransitionKind.ADMISSION,
    (_S.PHYSICIAN_QUEUE, _S.DISCHARGED): TransitionKind.DISCHARGE,
    (_S.ER_QUEUE, _S.DISCHARGED): TransitionKind.DISCHARGE,
    (_S.PHYSICIAN_QUEUE, _S.STABILIZED_HOME): TransitionKind.STABILIZATION,
    (_S.ER_QUEUE, _S.STABILIZED_HOME): TransitionKind.STABILIZATION,
}

PATCH_TYPES = {
    TransitionKind.TRIAGE: TriagePatch,
    TransitionKind.ESCALATION: EscalationPatch,
    TransitionKind.DEESCALATION: DeescalationPatch,
    TransitionKind.ADMISSION: AdmissionPatch,
    TransitionKind.DISCHARGE: DischargePatch,
    TransitionKind.STABILIZATION: StabilizationPatch,
}

_DEFAULT_ACTORS = {
    _S.REGISTERED: ActorRole.TRIAGE_NURSE,
    _S.PHYSICIAN_QUEUE: ActorRole.ATTENDING_PHYSICIAN,
    _S.ER_QUEUE: ActorRole.ER_PHYSICIAN,
}

# Which free-text field a clinician's notes land in, by the queue they act from
_NOTES_FIELD = {
    _S.PHYSICIAN_QUEUE: "physician_notes",
    _S.ER_QUEUE: "er_notes",
}


def target_queue_for(level: TriageLevel) -> PatientStatus:
    """RED goes to the emergency queue; everything else waits for a physician."""
    if level == TriageLevel.RED:
        return PatientStatus.ER_QUEUE
    return PatientStatus.PHYSICIAN_QUEUE


def allowed_targets(status: PatientStatus) -> List[PatientStatus]:
    return [target for (source, target) in TRANSITIONS if source == status]


@dataclass(frozen=True)
class TransitionOutcome:
    """A validated transition, ready to be recorded."""
    kind: TransitionKind
    source: PatientStatus
    target: PatientStatus
    triage_level: TriageLevel
    actor: str
    at: datetime
    notes: str = ""
    follow_up_days: Optional[int] = None
    manual_override: bool = False
    changes: Dict[str, Any] = field(default_factory=dict)


class TransitionValidator:
    """
    Enforces the pathway rules:

    - triage places RED in ER_QUEUE and everything else in PHYSICIAN_QUEUE;
    - escalation needs notes and forces RED;
    - de-escalation needs notes and forces ORANGE;
    - admission notes are required only when REQUIRE_ADMISSION_NOTES is set;
    - ADMITTED, DISCHARGED and STABILIZED_HOME end the episode;
    - nothing ever returns to REGISTERED.
    """

    def __init__(
        self,
        require_admission_notes: Optional[bool] = None,
        max_follow_up_days: Optional[int] = None,
        follow_up_choices: Optional[Sequence[int]] = None,
    ):
        self.require_admission_notes = (
            settings.REQUIRE_ADMISSION_NOTES if require_admission_notes is None else require_admission_notes
        )
        self.max_follow_up_days = (
            settings.MAX_FOLLOW_UP_DAYS if max_follow_up_days is None else max_follow_up_days
        )
        self.follow_up_choices = tuple(
            settings.FOLLOW_UP_DAY_CHOICES if follow_up_choices is None else follow_up_choices
        )

    def validate(
        self,
        patient: Patient,
        target: PatientStatus,
        patch: TransitionPatch,
        at: datetime,
    ) -> TransitionOutcome:
        kind = self._resolve_kind(patient.status, target)
        expected = PATCH_TYPES[kind]
        if not isinstance(patch, expected):
            raise ValidationError(
                f"A {kind.value} requires a {expected.__name__}, got {type(patch).__name__}",
                details={"source": patient.status.value, "target": target.value},
            )

        handler = getattr(self, f"_check_{kind.value}")
        level, notes, changes = handler(patient, target, patch, at)
        return TransitionOutcome(
            kind=kind,
            source=patient.status,
            target=target,
            triage_level=level,
            actor=patch.actor or _DEFAULT_ACTORS[patient.status],
            at=at,
            notes=notes,
            follow_up_days=changes.get("follow_up_days"),
            manual_override=getattr(patch, "manual_override", False),
            changes=changes,
        )

    # ── edge lookup ─────────────────────────────────────────────────────────

    def _resolve_kind(self, source: PatientStatus, target: PatientStatus) -> TransitionKind:
        if target == PatientStatus.REGISTERED:
            raise ValidationError(
                "A patient cannot return to REGISTERED once it has been left",
                details={"source": source.value, "target": target.value},
            )
        if source in TERMINAL_STATUSES:
            raise ValidationError(
                f"Episode is closed in {source.value}; register a new episode instead",
                details={"source": source.value, "target": target.value},
            )
        if source == target:
            raise ValidationError(
                f"Patient is already in {source.value}",
                details={"source": source.value, "target": target.value},
            )
        kind = TRANSITIONS.get((source, target))
        if kind is None:
            raise ValidationError(
                f"Cannot move a patient from {source.value} to {target.value}",
                details={
                    "source": source.value,
                    "target": target.value,
                    "allowed": [s.value for s in allowed_targets(source)],
                },
            )
        return kind

    @staticmethod
    def _require_notes(notes: str, what: str) -> str:
        if not notes or not notes.strip():
            raise ValidationError(f"{what} requires clinician notes")
        return notes.strip()

    # ── per-kind checks ─────────────────────────────────────────────────────

    def _check_triage(self, patient: Patient, target: PatientStatus, patch: TriagePatch, at: datetime):
        placement = target_queue_for(patch.triage_level)
        if target != placement:
            raise ValidationError(
                f"Triage level {patch.triage_level.value} places the patient in {placement.value}, "
                f"not {target.value}",
                details={"triage_level": patch.triage_level.value, "placement": placement.value},
            )
        if not patch.chief_complaint:
            raise ValidationError("Triage requires a chief complaint")
        if not patch.vitals.is_complete:
            raise ValidationError("Triage requires a complete set of vitals (bp, hr, temp, spo2)")
        if patient.sex == Sex.FEMALE and patch.is_pregnant is None:
            raise ValidationError("Pregnancy status must be answered for female patients")
        if patient.sex != Sex.FEMALE and patch.is_pregnant:
            raise ValidationError("Pregnancy can only be recorded for female patients")

        changes: Dict[str, Any] = {
            "chief_complaint": patch.chief_complaint,
            "vitals": patch.vitals,
            "is_pregnant": bool(patch.is_pregnant),
            "screening": tuple(patch.screening),
            "referral_source": ReferralSource.NURSE,
            # A hand-picked level never carries classifier text
            "ai_justification": None if patch.manual_override else patch.justification,
        }
        for name in ("medical_history", "family_history", "medications", "surgeries"):
            value = getattr(patch, name)
            if value is not None:
                changes[name] = value
        return patch.triage_level, "", changes

    def _check_escalation(self, patient, target, patch: EscalationPatch, at):
        notes = self._require_notes(patch.notes, "Escalation to the ER")
        changes = {"physician_notes": notes, "referral_source": ReferralSource.PHYSICIAN}
        return TriageLevel.RED, notes, changes

    def _check_deescalation(self, patient, target, patch: DeescalationPatch, at):
        notes = self._require_notes(patch.notes, "Returning a patient to the physician queue")
        return TriageLevel.ORANGE, notes, {"er_notes": notes}

    def _check_admission(self, patient, target, patch: AdmissionPatch, at):
        if self.require_admission_notes:
            notes = self._require_notes(patch.notes, "Admission")
        else:
            notes = patch.notes
        return patient.triage_level, notes, self._notes_change(patient, notes)

    def _check_discharge(self, patient, target, patch: DischargePatch, at):
        changes = self._notes_change(patient, patch.notes)
        if patch.follow_up is not None:
            if patch.follow_up.days > self.max_follow_up_days:
                raise ValidationError(
                    f"Follow-up must be within {self.max_follow_up_days} days, got {patch.follow_up.days}"
                )
            if patch.follow_up.days not in self.follow_up_choices:
                logger.info(
                    "Custom follow-up interval of %d days for %s", patch.follow_up.days, patient.mrn
                )
            changes.update(
                follow_up_visit=True,
                follow_up_days=patch.follow_up.days,
                follow_up_set_at=at,
            )
        else:
            changes.update(follow_up_visit=False, follow_up_days=None, follow_up_set_at=None)
        return patient.triage_level, patch.notes, changes

    def _check_stabilization(self, patient, target, patch: StabilizationPatch, at):
        return patient.triage_level, patch.notes, self._notes_change(patient, patch.notes)

    @staticmethod
    def _notes_change(patient: Patient, notes: str) -> Dict[str, Any]:
        if not notes:
            return {}
        return {_NOTES_FIELD[patient.status]: notes}
