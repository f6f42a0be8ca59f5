"""
Patient registry: the single owner of the in-memory episode collection.

Reads (lookups, searches, queue snapshots) work on a tuple snapshot taken
under the lock. Writes validate first, build the complete next Patient value,
and only then swap it into the collection, so a reader never sees a status
change without its pathway step.
"""
import logging
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.config import Settings, settings as default_settings
from ..core.exceptions import (
    AlreadyProcessedError,
    DuplicateActiveEpisodeError,
    NotFoundError,
    ValidationError,
)
from ..models.enums import PatientStatus
from ..models.patient import Patient
from ..models.transitions import RegistrationCandidate, TransitionPatch, TriagePatch
from . import pathway_recorder, queue_builder
from .transition_validator import TransitionValidator, target_queue_for

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PatientRegistry:
    """In-memory patient collection with the registration and transition write paths."""

    def __init__(
        self,
        validator: Optional[TransitionValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.validator = validator or TransitionValidator(
            require_admission_notes=self.settings.REQUIRE_ADMISSION_NOTES,
            max_follow_up_days=self.settings.MAX_FOLLOW_UP_DAYS,
            follow_up_choices=self.settings.FOLLOW_UP_DAY_CHOICES,
        )
        self._clock = clock or _utcnow
        self._clinic_tz = ZoneInfo(self.settings.CLINIC_TIMEZONE) if self.settings.CLINIC_TIMEZONE else None
        self._lock = threading.RLock()
        self._episodes: List[Patient] = []
        self._positions: Dict[str, int] = {}  # episode_id -> index in _episodes

    # ── reads ───────────────────────────────────────────────────────────────

    def snapshot(self) -> Tuple[Patient, ...]:
        with self._lock:
            return tuple(self._episodes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._episodes)

    def get(self, mrn: str) -> Patient:
        """Latest episode for an MRN."""
        with self._lock:
            return self._episodes[self._latest_position(mrn)]

    def get_episode(self, episode_id: str) -> Patient:
        with self._lock:
            pos = self._positions.get(episode_id)
            if pos is None:
                raise NotFoundError(f"No episode {episode_id}", details={"episode_id": episode_id})
            return self._episodes[pos]

    def episodes_for(self, mrn: str) -> List[Patient]:
        """All episodes of one identity, oldest first."""
        return [p for p in self.snapshot() if p.mrn == mrn]

    def find_active_episode(self, national_id: str) -> Optional[Patient]:
        """The identity's episode that has not been discharged or sent home, if any."""
        national_id = (national_id or "").strip()
        if not national_id:
            return None
        for patient in self.snapshot():
            if patient.national_id == national_id and patient.is_active:
                return patient
        return None

    def lookup_by_ticket(self, raw: str) -> Patient:
        """
        Resolve a queue ticket typed at the triage desk.

        Matching is case-insensitive and tolerant of the prefix: "Q-007",
        "q-007" and "7" all find ticket Q-007. The newest matching episode
        wins. A patient who already left REGISTERED is reported as already
        processed rather than returned.
        """
        query = (raw or "").strip().upper()
        if not query:
            raise ValidationError("Enter a ticket number to look up")
        # Compared as strings so arbitrarily long input stays a plain miss
        query_number = _NON_DIGIT.sub("", query).lstrip("0")

        found = None
        for patient in reversed(self.snapshot()):
            ticket = patient.ticket.upper()
            if ticket == query:
                found = patient
                break
            ticket_number = _NON_DIGIT.sub("", ticket).lstrip("0")
            if query_number and query_number == ticket_number:
                found = patient
                break

        if found is None:
            raise NotFoundError(
                "No patient found with that ticket number in the system.",
                details={"ticket": raw},
            )
        if found.status != PatientStatus.REGISTERED:
            raise AlreadyProcessedError(found)
        return found

    def search_archive(self, query: str, limit: Optional[int] = None) -> List[Patient]:
        """
        Free-text search over name, national id, MRN and phone.

        Returns one row per identity (its latest episode). Exact national-id
        or MRN hits are ranked first; otherwise results keep the order in
        which identities were first registered. ``limit=None`` returns every
        match.
        """
        q = (query or "").strip().lower()
        if not q:
            return []

        latest: Dict[str, Patient] = {}
        for patient in self.snapshot():
            latest[patient.mrn] = patient
        hits = [p for p in latest.values() if _matches_archive(p, q)]
        hits.sort(key=lambda p: 0 if q in (p.national_id.lower(), p.mrn.lower()) else 1)
        if limit is not None:
            hits = hits[:limit]
        return hits

    def quick_lookup(self, query: str) -> List[Patient]:
        """Capped search used by the registration desk to pick an existing identity."""
        return self.search_archive(query, limit=self.settings.QUICK_LOOKUP_LIMIT)

    def browse_history(self, query: str = "", status: Optional[PatientStatus] = None) -> List[Patient]:
        """Episode history filtered by name, MRN or ticket and optionally status, newest first."""
        q = (query or "").strip().lower()
        results = []
        for patient in self.snapshot():
            if status is not None and patient.status != status:
                continue
            if q and not (
                q in patient.name.lower() or q in patient.mrn.lower() or q in patient.ticket.lower()
            ):
                continue
            results.append(patient)
        results.sort(key=lambda p: (p.timestamp, p.sequence), reverse=True)
        return results

    def physician_queue(self) -> List[Patient]:
        return queue_builder.build_physician_queue(
            self.snapshot(), elderly_age=self.settings.ELDERLY_AGE_THRESHOLD
        )

    def emergency_queue(self) -> List[Patient]:
        return queue_builder.build_emergency_queue(self.snapshot())

    def census(self) -> queue_builder.QueueCensus:
        return queue_builder.queue_census(self.snapshot())

    def follow_up_roster(self) -> List[queue_builder.FollowUpEntry]:
        return queue_builder.build_follow_up_roster(self.snapshot())

    # ── writes ──────────────────────────────────────────────────────────────

    def register(self, candidate: RegistrationCandidate) -> Patient:
        """
        Open a new episode.

        Raises DuplicateActiveEpisodeError when the national id already has an
        episode outside DISCHARGED/STABILIZED_HOME. A returning identity keeps
        its MRN; a new one is issued an MRN-XXXXXX token. The ticket is the next
        Q-### number for the current calendar day.
        """
        self._check_identity(candidate)

        with self._lock:
            active = self.find_active_episode(candidate.national_id)
            if active is not None:
                logger.warning(
                    "Registration blocked: %s already active in %s", active.mrn, active.status.value
                )
                raise DuplicateActiveEpisodeError(active)

            now = self._clock()
            mrn = self._mrn_for(candidate.national_id)
            patient = Patient(
                episode_id=str(uuid.uuid4()),
                mrn=mrn,
                ticket=self._next_ticket(now),
                sequence=len(self._episodes) + 1,
                registered_at=now,
                timestamp=now,
                pathway=(pathway_recorder.registration_step(candidate.specialty, now),),
                **candidate.model_dump(),
            )
            self._positions[patient.episode_id] = len(self._episodes)
            self._episodes.append(patient)

        logger.info("Registered %s with ticket %s", patient.mrn, patient.ticket)
        return patient

    def request_transition(
        self,
        mrn: str,
        target: PatientStatus,
        patch: TransitionPatch,
    ) -> Patient:
        """Validate and record one status change on the identity's latest episode."""
        with self._lock:
            pos = self._latest_position(mrn)
            current = self._episodes[pos]
            try:
                outcome = self.validator.validate(current, target, patch, self._clock())
            except ValidationError as exc:
                logger.warning(
                    "Transition %s -> %s rejected for %s: %s",
                    current.status.value, target.value, mrn, exc.reason,
                )
                raise
            updated = pathway_recorder.record(current, outcome)
            self._episodes[pos] = updated

        logger.info(
            "%s moved %s -> %s (%s)",
            mrn, outcome.source.value, outcome.target.value, updated.triage_level.value,
        )
        return updated

    def triage(self, mrn: str, patch: TriagePatch) -> Patient:
        """Nurse intake: place the patient in the queue its triage level dictates."""
        return self.request_transition(mrn, target_queue_for(patch.triage_level), patch)

    def attach_summary(self, episode_id: str, summary: str, current_only: bool = False) -> Optional[Patient]:
        """
        Store an advisory narrative on one episode. Last write wins.

        With ``current_only`` the narrative is dropped (None is returned) once
        the identity has opened a newer episode.
        """
        with self._lock:
            pos = self._positions.get(episode_id)
            if pos is None:
                raise NotFoundError(f"No episode {episode_id}", details={"episode_id": episode_id})
            episode = self._episodes[pos]
            if current_only and self._latest_position(episode.mrn) != pos:
                logger.info("Dropping summary for superseded episode of %s", episode.mrn)
                return None
            updated = episode.evolve(ai_summary=summary)
            self._episodes[pos] = updated
        return updated

    # ── helpers ─────────────────────────────────────────────────────────────

    def _latest_position(self, mrn: str) -> int:
        for pos in range(len(self._episodes) - 1, -1, -1):
            if self._episodes[pos].mrn == mrn:
                return pos
        raise NotFoundError(f"No patient with MRN {mrn}", details={"mrn": mrn})

    def _check_identity(self, candidate: RegistrationCandidate) -> None:
        expected = self.settings.NATIONAL_ID_LENGTH
        if not candidate.national_id.isdigit() or len(candidate.national_id) != expected:
            raise ValidationError(
                f"National ID must be exactly {expected} digits",
                details={"field": "national_id"},
            )
        if len(candidate.phone) < self.settings.MIN_PHONE_LENGTH:
            raise ValidationError(
                f"Phone number must have at least {self.settings.MIN_PHONE_LENGTH} characters",
                details={"field": "phone"},
            )

    def _mrn_for(self, national_id: str) -> str:
        for patient in reversed(self._episodes):
            if patient.national_id == national_id:
                return patient.mrn
        taken = {p.mrn for p in self._episodes}
        while True:
            mrn = f"{self.settings.MRN_PREFIX}{uuid.uuid4().hex[:6].upper()}"
            if mrn not in taken:
                return mrn

    def _clinic_day(self, moment: datetime):
        # astimezone(None) converts to the server's local zone
        return moment.astimezone(self._clinic_tz).date()

    def _next_ticket(self, now: datetime) -> str:
        today = self._clinic_day(now)
        issued_today = sum(1 for p in self._episodes if self._clinic_day(p.registered_at) == today)
        number = str(issued_today + 1).zfill(self.settings.TICKET_DIGITS)
        return f"{self.settings.TICKET_PREFIX}{number}"


def _matches_archive(patient: Patient, q: str) -> bool:
    return (
        q in patient.name.lower()
        or q in patient.national_id.lower()
        or q in patient.mrn.lower()
        or (bool(patient.phone) and q in patient.phone)
    )
