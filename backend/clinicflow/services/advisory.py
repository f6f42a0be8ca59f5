"""
Glue between the registry and the advisory collaborators.

Classifier and narrative calls run outside the registry lock. A failed call
leaves the optional field unset and surfaces CollaboratorFailure; the status
and pathway are never touched here.
"""
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from ..core.exceptions import CollaboratorFailure
from ..models.patient import Patient, Vitals
from ..models.transitions import TriagePatch
from .classifier_client import ClassifierResult, TriageClassifierClient, classifier_client
from .narrative_client import NarrativeClient, narrative_client
from .registry import PatientRegistry

logger = logging.getLogger(__name__)


@dataclass
class SummaryRequest:
    token: str
    episode_id: str
    snapshot: Patient


class AdvisoryService:
    def __init__(
        self,
        registry: PatientRegistry,
        classifier: Optional[TriageClassifierClient] = None,
        narrator: Optional[NarrativeClient] = None,
    ):
        self.registry = registry
        self.classifier = classifier or classifier_client
        self.narrator = narrator or narrative_client
        self._lock = threading.Lock()
        self._pending: Dict[str, str] = {}  # token -> episode_id

    def classify_intake(self, complaint: str, vitals: Vitals) -> ClassifierResult:
        """Ask the classifier for a level. Failures propagate; no default level is invented."""
        try:
            return self.classifier.classify(complaint, vitals)
        except CollaboratorFailure:
            logger.warning("Classification failed; manual triage level required")
            raise

    @staticmethod
    def triage_patch_from(result: ClassifierResult, complaint: str, vitals: Vitals, **intake) -> TriagePatch:
        """Build the nurse's triage patch from a classifier result."""
        return TriagePatch(
            triage_level=result.level,
            justification=result.justification,
            chief_complaint=complaint,
            vitals=vitals,
            **intake,
        )

    # ── narrative summary ───────────────────────────────────────────────────

    def begin_summary(self, mrn: str) -> SummaryRequest:
        snapshot = self.registry.get(mrn)
        token = uuid.uuid4().hex
        with self._lock:
            self._pending[token] = snapshot.episode_id
        return SummaryRequest(token=token, episode_id=snapshot.episode_id, snapshot=snapshot)

    def complete_summary(self, token: str, summary: str) -> Optional[Patient]:
        """
        Store the narrative for the episode that asked for it.

        Each request is accepted once; a second result for the same token is
        dropped and None is returned. A result arriving after the identity
        has opened a newer episode is dropped as well.
        """
        with self._lock:
            episode_id = self._pending.pop(token, None)
        if episode_id is None:
            logger.info("Dropping summary for unknown or completed request %s", token)
            return None
        return self.registry.attach_summary(episode_id, summary, current_only=True)

    def cancel_summary(self, token: str) -> None:
        with self._lock:
            self._pending.pop(token, None)

    def refresh_summary(self, mrn: str) -> Patient:
        """Request, wait for and store a narrative summary in one call."""
        request = self.begin_summary(mrn)
        try:
            summary = self.narrator.summarize(request.snapshot)
        except CollaboratorFailure:
            self.cancel_summary(request.token)
            logger.warning("Summary for %s not generated; ai_summary left unset", mrn)
            raise
        return self.complete_summary(request.token, summary)
