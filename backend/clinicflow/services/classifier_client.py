"""
External triage classifier API client.
Sends the chief complaint and vitals to a remote risk model and returns an
urgency level with its justification. Supports a rule-based mock mode for
development when the external API is unavailable.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import httpx

from ..core.config import settings
from ..core.exceptions import CollaboratorFailure
from ..models.enums import TriageLevel
from ..models.patient import Vitals

logger = logging.getLogger(__name__)

RED_PREFIX = "Immediate Emergency Department Referral Required."

# Complaint phrases that override reassuring vitals (Manchester red flags)
RED_FLAG_PHRASES = (
    "chest pain",
    "unresponsive",
    "seizure",
    "anaphylaxis",
    "massive bleeding",
    "cannot breathe",
    "severe shortness of breath",
)


class ClassifierResult:
    """Result from the external triage classifier."""
    def __init__(
        self,
        level: TriageLevel,
        justification: str,
        timestamp: str,
        model_version: str = "mock-1.0.0",
    ):
        self.level = level
        self.justification = justification
        self.timestamp = timestamp
        self.model_version = model_version


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _grade_vitals(vitals: Vitals) -> List[Tuple[TriageLevel, str]]:
    """Modified NEWS2 grading of HR, systolic BP and temperature. SpO2 is not scored."""
    grades = []
    hr = vitals.heart_rate
    if hr is not None:
        if hr <= 40 or hr >= 131:
            grades.append((TriageLevel.RED, f"HR {hr} bpm"))
        elif hr <= 50 or hr >= 111:
            grades.append((TriageLevel.ORANGE, f"HR {hr} bpm"))
    sbp = vitals.systolic
    if sbp is not None:
        if sbp <= 90:
            grades.append((TriageLevel.RED, f"SBP {sbp} mmHg"))
        elif sbp <= 100 or sbp >= 220:
            grades.append((TriageLevel.ORANGE, f"SBP {sbp} mmHg"))
    temp = vitals.temperature
    if temp is not None:
        if temp <= 35.0:
            grades.append((TriageLevel.RED, f"Temp {temp:.1f} C"))
        elif temp <= 36.0 or temp >= 38.1:
            grades.append((TriageLevel.ORANGE, f"Temp {temp:.1f} C"))
    return grades


def _mock_response(complaint: str, vitals: Vitals) -> ClassifierResult:
    """Deterministic stand-in: the single worst parameter decides the level."""
    text = (complaint or "").lower()
    flags = [phrase for phrase in RED_FLAG_PHRASES if phrase in text]
    grades = _grade_vitals(vitals)

    red = [reason for level, reason in grades if level == TriageLevel.RED]
    orange = [reason for level, reason in grades if level == TriageLevel.ORANGE]

    if flags or red:
        reasons = ", ".join(flags + red)
        return ClassifierResult(
            level=TriageLevel.RED,
            justification=f"{RED_PREFIX} Red parameters: {reasons}.",
            timestamp=_now_iso(),
        )
    if orange:
        return ClassifierResult(
            level=TriageLevel.ORANGE,
            justification=f"Priority outpatient review. Intermediate parameters: {', '.join(orange)}.",
            timestamp=_now_iso(),
        )
    return ClassifierResult(
        level=TriageLevel.GREEN,
        justification="Vitals within stable range and no red-flag symptoms reported.",
        timestamp=_now_iso(),
    )


class TriageClassifierClient:
    """HTTP client for the external triage classifier API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or settings.CLASSIFIER_API_URL
        self.api_key = api_key or settings.CLASSIFIER_API_KEY
        self.timeout = timeout or settings.CLASSIFIER_TIMEOUT
        self.mock_mode = settings.CLASSIFIER_MOCK_MODE if mock_mode is None else mock_mode
        self._transport = transport

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self._transport)

    def get_model_version(self) -> Optional[str]:
        """Check /version endpoint so every classification can be traced to a model."""
        if self.mock_mode or not self.base_url:
            return "mock-1.0.0"
        try:
            with self._client() as client:
                resp = client.get(f"{self.base_url}/version", headers=self._headers())
                resp.raise_for_status()
                return resp.json().get("version", "unknown")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Classifier /version endpoint unavailable: %s", exc)
            return None

    def classify(self, complaint: str, vitals: Vitals) -> ClassifierResult:
        """
        Classify a patient's urgency from complaint text and vitals.

        Raises CollaboratorFailure when the API is unreachable or its answer
        is unusable. There is no silent fallback level: the caller must retry
        or have a clinician choose the level by hand.
        """
        if self.mock_mode or not self.base_url:
            logger.debug("Using mock classifier response (mock_mode=%s)", self.mock_mode)
            return _mock_response(complaint, vitals)

        try:
            with self._client() as client:
                resp = client.post(
                    f"{self.base_url}/classify",
                    json={"complaint": complaint, "vitals": vitals.model_dump()},
                    headers=self._headers(),
                )
                resp.raise_for_status()
                payload = resp.json()

            level = TriageLevel(str(payload["level"]).upper())
            justification = str(payload.get("justification") or "").strip()
        except (httpx.HTTPError, KeyError, ValueError, TypeError) as exc:
            logger.warning("Triage classifier unavailable: %s", exc)
            raise CollaboratorFailure("classifier", f"Triage classifier failed: {exc}") from exc

        if not justification:
            raise CollaboratorFailure("classifier", "Triage classifier returned no justification")

        return ClassifierResult(
            level=level,
            justification=justification,
            timestamp=payload.get("timestamp", _now_iso()),
            model_version=self.get_model_version() or "unknown",
        )


classifier_client = TriageClassifierClient()
