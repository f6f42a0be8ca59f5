"""
External narrative generator client.
Produces the advisory case summary shown to physicians and the optional
screening questions offered at intake. Nothing in the pathway depends on it.
"""
import logging
from typing import List, Optional

import httpx

from ..core.config import settings
from ..core.exceptions import CollaboratorFailure
from ..models.enums import Sex
from ..models.patient import Patient, Vitals

logger = logging.getLogger(__name__)

_GENERAL_QUESTIONS = [
    "When did the symptoms start, and have they changed since?",
    "On a scale of 0 to 10, how severe is the discomfort right now?",
    "Are you taking any regular medication or had any recent changes to it?",
    "Do you have any known allergies?",
    "Have you had similar episodes before?",
]

_FEMALE_QUESTION = "When was the first day of your last menstrual period?"


def _mock_summary(patient: Patient) -> str:
    vitals = patient.vitals
    screening = "; ".join(
        f"{item.question} {item.answer or 'No answer'}" for item in patient.screening
    ) or "None"
    level = patient.triage_level.value if patient.triage_level else "unclassified"
    return (
        f"{patient.age}-year-old {patient.sex.value.lower()} presenting with "
        f"{patient.chief_complaint or 'no recorded complaint'}. "
        f"Vitals: BP {vitals.bp or '-'}, HR {vitals.hr or '-'}, Temp {vitals.temp or '-'}, "
        f"SpO2 {vitals.spo2 or '-'}. Past history: {patient.medical_history or 'None'}. "
        f"Medications: {patient.medications or 'None'}. Screening: {screening}. "
        f"Triage category {level}."
    )


class NarrativeClient:
    """HTTP client for the narrative generation API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        mock_mode: Optional[bool] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or settings.NARRATIVE_API_URL
        self.api_key = api_key or settings.NARRATIVE_API_KEY
        self.timeout = timeout or settings.NARRATIVE_TIMEOUT
        self.mock_mode = settings.NARRATIVE_MOCK_MODE if mock_mode is None else mock_mode
        self._transport = transport

    def _post(self, path: str, body: dict) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(f"{self.base_url}{path}", json=body, headers=headers)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Narrative generator %s failed: %s", path, exc)
            raise CollaboratorFailure("narrative", f"Narrative generator failed: {exc}") from exc

    def summarize(self, patient: Patient) -> str:
        """Concise clinical narrative for the attending physician."""
        if self.mock_mode or not self.base_url:
            logger.debug("Using mock narrative summary for %s", patient.mrn)
            return _mock_summary(patient)

        payload = self._post("/summarize", {"patient": patient.model_dump(mode="json")})
        summary = str(payload.get("summary") or "").strip() if isinstance(payload, dict) else ""
        if not summary:
            raise CollaboratorFailure("narrative", "Summary could not be generated")
        return summary

    def screening_questions(self, complaint: str, vitals: Vitals, age: int, sex: Sex) -> List[str]:
        """Up to five follow-up questions tailored to the patient's age and sex."""
        if self.mock_mode or not self.base_url:
            questions = list(_GENERAL_QUESTIONS)
            if sex == Sex.FEMALE and 12 <= age <= 55:
                questions[-1] = _FEMALE_QUESTION
            return questions

        payload = self._post(
            "/screening-questions",
            {"complaint": complaint, "vitals": vitals.model_dump(), "age": age, "sex": sex.value},
        )
        questions = payload.get("questions") if isinstance(payload, dict) else None
        if not isinstance(questions, list) or not questions:
            raise CollaboratorFailure("narrative", "Could not generate screening questions")
        return [str(q).strip() for q in questions if str(q).strip()][:5]


narrative_client = NarrativeClient()
