"""Tests for the triage classifier client: mock grading and the HTTP path."""
import httpx
import pytest

from clinicflow.core.exceptions import CollaboratorFailure
from clinicflow.models.enums import TriageLevel
from clinicflow.models.patient import Vitals
from clinicflow.services.classifier_client import RED_PREFIX, TriageClassifierClient

STABLE = Vitals(bp="120/80", hr="80", temp="37.0", spo2="98")


class TestMockClassifier:
    def setup_method(self):
        self.client = TriageClassifierClient(mock_mode=True)

    def test_stable_vitals_are_green(self):
        """Normal vitals and a benign complaint grade GREEN."""
        result = self.client.classify("Sore throat", STABLE)
        assert result.level == TriageLevel.GREEN
        assert result.model_version == "mock-1.0.0"

    def test_red_flag_phrase_overrides_vitals(self):
        """Red-flag complaint text wins over reassuring vitals."""
        result = self.client.classify("Crushing CHEST PAIN since an hour", STABLE)
        assert result.level == TriageLevel.RED
        assert result.justification.startswith(RED_PREFIX)
        assert "chest pain" in result.justification

    @pytest.mark.parametrize("vitals", [
        Vitals(bp="85/50", hr="80", temp="37.0", spo2="98"),
        Vitals(bp="120/80", hr="135", temp="37.0", spo2="98"),
        Vitals(bp="120/80", hr="80", temp="34.8", spo2="98"),
    ])
    def test_red_vitals(self, vitals):
        """Any single RED parameter grades the patient RED."""
        assert self.client.classify("Dizzy", vitals).level == TriageLevel.RED

    @pytest.mark.parametrize("vitals", [
        Vitals(bp="98/60", hr="80", temp="37.0", spo2="98"),
        Vitals(bp="120/80", hr="112", temp="37.0", spo2="98"),
        Vitals(bp="120/80", hr="80", temp="38.5", spo2="98"),
    ])
    def test_orange_vitals(self, vitals):
        """Intermediate parameters grade ORANGE."""
        result = self.client.classify("Feverish", vitals)
        assert result.level == TriageLevel.ORANGE
        assert result.justification.startswith("Priority outpatient review.")

    def test_worst_parameter_wins(self):
        """The worst parameter decides when several are abnormal."""
        vitals = Vitals(bp="85/50", hr="115", temp="38.5", spo2="98")
        assert self.client.classify("Weak", vitals).level == TriageLevel.RED


class TestRemoteClassifier:
    def _client(self, handler):
        return TriageClassifierClient(
            base_url="http://classifier.test",
            api_key="secret",
            mock_mode=False,
            transport=httpx.MockTransport(handler),
        )

    def test_successful_classification(self):
        """Remote level, justification and model version are returned."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/version":
                return httpx.Response(200, json={"version": "triage-2.3"})
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200, json={"level": "orange", "justification": "Tachycardic, febrile."}
            )

        result = self._client(handler).classify("Fever", STABLE)
        assert result.level == TriageLevel.ORANGE
        assert result.justification == "Tachycardic, febrile."
        assert result.model_version == "triage-2.3"
        assert seen["auth"] == "Bearer secret"

    def test_server_error_raises_collaborator_failure(self):
        """HTTP errors become CollaboratorFailure."""
        client = self._client(lambda request: httpx.Response(503))
        with pytest.raises(CollaboratorFailure) as exc_info:
            client.classify("Fever", STABLE)
        assert exc_info.value.collaborator == "classifier"

    def test_unknown_level_raises_collaborator_failure(self):
        """A level outside RED, ORANGE and GREEN is rejected."""
        client = self._client(lambda request: httpx.Response(200, json={"level": "BLUE", "justification": "?"}))
        with pytest.raises(CollaboratorFailure):
            client.classify("Fever", STABLE)

    def test_empty_justification_is_rejected(self):
        """A level without a reason cannot be shown to the nurse."""
        client = self._client(lambda request: httpx.Response(200, json={"level": "GREEN", "justification": "  "}))
        with pytest.raises(CollaboratorFailure, match="no justification"):
            client.classify("Fever", STABLE)

    def test_version_endpoint_failure_is_tolerated(self):
        client = self._client(lambda request: httpx.Response(500))
        assert client.get_model_version() is None
