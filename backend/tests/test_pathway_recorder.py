from datetime import datetime, timedelta, timezone

from clinicflow.models.actor import ActorRole
from clinicflow.models.enums import PatientStatus, Specialty, TriageLevel
from clinicflow.models.patient import Vitals
from clinicflow.models.transitions import (
    AdmissionPatch,
    DischargePatch,
    StabilizationPatch,
    TriagePatch,
)
from clinicflow.services import pathway_recorder
from clinicflow.services.transition_validator import TransitionValidator

S = PatientStatus
LATER = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestPathwayRecorder:
    def setup_method(self):
        self.validator = TransitionValidator(require_admission_notes=False, max_follow_up_days=365)

    def _apply(self, patient, target, patch, at=LATER):
        outcome = self.validator.validate(patient, target, patch, at)
        return pathway_recorder.record(patient, outcome)

    def test_record_appends_exactly_one_step(self, make_patient):
        """One transition adds one step and keeps the earlier ones."""
        patient = make_patient("A", TriageLevel.ORANGE, t=1)
        updated = self._apply(patient, S.ADMITTED, AdmissionPatch(notes="Ward 4"))

        assert len(updated.pathway) == len(patient.pathway) + 1
        assert updated.pathway[:-1] == patient.pathway
        step = updated.pathway[-1]
        assert step.status == S.ADMITTED
        assert step.timestamp == LATER
        assert step.actor == ActorRole.ATTENDING_PHYSICIAN
        assert step.description == "Patient admitted to hospital ward. Notes: Ward 4"
        assert updated.status == S.ADMITTED
        assert updated.timestamp == LATER

    def test_original_patient_is_untouched(self, make_patient):
        """Recording returns a new value instead of mutating."""
        patient = make_patient("A", TriageLevel.ORANGE, t=1)
        self._apply(patient, S.ADMITTED, AdmissionPatch())
        assert patient.status == S.PHYSICIAN_QUEUE
        assert len(patient.pathway) == 2

    def test_missing_notes_render_as_none(self, make_patient):
        """Empty notes read as None in the timeline."""
        patient = make_patient("A", TriageLevel.RED, t=1, status=S.ER_QUEUE)
        updated = self._apply(patient, S.STABILIZED_HOME, StabilizationPatch())
        assert updated.pathway[-1].description == (
            "Patient stabilized and discharged home. ER Notes: None"
        )

    def test_discharge_descriptions(self, make_patient):
        """Discharge text depends on whether a follow-up was booked."""
        patient = make_patient("A", TriageLevel.GREEN, t=1)
        with_follow_up = self._apply(patient, S.DISCHARGED, DischargePatch(notes="Rest", follow_up=2))
        without = self._apply(patient, S.DISCHARGED, DischargePatch(notes="Rest"))
        assert with_follow_up.pathway[-1].description == (
            "Patient discharged home. Follow-up scheduled in 2 days. Instructions: Rest"
        )
        assert without.pathway[-1].description == (
            "Patient discharged home. No follow-up required. Instructions: Rest"
        )
        assert with_follow_up.follow_up_set_at == LATER

    def test_manual_triage_is_marked(self, make_patient):
        """A hand-picked triage level is labelled in the timeline."""
        patient = make_patient("A", None, t=0, status=S.REGISTERED)
        patch = TriagePatch(
            triage_level=TriageLevel.ORANGE,
            chief_complaint="Abdominal pain",
            vitals=Vitals(bp="110/70", hr="95", temp="37.9", spo2="97"),
            manual_override=True,
        )
        updated = self._apply(patient, S.PHYSICIAN_QUEUE, patch)
        assert updated.pathway[-1].description == (
            "Triage completed. Category: ORANGE. Complaint: Abdominal pain (manual classification)"
        )
        assert updated.pathway[-1].actor == ActorRole.TRIAGE_NURSE
        assert updated.chief_complaint == "Abdominal pain"

    def test_step_timestamp_clamped_to_last_step(self, make_patient):
        """A clock reading older than the last step must not reorder the pathway."""
        patient = make_patient("A", TriageLevel.GREEN, t=30)
        early = patient.pathway[-1].timestamp - timedelta(minutes=10)
        updated = self._apply(patient, S.DISCHARGED, DischargePatch(), at=early)
        assert updated.pathway[-1].timestamp == patient.pathway[-1].timestamp

    def test_follow_up_stamp_matches_clamped_step_time(self, make_patient):
        """Follow-up scheduling time, step time and patient timestamp agree."""
        patient = make_patient("A", TriageLevel.GREEN, t=30)
        early = patient.pathway[-1].timestamp - timedelta(minutes=10)
        updated = self._apply(patient, S.DISCHARGED, DischargePatch(follow_up=7), at=early)
        step_time = updated.pathway[-1].timestamp
        assert step_time == patient.pathway[-1].timestamp
        assert updated.follow_up_set_at == step_time
        assert updated.timestamp == step_time

    def test_registration_step(self):
        step = pathway_recorder.registration_step(Specialty.OBS_GYN, LATER)
        assert step.status == S.REGISTERED
        assert step.actor == ActorRole.REGISTRATION_CLERK
        assert step.description == "Patient registered for OBS GYN and issued queue ticket."
