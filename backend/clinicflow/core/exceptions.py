"""
Error outcomes raised by the pathway core.

Every check runs before the registry is touched, so catching one of these
always means the patient collection is exactly as it was before the call.
"""
from typing import Any, Dict, Optional


class ClinicFlowError(Exception):
    """Base class for all recoverable pathway errors."""

    def __init__(
        self,
        message: str,
        code: str = "CLINICFLOW_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ClinicFlowError):
    """Missing notes, malformed identifier or an illegal transition."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=reason, code="VALIDATION_ERROR", details=details)
        self.reason = reason


class DuplicateActiveEpisodeError(ClinicFlowError):
    """The identity already has an episode that has not reached a terminal status."""

    def __init__(self, active):
        super().__init__(
            message=(
                f"Patient {active.mrn} already has an active episode "
                f"in {active.status.value} (ticket {active.ticket})."
            ),
            code="DUPLICATE_ACTIVE_EPISODE",
            details={"mrn": active.mrn, "ticket": active.ticket, "status": active.status.value},
        )
        self.active = active


class NotFoundError(ClinicFlowError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_FOUND", details=details)


class AlreadyProcessedError(ClinicFlowError):
    """Ticket lookup hit a patient that has already left REGISTERED."""

    def __init__(self, patient):
        super().__init__(
            message=f"Ticket {patient.ticket} has already been triaged ({patient.status.value}).",
            code="ALREADY_PROCESSED",
            details={"mrn": patient.mrn, "ticket": patient.ticket, "status": patient.status.value},
        )
        self.patient = patient
        self.status = patient.status


class CollaboratorFailure(ClinicFlowError):
    """The classifier or narrative generator was unreachable or returned garbage."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(
            message=message,
            code="COLLABORATOR_FAILURE",
            details={"collaborator": collaborator},
        )
        self.collaborator = collaborator
