from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import PatientStatus


class PathwayStep(BaseModel):
    """One audit entry in an episode's pathway. Never edited once created."""
    model_config = ConfigDict(frozen=True)

    status: PatientStatus
    description: str = Field(min_length=1)
    timestamp: datetime
    actor: str = Field(min_length=1)
