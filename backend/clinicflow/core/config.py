from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    APP_NAME: str = "ClinicFlow Patient Pathway"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Identity and ticketing
    MRN_PREFIX: str = "MRN-"
    TICKET_PREFIX: str = "Q-"
    TICKET_DIGITS: int = 3
    NATIONAL_ID_LENGTH: int = 14
    MIN_PHONE_LENGTH: int = 8
    CLINIC_TIMEZONE: Optional[str] = None  # IANA zone for the ticket day boundary; None uses server local time

    # Queue ordering
    ELDERLY_AGE_THRESHOLD: int = 75
    QUICK_LOOKUP_LIMIT: int = 5

    # Disposition policy
    REQUIRE_ADMISSION_NOTES: bool = False
    FOLLOW_UP_DAY_CHOICES: List[int] = [2, 7, 14, 30]
    MAX_FOLLOW_UP_DAYS: int = 365

    # External triage classifier
    CLASSIFIER_API_URL: Optional[str] = None
    CLASSIFIER_API_KEY: Optional[str] = None
    CLASSIFIER_TIMEOUT: int = 10
    CLASSIFIER_MOCK_MODE: bool = True  # Use rule-based mock when the external API is unavailable

    # External narrative generator (advisory only)
    NARRATIVE_API_URL: Optional[str] = None
    NARRATIVE_API_KEY: Optional[str] = None
    NARRATIVE_TIMEOUT: int = 20
    NARRATIVE_MOCK_MODE: bool = True

    class Config:
        env_file = ".env"


settings = Settings()
