from enum import Enum


class TriageLevel(str, Enum):
    RED = "RED"        # High risk - immediate ER
    ORANGE = "ORANGE"  # Intermediate - urgent outpatient
    GREEN = "GREEN"    # Stable - standard queue


class PatientStatus(str, Enum):
    REGISTERED = "REGISTERED"
    PHYSICIAN_QUEUE = "PHYSICIAN_QUEUE"
    ER_QUEUE = "ER_QUEUE"
    ADMITTED = "ADMITTED"
    DISCHARGED = "DISCHARGED"
    STABILIZED_HOME = "STABILIZED_HOME"


# An identity may hold a new episode only once every earlier one is in one of these.
CLOSED_STATUSES = frozenset({PatientStatus.DISCHARGED, PatientStatus.STABILIZED_HOME})

# No further automatic transitions out of these.
TERMINAL_STATUSES = frozenset({
    PatientStatus.ADMITTED,
    PatientStatus.DISCHARGED,
    PatientStatus.STABILIZED_HOME,
})


class Sex(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Specialty(str, Enum):
    INTERNAL_MEDICINE = "INTERNAL_MEDICINE"
    SURGERY = "SURGERY"
    OBS_GYN = "OBS_GYN"
    PEDIATRICS = "PEDIATRICS"


class ReferralSource(str, Enum):
    """Intake channel that produced the current queue placement."""
    REGISTRATION = "REGISTRATION"
    NURSE = "NURSE"
    PHYSICIAN = "PHYSICIAN"
    DIRECT = "DIRECT"
