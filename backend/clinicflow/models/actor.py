class ActorRole:
    """Who performed a pathway step, as shown in the patient timeline."""
    REGISTRATION_CLERK = "Registration Clerk"
    TRIAGE_NURSE = "Triage Nurse"
    ATTENDING_PHYSICIAN = "Attending Physician"
    ER_PHYSICIAN = "ER Physician"
