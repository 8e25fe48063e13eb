"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Practitioner slot duration limits (minutes)
DEFAULT_SLOT_DURATION_MINUTES = 30
MIN_SLOT_DURATION_MINUTES = 5
MAX_SLOT_DURATION_MINUTES = 480

# Query limits
AGENDA_QUERY_LIMIT = 1000  # Upper bound of appointments fetched for one day
PRACTITIONERS_QUERY_LIMIT = 500
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Validation limits
MAX_AUDIT_REASON_LENGTH = 500

# PostgreSQL SQLSTATE raised by the appointments_no_overlap exclusion constraint
EXCLUSION_VIOLATION = "23P01"

# Realtime events
PATIENT_WAITING_EVENT = "patient-waiting"

# Reminders are sent for appointments this many days ahead
REMINDER_DAYS_AHEAD = 1
