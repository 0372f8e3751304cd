from medvisit.models.doctor import Doctor, DoctorPublic
from medvisit.models.user import Role, User, UserCreate, UserPublic
from medvisit.models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentPublic,
    AppointmentStatus,
    Gender,
    PatientSnapshot,
)
from medvisit.models.schedule import Absence, AbsencePublic, AvailabilityRule, AvailabilityRulePublic, RuleKind
from medvisit.models.review import Review, ReviewPublic

__all__ = [
    "Doctor",
    "DoctorPublic",
    "Role",
    "User",
    "UserCreate",
    "UserPublic",
    "ACTIVE_STATUSES",
    "Appointment",
    "AppointmentPublic",
    "AppointmentStatus",
    "Gender",
    "PatientSnapshot",
    "Absence",
    "AbsencePublic",
    "AvailabilityRule",
    "AvailabilityRulePublic",
    "RuleKind",
    "Review",
    "ReviewPublic",
]
