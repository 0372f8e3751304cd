from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(StrEnum):
    RESERVED = "RESERVED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Appointments that occupy the doctor's time; a cancelled one frees its slot.
ACTIVE_STATUSES = (
    AppointmentStatus.RESERVED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
)

# Appointments an absence may still cancel.
CANCELLABLE_STATUSES = (AppointmentStatus.RESERVED, AppointmentStatus.CONFIRMED)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    AppointmentStatus.RESERVED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


class Gender(StrEnum):
    M = "M"
    F = "F"
    OTHER = "OTHER"


class PatientSnapshot(SQLModel):
    full_name: str = Field(min_length=2)
    gender: Gender
    age: int = Field(ge=0, le=120)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_doctor_window", "doctor_id", "start_at", "end_at"),)
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    patient_id: int = Field(foreign_key="users.id", index=True)
    start_at: datetime = Field(index=True)
    end_at: datetime
    status: str = Field(default=AppointmentStatus.RESERVED, max_length=16, index=True)
    visit_type: str
    # Copy taken at booking time; later profile edits do not touch it.
    patient_snapshot: dict = Field(sa_column=Column(JSON, nullable=False))
    notes_for_doctor: str | None = None
    cancel_reason: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class AppointmentPublic(SQLModel):
    id: int
    doctor_id: int
    patient_id: int
    start_at: datetime
    end_at: datetime
    status: AppointmentStatus
    visit_type: str
    patient_snapshot: PatientSnapshot
    notes_for_doctor: str | None = None
    cancel_reason: str | None = None
    created_at: datetime


class AppointmentWithDoctor(AppointmentPublic):
    doctor_full_name: str
    doctor_specialization: str
