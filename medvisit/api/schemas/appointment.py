from datetime import datetime

from pydantic import BaseModel, Field

from medvisit.core.config import settings
from medvisit.models.appointment import AppointmentStatus, PatientSnapshot


class ReserveAppointmentRequest(BaseModel):
    doctor_id: int
    start_at: datetime
    duration_slots: int = Field(ge=1, le=settings.max_duration_slots)  # in 30-minute units
    visit_type: str = Field(min_length=2)
    patient: PatientSnapshot
    notes_for_doctor: str | None = None


class ReservationResult(BaseModel):
    id: int
    status: AppointmentStatus
    start_at: datetime
    end_at: datetime


class CancelResult(BaseModel):
    appointment_id: int
    status: AppointmentStatus
