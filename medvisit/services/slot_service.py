from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.core.config import settings
from medvisit.core.errors import ValidationError, translate_storage_errors
from medvisit.scheduling.slots import WeekGrid, project_week
from medvisit.scheduling.timegrid import clinic_now, date_of, week_monday
from medvisit.services.appointment_service import get_active_appointments
from medvisit.services.doctor_service import get_doctor
from medvisit.services.schedule_service import list_absences, list_rules


@translate_storage_errors
async def get_week_grid(
    session: AsyncSession,
    doctor_id: int,
    week_start: str | None = None,
    slot_minutes: int | None = None,
    now: datetime | None = None,
) -> WeekGrid:
    """Weekly slot grid for a doctor; rules, absences and bookings are loaded once."""
    if slot_minutes is None:
        slot_minutes = settings.default_grid_slot_minutes
    if not settings.min_grid_slot_minutes <= slot_minutes <= settings.max_grid_slot_minutes:
        raise ValidationError(
            f"slot_minutes must be between {settings.min_grid_slot_minutes} "
            f"and {settings.max_grid_slot_minutes}",
            slot_minutes=slot_minutes,
        )
    now = now or clinic_now(settings.clinic_timezone)
    start_day = date_of(week_start) if week_start else week_monday(now.date())
    window_start = datetime(start_day.year, start_day.month, start_day.day)
    window_end = window_start + timedelta(days=7)

    await get_doctor(session, doctor_id)
    rules = await list_rules(session, doctor_id)
    absences = await list_absences(session, doctor_id)
    appointments = await get_active_appointments(session, doctor_id, window_start, window_end)
    return project_week(doctor_id, start_day, slot_minutes, rules, absences, appointments, now)
