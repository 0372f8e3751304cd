import logging
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.schemas.appointment import ReserveAppointmentRequest
from medvisit.core.config import settings
from medvisit.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_storage_errors,
)
from medvisit.core.permission import Principal, ensure_role, own_doctor_id
from medvisit.models.appointment import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    Appointment,
    AppointmentStatus,
)
from medvisit.models.doctor import Doctor
from medvisit.models.user import Role
from medvisit.scheduling.availability import fits_single_rule, is_absent
from medvisit.scheduling.timegrid import clinic_now, minute_of_day, to_clinic_naive, ymd
from medvisit.services.doctor_service import lock_doctor_schedule
from medvisit.services.schedule_service import list_absences, list_rules

logger = logging.getLogger(__name__)


async def get_active_appointments(
    session: AsyncSession, doctor_id: int, window_start: datetime, window_end: datetime
) -> list[Appointment]:
    """Non-cancelled appointments of the doctor intersecting [window_start, window_end)."""
    result = await session.execute(
        select(Appointment)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at < window_end,
            Appointment.end_at > window_start,
        )
        .order_by(Appointment.start_at)
    )
    return list(result.scalars().all())


@translate_storage_errors
async def reserve_appointment(
    session: AsyncSession,
    principal: Principal,
    data: ReserveAppointmentRequest,
    now: datetime | None = None,
) -> Appointment:
    """
    Validate a reservation against the doctor's schedule and insert it as RESERVED.

    Checks, in order: start strictly in the future, no absence on the start
    date, the whole visit inside a single range of one applicable rule, and
    no overlap with an active appointment. Everything after the past-start
    check runs under the doctor's schedule lock.
    """
    ensure_role(principal, Role.PATIENT)
    now = now or clinic_now(settings.clinic_timezone)
    start = to_clinic_naive(data.start_at, settings.clinic_timezone)
    if start.second or start.microsecond:
        raise ValidationError("start_at must be on a whole minute", start_at=start.isoformat())
    if start <= now:
        raise ValidationError("Cannot reserve a visit in the past", start_at=start.isoformat())
    duration = data.duration_slots * settings.base_slot_minutes
    end = start + timedelta(minutes=duration)
    day = ymd(start)

    await lock_doctor_schedule(session, data.doctor_id)

    absences = await list_absences(session, data.doctor_id)
    if is_absent(absences, day):
        raise ConflictError("The doctor is absent on this day", date=day)

    rules = await list_rules(session, data.doctor_id)
    start_min = minute_of_day(start)
    if not fits_single_rule(rules, day, start_min, start_min + duration):
        raise ConflictError("Requested time is outside the doctor's offered hours", date=day)

    busy = await get_active_appointments(session, data.doctor_id, start, end)
    if busy:
        raise ConflictError("This time is already booked", date=day)

    appointment = Appointment(
        doctor_id=data.doctor_id,
        patient_id=principal.subject_id,
        start_at=start,
        end_at=end,
        status=AppointmentStatus.RESERVED,
        visit_type=data.visit_type,
        patient_snapshot=data.patient.model_dump(mode="json"),
        notes_for_doctor=data.notes_for_doctor,
    )
    session.add(appointment)
    try:
        await session.flush()
    except IntegrityError as e:
        # Exclusion constraint caught a concurrent overlapping insert
        logger.warning("Overlapping reservation rejected by the store: %s", e)
        raise ConflictError("This time is already booked", date=day) from e
    await session.refresh(appointment)
    logger.info(
        "Appointment %s reserved: doctor=%s patient=%s %s-%s",
        appointment.id, appointment.doctor_id, appointment.patient_id, start, end,
    )
    return appointment


async def get_appointment_for_update(session: AsyncSession, appointment_id: int) -> Appointment:
    result = await session.execute(
        select(Appointment).where(Appointment.id == appointment_id).with_for_update()
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFoundError("Appointment not found", appointment_id=appointment_id)
    return appointment


def _transition(appointment: Appointment, target: AppointmentStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[appointment.status]:
        raise ValidationError(
            f"Cannot change a {appointment.status} appointment to {target}",
            appointment_id=appointment.id,
        )
    appointment.status = target


async def _patient_owned(session: AsyncSession, principal: Principal, appointment_id: int) -> Appointment:
    ensure_role(principal, Role.PATIENT)
    appointment = await get_appointment_for_update(session, appointment_id)
    if appointment.patient_id != principal.subject_id:
        raise AuthorizationError("Not your appointment", appointment_id=appointment_id)
    return appointment


@translate_storage_errors
async def cancel_appointment(session: AsyncSession, principal: Principal, appointment_id: int) -> Appointment:
    appointment = await _patient_owned(session, principal, appointment_id)
    _transition(appointment, AppointmentStatus.CANCELLED)
    session.add(appointment)
    await session.flush()
    logger.info("Appointment %s cancelled by patient %s", appointment_id, principal.subject_id)
    return appointment


@translate_storage_errors
async def confirm_payment(session: AsyncSession, principal: Principal, appointment_id: int) -> Appointment:
    """Payment is a status flip: RESERVED -> CONFIRMED."""
    appointment = await _patient_owned(session, principal, appointment_id)
    _transition(appointment, AppointmentStatus.CONFIRMED)
    session.add(appointment)
    await session.flush()
    return appointment


@translate_storage_errors
async def complete_appointment(session: AsyncSession, principal: Principal, appointment_id: int) -> Appointment:
    doctor_id = own_doctor_id(principal)
    appointment = await get_appointment_for_update(session, appointment_id)
    if appointment.doctor_id != doctor_id:
        raise AuthorizationError("Not your appointment", appointment_id=appointment_id)
    _transition(appointment, AppointmentStatus.COMPLETED)
    session.add(appointment)
    await session.flush()
    logger.info("Appointment %s completed by doctor %s", appointment_id, doctor_id)
    return appointment


@translate_storage_errors
async def list_patient_appointments(
    session: AsyncSession, principal: Principal
) -> list[tuple[Appointment, Doctor]]:
    ensure_role(principal, Role.PATIENT)
    result = await session.execute(
        select(Appointment, Doctor)
        .join(Doctor, Doctor.id == Appointment.doctor_id)
        .where(Appointment.patient_id == principal.subject_id)
        .order_by(Appointment.start_at.desc())
    )
    return [(a, d) for a, d in result.all()]


@translate_storage_errors
async def list_doctor_appointments(
    session: AsyncSession, principal: Principal, from_date: date | None = None
) -> list[Appointment]:
    doctor_id = own_doctor_id(principal)
    q = select(Appointment).where(Appointment.doctor_id == doctor_id).order_by(Appointment.start_at)
    if from_date:
        start = datetime(from_date.year, from_date.month, from_date.day, 0, 0, 0)
        q = q.where(Appointment.start_at >= start)
    result = await session.execute(q)
    return list(result.scalars().all())
