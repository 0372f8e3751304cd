import logging
from datetime import datetime, time, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.schemas.schedule import AbsenceCreate, AvailabilityRuleCreate
from medvisit.core.config import settings
from medvisit.core.errors import AuthorizationError, translate_storage_errors
from medvisit.core.permission import Principal, own_doctor_id
from medvisit.models.appointment import CANCELLABLE_STATUSES, Appointment, AppointmentStatus
from medvisit.models.schedule import Absence, AvailabilityRule
from medvisit.models.user import Role
from medvisit.scheduling.timegrid import date_of
from medvisit.services.doctor_service import get_doctor, lock_doctor_schedule

logger = logging.getLogger(__name__)


async def list_rules(session: AsyncSession, doctor_id: int) -> list[AvailabilityRule]:
    result = await session.execute(
        select(AvailabilityRule)
        .where(AvailabilityRule.doctor_id == doctor_id)
        .order_by(AvailabilityRule.created_at.desc(), AvailabilityRule.id.desc())
    )
    return list(result.scalars().all())


async def list_absences(session: AsyncSession, doctor_id: int) -> list[Absence]:
    result = await session.execute(
        select(Absence)
        .where(Absence.doctor_id == doctor_id)
        .order_by(Absence.created_at.desc(), Absence.id.desc())
    )
    return list(result.scalars().all())


@translate_storage_errors
async def get_schedule(
    session: AsyncSession, principal: Principal, doctor_id: int
) -> tuple[list[AvailabilityRule], list[Absence]]:
    """Rules and absences of a doctor; doctors may only look at their own."""
    if principal.role == Role.DOCTOR and not principal.owns_doctor(doctor_id):
        raise AuthorizationError("Doctor can view only own schedule")
    await get_doctor(session, doctor_id)
    return await list_rules(session, doctor_id), await list_absences(session, doctor_id)


@translate_storage_errors
async def create_rule(
    session: AsyncSession, principal: Principal, data: AvailabilityRuleCreate
) -> AvailabilityRule:
    doctor_id = own_doctor_id(principal)
    await lock_doctor_schedule(session, doctor_id)
    rule = AvailabilityRule(
        doctor_id=doctor_id,
        kind=data.kind,
        date_from=data.date_from,
        date_to=data.date_to,
        days_of_week=sorted({int(d) for d in data.days_of_week}) if data.days_of_week else None,
        date=data.date,
        time_ranges=[{"start": tr.start, "end": tr.end} for tr in data.time_ranges],
        slot_minutes=data.slot_minutes,
    )
    session.add(rule)
    await session.flush()
    await session.refresh(rule)
    logger.info("Doctor %s added %s availability rule %s", doctor_id, rule.kind, rule.id)
    return rule


async def cancel_appointments_in_range(
    session: AsyncSession, doctor_id: int, date_from: str, date_to: str, reason: str
) -> list[Appointment]:
    """Cancel, in one statement, every reserved/confirmed visit starting in the date range."""
    window_start = datetime.combine(date_of(date_from), time.min)
    window_end = datetime.combine(date_of(date_to) + timedelta(days=1), time.min)
    result = await session.execute(
        select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(CANCELLABLE_STATUSES),
            Appointment.start_at >= window_start,
            Appointment.start_at < window_end,
        )
    )
    conflicts = list(result.scalars().all())
    if not conflicts:
        return []
    await session.execute(
        update(Appointment)
        .where(Appointment.id.in_([a.id for a in conflicts]))
        .values(status=AppointmentStatus.CANCELLED, cancel_reason=reason)
    )
    await session.flush()
    return conflicts


@translate_storage_errors
async def create_absence(
    session: AsyncSession, principal: Principal, data: AbsenceCreate
) -> tuple[Absence, list[Appointment]]:
    """
    Record an absence and cancel the doctor's visits that start inside it.

    Returns the absence and the cancelled appointments; notifying patients is
    left to the caller, after the transaction commits.
    """
    doctor_id = own_doctor_id(principal)
    await lock_doctor_schedule(session, doctor_id)
    absence = Absence(
        doctor_id=doctor_id,
        date_from=data.date_from,
        date_to=data.date_to,
        reason=data.reason,
    )
    session.add(absence)
    await session.flush()
    await session.refresh(absence)
    cancelled = await cancel_appointments_in_range(
        session, doctor_id, data.date_from, data.date_to, settings.absence_cancel_reason
    )
    if cancelled:
        logger.info(
            "Absence %s (%s..%s) cancelled %d appointment(s) of doctor %s",
            absence.id, data.date_from, data.date_to, len(cancelled), doctor_id,
        )
    return absence, cancelled
