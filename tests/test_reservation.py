import asyncio
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy import select

from medvisit.api.schemas.appointment import ReserveAppointmentRequest
from medvisit.api.schemas.schedule import AbsenceCreate
from medvisit.core.config import settings
from medvisit.core.errors import AuthorizationError, ConflictError, ValidationError
from medvisit.models.appointment import Appointment, AppointmentStatus
from medvisit.models.schedule import Absence
from medvisit.scheduling.slots import SlotStatus
from medvisit.services.appointment_service import (
    cancel_appointment,
    complete_appointment,
    confirm_payment,
    reserve_appointment,
)
from medvisit.services.schedule_service import create_absence
from medvisit.services.slot_service import get_week_grid

from conftest import PATIENT, add_doctor_with_user, add_user, make_appointment, principal_for, weekday_rule

NOW = datetime(2024, 1, 1, 8, 0)


def _request(doctor_id: int, start: datetime, slots: int = 1) -> ReserveAppointmentRequest:
    return ReserveAppointmentRequest(
        doctor_id=doctor_id,
        start_at=start,
        duration_slots=slots,
        visit_type="consultation",
        patient=PATIENT,
    )


@pytest_asyncio.fixture
async def clinic(session):
    doctor, doctor_user = await add_doctor_with_user(session)
    patient = await add_user(session, "ann@example.com")
    session.add(weekday_rule(doctor.id, "2024-01-01", "2024-12-31"))
    await session.commit()
    return doctor, principal_for(doctor_user), principal_for(patient)


@pytest.mark.asyncio
async def test_reserve_inside_offered_hours(session, clinic):
    doctor, _, patient = clinic
    appt = await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 10, 0), 2), now=NOW)
    await session.commit()
    assert appt.status == AppointmentStatus.RESERVED
    assert appt.end_at == datetime(2024, 1, 3, 11, 0)
    assert appt.patient_snapshot["full_name"] == PATIENT["full_name"]


@pytest.mark.asyncio
async def test_past_start_rejected_regardless_of_availability(session, clinic):
    doctor, _, patient = clinic
    with pytest.raises(ValidationError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 10, 0)), now=datetime(2024, 1, 3, 12, 0))
    with pytest.raises(ValidationError):
        await reserve_appointment(session, patient, _request(doctor.id, NOW), now=NOW)


@pytest.mark.asyncio
async def test_start_must_be_whole_minute(session, clinic):
    doctor, _, patient = clinic
    with pytest.raises(ValidationError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 10, 0, 30)), now=NOW)


@pytest.mark.asyncio
async def test_outside_offered_hours_conflicts(session, clinic):
    doctor, _, patient = clinic
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 13, 0)), now=NOW)
    # Runs past the end of the range
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 11, 30), 2), now=NOW)
    # Saturday
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 6, 10, 0)), now=NOW)


@pytest.mark.asyncio
async def test_overlap_with_active_appointment_conflicts(session, clinic):
    doctor, _, patient = clinic
    # rollback() expires loaded instances
    doctor_id = doctor.id
    await reserve_appointment(session, patient, _request(doctor_id, datetime(2024, 1, 3, 10, 0), 2), now=NOW)
    await session.commit()
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor_id, datetime(2024, 1, 3, 10, 30)), now=NOW)
    await session.rollback()
    # Back-to-back is fine
    appt = await reserve_appointment(session, patient, _request(doctor_id, datetime(2024, 1, 3, 11, 0)), now=NOW)
    assert appt.start_at == datetime(2024, 1, 3, 11, 0)


@pytest.mark.asyncio
async def test_cancelled_appointment_frees_the_slot(session, clinic):
    doctor, _, patient = clinic
    first = await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 10, 0)), now=NOW)
    await cancel_appointment(session, patient, first.id)
    await session.commit()
    again = await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 10, 0)), now=NOW)
    assert again.id != first.id


@pytest.mark.asyncio
async def test_absent_day_conflicts(session, clinic):
    doctor, _, patient = clinic
    session.add(Absence(doctor_id=doctor.id, date_from="2024-01-03", date_to="2024-01-04"))
    await session.commit()
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 4, 9, 0)), now=NOW)


@pytest.mark.asyncio
async def test_reservation_must_fit_a_single_rule(session, clinic):
    doctor, _, patient = clinic
    session.add(weekday_rule(doctor.id, "2024-01-01", "2024-12-31", start="12:00", end="14:00", days=(3,)))
    await session.commit()
    grid = await get_week_grid(session, doctor.id, week_start="2024-01-01", now=NOW)
    cells = {c.time: c.status for c in grid.days[2].cells}
    assert cells["11:30"] == SlotStatus.FREE
    assert cells["12:00"] == SlotStatus.FREE
    # 11:30-12:30 is open in the merged grid but spans two rules
    with pytest.raises(ConflictError):
        await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 11, 30), 2), now=NOW)


@pytest.mark.asyncio
async def test_only_patients_reserve(session, clinic):
    doctor, doctor_principal, _ = clinic
    with pytest.raises(AuthorizationError):
        await reserve_appointment(session, doctor_principal, _request(doctor.id, datetime(2024, 1, 3, 10, 0)), now=NOW)


@pytest.mark.asyncio
async def test_concurrent_reservations_one_wins(session_maker, session, clinic):
    doctor, _, patient = clinic
    request = _request(doctor.id, datetime(2024, 1, 3, 10, 0))

    async def attempt():
        async with session_maker() as s:
            try:
                appt = await reserve_appointment(s, patient, request, now=NOW)
                await s.commit()
                return appt
            except ConflictError as e:
                await s.rollback()
                return e

    results = await asyncio.gather(attempt(), attempt())
    assert sum(isinstance(r, Appointment) for r in results) == 1
    assert sum(isinstance(r, ConflictError) for r in results) == 1

    rows = await session.execute(
        select(Appointment).where(Appointment.doctor_id == doctor.id, Appointment.status == AppointmentStatus.RESERVED)
    )
    assert len(rows.scalars().all()) == 1


@pytest.mark.asyncio
async def test_absence_cancels_appointments_and_marks_grid(session, clinic):
    doctor, doctor_principal, patient = clinic
    appt = make_appointment(doctor.id, patient.subject_id, datetime(2024, 1, 3, 10, 0))
    other_day = make_appointment(doctor.id, patient.subject_id, datetime(2024, 1, 4, 10, 0))
    session.add_all([appt, other_day])
    await session.commit()

    absence, cancelled = await create_absence(
        session, doctor_principal, AbsenceCreate(date_from="2024-01-03", date_to="2024-01-03", reason="conference")
    )
    await session.commit()
    assert [a.id for a in cancelled] == [appt.id]

    await session.refresh(appt)
    await session.refresh(other_day)
    assert appt.status == AppointmentStatus.CANCELLED
    assert appt.cancel_reason == settings.absence_cancel_reason
    assert other_day.status == AppointmentStatus.CONFIRMED

    grid = await get_week_grid(session, doctor.id, week_start="2024-01-01", now=NOW)
    wednesday = grid.days[2]
    assert wednesday.is_absent
    assert {c.status for c in wednesday.cells} == {SlotStatus.ABSENT}


@pytest.mark.asyncio
async def test_absence_leaves_completed_visits_alone(session, clinic):
    doctor, doctor_principal, patient = clinic
    done = make_appointment(doctor.id, patient.subject_id, datetime(2024, 1, 3, 9, 0), status=AppointmentStatus.COMPLETED)
    session.add(done)
    await session.commit()
    _, cancelled = await create_absence(session, doctor_principal, AbsenceCreate(date_from="2024-01-03", date_to="2024-01-05"))
    await session.commit()
    assert cancelled == []
    await session.refresh(done)
    assert done.status == AppointmentStatus.COMPLETED


@pytest.mark.asyncio
async def test_status_transitions(session, clinic):
    doctor, doctor_principal, patient = clinic
    appt = await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 9, 0)), now=NOW)
    await confirm_payment(session, patient, appt.id)
    assert appt.status == AppointmentStatus.CONFIRMED
    with pytest.raises(ValidationError):
        await confirm_payment(session, patient, appt.id)
    await complete_appointment(session, doctor_principal, appt.id)
    assert appt.status == AppointmentStatus.COMPLETED
    # Terminal
    with pytest.raises(ValidationError):
        await cancel_appointment(session, patient, appt.id)


@pytest.mark.asyncio
async def test_cancel_requires_owner(session, clinic):
    doctor, _, patient = clinic
    stranger = principal_for(await add_user(session, "bob@example.com"))
    appt = await reserve_appointment(session, patient, _request(doctor.id, datetime(2024, 1, 3, 9, 0)), now=NOW)
    with pytest.raises(AuthorizationError):
        await cancel_appointment(session, stranger, appt.id)
