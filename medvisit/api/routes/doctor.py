from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_session, require_roles
from medvisit.api.routes.appointments import to_public
from medvisit.api.routes.doctors import absence_to_public, rule_to_public
from medvisit.api.schemas.schedule import AbsenceCreate, AbsenceCreated, AvailabilityRuleCreate, RuleCreated
from medvisit.core.config import settings
from medvisit.core.permission import Principal, own_doctor_id
from medvisit.models.appointment import AppointmentPublic
from medvisit.models.doctor import DoctorPublic
from medvisit.models.schedule import AbsencePublic, AvailabilityRulePublic
from medvisit.models.user import Role
from medvisit.services.appointment_service import complete_appointment, list_doctor_appointments
from medvisit.services.doctor_service import get_doctor
from medvisit.services.notification_service import notification_bus, publish_absence_cancellations
from medvisit.services.schedule_service import create_absence, create_rule, list_absences, list_rules

router = APIRouter(prefix="/doctor", tags=["doctor"])

require_doctor = require_roles(Role.DOCTOR)


@router.get("/me", response_model=DoctorPublic)
async def me(
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> DoctorPublic:
    doctor = await get_doctor(session, own_doctor_id(principal))
    return DoctorPublic(id=doctor.id, full_name=doctor.full_name, specialization=doctor.specialization)


@router.post("/availability", response_model=RuleCreated, status_code=status.HTTP_201_CREATED)
async def add_availability(
    body: AvailabilityRuleCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> RuleCreated:
    rule = await create_rule(session, principal, body)
    return RuleCreated(id=rule.id)


@router.get("/availability", response_model=list[AvailabilityRulePublic])
async def get_availability(
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> list[AvailabilityRulePublic]:
    rules = await list_rules(session, own_doctor_id(principal))
    return [rule_to_public(r) for r in rules]


@router.post("/absences", response_model=AbsenceCreated, status_code=status.HTTP_201_CREATED)
async def add_absence(
    body: AbsenceCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> AbsenceCreated:
    absence, cancelled = await create_absence(session, principal, body)
    if cancelled:
        # Patients are told only about cancellations that are durable
        await session.commit()
        background_tasks.add_task(
            publish_absence_cancellations,
            notification_bus,
            [
                {
                    "appointment_id": a.id,
                    "patient_id": a.patient_id,
                    "reason": settings.absence_notification_reason,
                }
                for a in cancelled
            ],
        )
    return AbsenceCreated(id=absence.id, cancelled_appointments=len(cancelled))


@router.get("/absences", response_model=list[AbsencePublic])
async def get_absences(
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> list[AbsencePublic]:
    absences = await list_absences(session, own_doctor_id(principal))
    return [absence_to_public(a) for a in absences]


@router.get("/appointments", response_model=list[AppointmentPublic])
async def get_my_appointments(
    from_date: date | None = Query(None),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> list[AppointmentPublic]:
    appointments = await list_doctor_appointments(session, principal, from_date=from_date)
    return [to_public(a) for a in appointments]


@router.patch("/appointments/{appointment_id}/complete", response_model=AppointmentPublic)
async def complete(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_doctor),
) -> AppointmentPublic:
    appointment = await complete_appointment(session, principal, appointment_id)
    return to_public(appointment)
