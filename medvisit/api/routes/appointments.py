from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_session, require_roles
from medvisit.api.schemas.appointment import CancelResult, ReservationResult, ReserveAppointmentRequest
from medvisit.core.permission import Principal
from medvisit.models.appointment import Appointment, AppointmentPublic, AppointmentWithDoctor
from medvisit.models.doctor import Doctor
from medvisit.models.user import Role
from medvisit.services.appointment_service import (
    cancel_appointment,
    confirm_payment,
    list_patient_appointments,
    reserve_appointment,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic(
        id=a.id,
        doctor_id=a.doctor_id,
        patient_id=a.patient_id,
        start_at=a.start_at,
        end_at=a.end_at,
        status=a.status,
        visit_type=a.visit_type,
        patient_snapshot=a.patient_snapshot,
        notes_for_doctor=a.notes_for_doctor,
        cancel_reason=a.cancel_reason,
        created_at=a.created_at,
    )


def _with_doctor(a: Appointment, d: Doctor) -> AppointmentWithDoctor:
    return AppointmentWithDoctor(
        **to_public(a).model_dump(),
        doctor_full_name=d.full_name,
        doctor_specialization=d.specialization,
    )


@router.post("/reserve", response_model=ReservationResult, status_code=status.HTTP_201_CREATED)
async def reserve(
    body: ReserveAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT)),
) -> ReservationResult:
    appointment = await reserve_appointment(session, principal, body)
    return ReservationResult(
        id=appointment.id,
        status=appointment.status,
        start_at=appointment.start_at,
        end_at=appointment.end_at,
    )


@router.get("", response_model=list[AppointmentWithDoctor])
async def list_my_appointments(
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT)),
) -> list[AppointmentWithDoctor]:
    rows = await list_patient_appointments(session, principal)
    return [_with_doctor(a, d) for a, d in rows]


@router.patch("/{appointment_id}/cancel", response_model=CancelResult)
async def cancel_my_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT)),
) -> CancelResult:
    appointment = await cancel_appointment(session, principal, appointment_id)
    return CancelResult(appointment_id=appointment.id, status=appointment.status)


@router.post("/{appointment_id}/pay", response_model=AppointmentPublic)
async def pay_for_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT)),
) -> AppointmentPublic:
    appointment = await confirm_payment(session, principal, appointment_id)
    return to_public(appointment)
