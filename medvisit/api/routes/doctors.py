from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_session, require_roles
from medvisit.api.schemas.schedule import DoctorSchedule
from medvisit.core.permission import Principal
from medvisit.models.doctor import DoctorPublic
from medvisit.models.review import Review, ReviewPublic
from medvisit.models.schedule import Absence, AbsencePublic, AvailabilityRule, AvailabilityRulePublic
from medvisit.models.user import Role, User
from medvisit.scheduling.slots import WeekGrid
from medvisit.services.doctor_service import list_doctors
from medvisit.services.review_service import list_reviews
from medvisit.services.schedule_service import get_schedule
from medvisit.services.slot_service import get_week_grid

router = APIRouter(prefix="/doctors", tags=["doctors"])


def rule_to_public(r: AvailabilityRule) -> AvailabilityRulePublic:
    return AvailabilityRulePublic(
        id=r.id,
        doctor_id=r.doctor_id,
        kind=r.kind,
        date_from=r.date_from,
        date_to=r.date_to,
        days_of_week=r.days_of_week,
        date=r.date,
        time_ranges=r.time_ranges,
        slot_minutes=r.slot_minutes,
        created_at=r.created_at,
    )


def absence_to_public(a: Absence) -> AbsencePublic:
    return AbsencePublic(
        id=a.id,
        doctor_id=a.doctor_id,
        date_from=a.date_from,
        date_to=a.date_to,
        reason=a.reason,
        created_at=a.created_at,
    )


def review_to_public(r: Review, author: User) -> ReviewPublic:
    return ReviewPublic(
        id=r.id,
        doctor_id=r.doctor_id,
        rating=r.rating,
        comment=r.comment,
        author_name=author.full_name or "Anonymous",
        doctor_reply=r.doctor_reply,
        doctor_reply_at=r.doctor_reply_at,
        created_at=r.created_at,
    )


@router.get("", response_model=list[DoctorPublic])
async def get_doctors(
    specialization: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> list[DoctorPublic]:
    doctors = await list_doctors(session, specialization)
    return [DoctorPublic(id=d.id, full_name=d.full_name, specialization=d.specialization) for d in doctors]


@router.get("/{doctor_id}/schedule", response_model=DoctorSchedule)
async def doctor_schedule(
    doctor_id: int,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT, Role.DOCTOR, Role.ADMIN)),
) -> DoctorSchedule:
    rules, absences = await get_schedule(session, principal, doctor_id)
    return DoctorSchedule(
        doctor_id=doctor_id,
        rules=[rule_to_public(r) for r in rules],
        absences=[absence_to_public(a) for a in absences],
    )


@router.get("/{doctor_id}/slots", response_model=WeekGrid)
async def doctor_slots(
    doctor_id: int,
    week_start: str | None = Query(None, description="YYYY-MM-DD, defaults to this week's Monday"),
    slot_minutes: int | None = Query(None),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT, Role.DOCTOR, Role.ADMIN)),
) -> WeekGrid:
    """Weekly grid; patient details on booked cells only for the owning doctor or an admin."""
    grid = await get_week_grid(session, doctor_id, week_start=week_start, slot_minutes=slot_minutes)
    if principal.is_admin or principal.owns_doctor(doctor_id):
        return grid
    return grid.redacted()


@router.get("/{doctor_id}/reviews", response_model=list[ReviewPublic])
async def doctor_reviews(
    doctor_id: int,
    session: AsyncSession = Depends(get_session),
) -> list[ReviewPublic]:
    rows = await list_reviews(session, doctor_id)
    return [review_to_public(r, u) for r, u in rows]
