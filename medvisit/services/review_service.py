import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.schemas.review import ReviewCreate
from medvisit.core.config import settings
from medvisit.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    translate_storage_errors,
)
from medvisit.core.permission import Principal, ensure_role, own_doctor_id
from medvisit.models.appointment import Appointment, AppointmentStatus
from medvisit.models.review import Review
from medvisit.models.user import Role, User
from medvisit.scheduling.timegrid import clinic_now

logger = logging.getLogger(__name__)


async def has_completed_visit(session: AsyncSession, doctor_id: int, patient_id: int) -> bool:
    result = await session.execute(
        select(Appointment.id)
        .where(
            Appointment.doctor_id == doctor_id,
            Appointment.patient_id == patient_id,
            Appointment.status == AppointmentStatus.COMPLETED,
        )
        .limit(1)
    )
    return result.first() is not None


@translate_storage_errors
async def add_review(session: AsyncSession, principal: Principal, data: ReviewCreate) -> Review:
    """One review per (doctor, author), only after a completed visit."""
    ensure_role(principal, Role.PATIENT)
    if not await has_completed_visit(session, data.doctor_id, principal.subject_id):
        raise AuthorizationError("Visit not completed or not found", doctor_id=data.doctor_id)
    existing = await session.execute(
        select(Review.id).where(Review.doctor_id == data.doctor_id, Review.author_id == principal.subject_id)
    )
    if existing.first() is not None:
        raise ConflictError("Already reviewed", doctor_id=data.doctor_id)
    review = Review(
        doctor_id=data.doctor_id,
        author_id=principal.subject_id,
        rating=data.rating,
        comment=data.comment,
    )
    session.add(review)
    try:
        await session.flush()
    except IntegrityError as e:
        raise ConflictError("Already reviewed", doctor_id=data.doctor_id) from e
    await session.refresh(review)
    return review


@translate_storage_errors
async def reply_to_review(session: AsyncSession, principal: Principal, review_id: int, reply: str) -> Review:
    doctor_id = own_doctor_id(principal)
    result = await session.execute(select(Review).where(Review.id == review_id))
    review = result.scalar_one_or_none()
    if not review:
        raise NotFoundError("Review not found", review_id=review_id)
    if review.doctor_id != doctor_id:
        raise AuthorizationError("Not your review", review_id=review_id)
    review.doctor_reply = reply
    review.doctor_reply_at = clinic_now(settings.clinic_timezone)
    session.add(review)
    await session.flush()
    logger.info("Doctor %s replied to review %s", doctor_id, review_id)
    return review


@translate_storage_errors
async def list_reviews(session: AsyncSession, doctor_id: int) -> list[tuple[Review, User]]:
    result = await session.execute(
        select(Review, User)
        .join(User, User.id == Review.author_id)
        .where(Review.doctor_id == doctor_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
    )
    return [(r, u) for r, u in result.all()]
