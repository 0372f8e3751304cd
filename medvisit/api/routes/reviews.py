from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_session, require_roles
from medvisit.api.schemas.review import ReviewCreate, ReviewCreated, ReviewReply
from medvisit.core.permission import Principal
from medvisit.models.user import Role
from medvisit.services.review_service import add_review, reply_to_review

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewCreated, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.PATIENT)),
) -> ReviewCreated:
    review = await add_review(session, principal, body)
    return ReviewCreated(id=review.id)


@router.post("/{review_id}/reply")
async def reply(
    review_id: int,
    body: ReviewReply,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.DOCTOR)),
) -> dict:
    await reply_to_review(session, principal, review_id, body.reply)
    return {"ok": True}
