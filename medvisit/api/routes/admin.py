from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_session, require_roles
from medvisit.api.schemas.admin import DoctorAccountCreate, DoctorAccountCreated
from medvisit.core.permission import Principal
from medvisit.models.user import Role, UserPublic
from medvisit.services.admin_service import create_doctor_account, list_users
from medvisit.services.auth_service import user_to_public

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/doctors", response_model=DoctorAccountCreated, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    body: DoctorAccountCreate,
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.ADMIN)),
) -> DoctorAccountCreated:
    user, doctor = await create_doctor_account(session, principal, body)
    return DoctorAccountCreated(user_id=user.id, doctor_id=doctor.id)


@router.get("/users", response_model=list[UserPublic])
async def get_users(
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(require_roles(Role.ADMIN)),
) -> list[UserPublic]:
    users = await list_users(session, principal)
    return [user_to_public(u) for u in users]
