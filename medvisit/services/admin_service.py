import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.schemas.admin import DoctorAccountCreate
from medvisit.core.errors import translate_storage_errors
from medvisit.core.permission import Principal, ensure_role
from medvisit.models.doctor import Doctor
from medvisit.models.user import Role, User, UserCreate
from medvisit.services.auth_service import create_user
from medvisit.services.doctor_service import create_doctor

logger = logging.getLogger(__name__)


@translate_storage_errors
async def create_doctor_account(
    session: AsyncSession, principal: Principal, data: DoctorAccountCreate
) -> tuple[User, Doctor]:
    """Doctor profile plus a DOCTOR login bound to it."""
    ensure_role(principal, Role.ADMIN)
    doctor = await create_doctor(session, data.full_name, data.specialization)
    user = await create_user(
        session,
        UserCreate(
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            role=Role.DOCTOR,
            doctor_id=doctor.id,
        ),
    )
    logger.info("Admin %s created doctor %s (user %s)", principal.subject_id, doctor.id, user.id)
    return user, doctor


@translate_storage_errors
async def list_users(session: AsyncSession, principal: Principal) -> list[User]:
    ensure_role(principal, Role.ADMIN)
    result = await session.execute(select(User).where(User.role != Role.ADMIN).order_by(User.id.desc()))
    return list(result.scalars().all())
