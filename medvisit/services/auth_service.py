from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.core.config import settings
from medvisit.core.errors import ConflictError, translate_storage_errors
from medvisit.core.permission import Principal
from medvisit.core.security import create_access_token, hash_password, verify_password
from medvisit.models.user import Role, User, UserCreate, UserPublic


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, data: UserCreate) -> User:
    if await get_user_by_email(session, data.email):
        raise ConflictError("An account with this email already exists")
    user = User(
        email=data.email.lower(),
        full_name=data.full_name,
        role=data.role,
        hashed_password=hash_password(data.password),
        doctor_id=data.doctor_id,
    )
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        doctor_id=user.doctor_id,
    )


def user_to_principal(user: User) -> Principal:
    return Principal(subject_id=user.id, role=user.role, doctor_id=user.doctor_id)


def make_access_token(user: User) -> tuple[str, int]:
    access = create_access_token(user.id, user.role)
    expires_in = settings.access_token_expire_minutes * 60
    return access, expires_in


@translate_storage_errors
async def login_user(
    session: AsyncSession, email: str, password: str
) -> tuple[User, str, int] | None:
    user = await get_user_by_email(session, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    access, expires_in = make_access_token(user)
    return user, access, expires_in


@translate_storage_errors
async def signup_patient(
    session: AsyncSession, email: str, password: str, full_name: str
) -> tuple[User, str, int]:
    user = await create_user(
        session, UserCreate(email=email, password=password, full_name=full_name, role=Role.PATIENT)
    )
    access, expires_in = make_access_token(user)
    return user, access, expires_in
