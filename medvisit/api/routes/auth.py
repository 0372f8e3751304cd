from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.api.deps import get_current_user
from medvisit.api.schemas.auth import AccessToken, LoginRequest, SignupRequest
from medvisit.core.db import get_session
from medvisit.models.user import User, UserPublic
from medvisit.services.auth_service import login_user, signup_patient, user_to_public

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AccessToken)
async def login(
    body: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> AccessToken:
    result = await login_user(session, body.email, body.password)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    user, access, expires_in = result
    return AccessToken(access_token=access, expires_in=expires_in, user=user_to_public(user))


@router.post("/signup", response_model=AccessToken, status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignupRequest,
    session: AsyncSession = Depends(get_session),
) -> AccessToken:
    user, access, expires_in = await signup_patient(session, body.email, body.password, body.full_name)
    return AccessToken(access_token=access, expires_in=expires_in, user=user_to_public(user))


@router.get("/me", response_model=UserPublic)
async def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return user_to_public(current_user)
