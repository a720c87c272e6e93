import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from flowspace.api.deps import SessionDep
from flowspace.core.rate_limit import PUBLIC_ENDPOINT_LIMIT, limiter
from flowspace.core.security import create_access_token
from flowspace.models.user import User
from flowspace.schemas.token import Token
from flowspace.schemas.user import UserCreate, UserRead
from flowspace.services import users as users_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(PUBLIC_ENDPOINT_LIMIT)
async def register_user(request: Request, user_in: UserCreate, session: SessionDep) -> User:
    user = await users_service.register_user(
        session,
        email=user_in.email,
        password=user_in.password,
        name=user_in.name,
    )
    await session.commit()
    await session.refresh(user)
    return user


@router.post("/token", response_model=Token)
@limiter.limit(PUBLIC_ENDPOINT_LIMIT)
async def login_access_token(
    request: Request,
    session: SessionDep,
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> Token:
    user = await users_service.authenticate(session, email=form_data.username, password=form_data.password)
    access_token = create_access_token(subject=str(user.id))
    logger.debug("Issued access token for user %s", user.id)
    return Token(access_token=access_token)
