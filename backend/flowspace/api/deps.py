from collections.abc import Callable
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from flowspace.core.config import settings
from flowspace.core.errors import Forbidden, Unauthenticated
from flowspace.core.messages import AuthMessages
from flowspace.db.session import get_session
from flowspace.models.user import User, UserRole
from flowspace.schemas.token import TokenPayload
from flowspace.services.policy import Caller

SessionDep = Annotated[AsyncSession, Depends(get_session)]

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/token", auto_error=False)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: SessionDep,
) -> User:
    """Resolve the bearer token to a freshly read user row."""
    if not token:
        raise Unauthenticated(AuthMessages.UNAUTHORIZED)
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError) as exc:
        raise Unauthenticated(AuthMessages.UNAUTHORIZED) from exc

    if not token_data.sub or not token_data.sub.isdigit():
        raise Unauthenticated(AuthMessages.UNAUTHORIZED)

    result = await session.exec(select(User).where(User.id == int(token_data.sub)))
    user = result.one_or_none()
    if not user:
        raise Unauthenticated(AuthMessages.UNAUTHORIZED)
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    if not current_user.is_active:
        raise Unauthenticated(AuthMessages.UNAUTHORIZED)
    return current_user


CurrentUserDep = Annotated[User, Depends(get_current_active_user)]


async def get_caller(current_user: CurrentUserDep) -> Caller:
    return Caller.from_user(current_user)


CallerDep = Annotated[Caller, Depends(get_caller)]


def require_roles(*roles: UserRole) -> Callable:
    async def dependency(current_user: CurrentUserDep) -> User:
        if roles and current_user.role not in roles:
            raise Forbidden(AuthMessages.FORBIDDEN)
        return current_user

    return dependency


AdminUserDep = Annotated[User, Depends(require_roles(UserRole.admin, UserRole.master))]
MasterUserDep = Annotated[User, Depends(require_roles(UserRole.master))]
