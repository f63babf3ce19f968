"""FastAPI dependencies: get_current_user_id, require_admin.

Usage in any protected router:
    from src.pm_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: Annotated[str, Depends(get_current_user_id)]):
        ...
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_common.database import get_db_session
from src.pm_common.errors import AdminRequiredError, InvalidCredentialsError
from src.pm_gateway.auth.jwt_handler import decode_user_id

_bearer = HTTPBearer(auto_error=False)
_accounts = AccountRepository()

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> str:
    """Opaque user id from the Bearer token. HTTP 401 if missing or invalid."""
    if credentials is None:
        raise _CREDENTIALS_EXCEPTION
    try:
        return decode_user_id(credentials.credentials)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None


async def require_admin(
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> str:
    """Caller must have profiles.is_admin = TRUE. HTTP 403 (AppError 1006) otherwise."""
    profile = await _accounts.get_profile(db, user_id)
    if profile is None or not profile.is_admin:
        raise AdminRequiredError()
    return user_id
