"""JWT verification for tokens issued by the identity service.

This service never authenticates users itself: it verifies the HS256
signature with the shared JWT_SECRET and trusts the `sub` claim as an
opaque user id. create_access_token exists for tooling and tests only.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, expires_in: timedelta | None = None) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else _ACCESS_EXPIRE),
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_user_id(token: str) -> str:
    """Return the `sub` claim of a valid access token.

    Raises:
        InvalidCredentialsError: bad signature, expired, wrong type or no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type", "access") != "access":
        raise InvalidCredentialsError()
    user_id = payload.get("sub")
    if not user_id:
        raise InvalidCredentialsError()
    return str(user_id)
