from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from shared.utils.app_status_code import AppStatusCode
from shared.core.config import settings
from shared.helpers.json_response_helper import error_response
from shared.core.schemas import UserToken

security = HTTPBearer()


def create_access_token(data: dict, expires_minutes: Optional[int] = None):
    """Sign a token for service-to-service calls and tests.

    Interactive logins are issued by the auth service; this side only
    verifies.
    """
    payload = data.copy()
    if expires_minutes:
        payload['exp'] = datetime.now(timezone.utc) + \
            timedelta(minutes=expires_minutes)

    return jwt.encode(payload, settings.JWT_SECRET,
                      algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> UserToken:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET,
                             algorithms=[settings.JWT_ALGORITHM])
        return UserToken(**payload)
    except JWTError:
        return error_response(
            message="Invalid or expired token",
            status_code=AppStatusCode.AUTHENTICATION_TOKEN_INVALID,
            http_status=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


def validate_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> UserToken:
    return verify_token(credentials.credentials)


def require_permission(permission_key: str):
    """Dependency factory: the caller's token must carry ``permission_key``."""

    def checker(current_user: UserToken = Depends(validate_current_token)) -> UserToken:
        if permission_key not in (current_user.permissions or []):
            return error_response(
                message=f"Missing permission: {permission_key}",
                status_code=AppStatusCode.AUTHORIZATION_PERMISSION_DENIED,
                http_status=status.HTTP_403_FORBIDDEN
            )
        return current_user

    return checker
