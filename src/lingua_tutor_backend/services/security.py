'''
JWT handling and the role checks shared by every service.
'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..models.token import TokenPayload
from ..common.logger import log
from ..database import models as db_models
from ..database.db_enums import UserRole
from .user_service import UserService

# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        role: Optional[str] = None,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        if role is not None:
            to_encode["role"] = UserRole(role).value
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # Pydantic validation errors are ValueErrors
            log.warning(f"JWT decode/validation error: {e}")
            return None

# --- Role Authorization ---
def authorize_role(current_user: db_models.Users, allowed_roles: list[UserRole]) -> None:
    """Raises 403 unless the user holds one of the allowed roles."""
    allowed_role_values = [role.value for role in allowed_roles]
    if current_user.role not in allowed_role_values:
        log.warning(f"Unauthorized action by user {current_user.id} (Role: {current_user.role}). Required one of: {allowed_role_values}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action."
        )

# --- JWT Verification Dependency Function ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

async def verify_token_and_get_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users:
    """
    Dependency to verify the JWT and fetch the user it names.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        raise credentials_exception

    user = await user_service.get_user_by_email(token_data.sub)

    if user is None:
        log.warning(f"User '{token_data.sub}' not found during token verification.")
        raise credentials_exception

    if not user.is_active:
        log.warning(f"User '{token_data.sub}' is not active.")
        raise credentials_exception

    if token_data.role is not None and token_data.role.value != user.role:
        log.warning(f"Token role {token_data.role.value} no longer matches user {user.id} (Role: {user.role}).")
        raise credentials_exception

    log.info(f"JWT verified successfully for user: {user.email} (Role: {user.role})")
    return user
