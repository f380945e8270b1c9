'''
Password login for students, teachers and admins.
'''
from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from .security import JWTHandler
from .user_service import UserService
from ..database import models as db_models
from ..common.config import settings
from ..common.security_utils import HashedPassword
from ..models import token as token_models
from ..common.logger import log

class LoginService:
    """
    Verifies credentials against the stored bcrypt hash and issues a bearer
    token whose claims carry the user's email and role.
    """
    def __init__(
        self,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.user_service = user_service

    async def authenticate(self, email: str, password: str) -> db_models.Users:
        user = await self.user_service.get_user_by_email(email)

        # same message for an unknown email and a wrong password
        if user is None or not HashedPassword.verify(password, user.password):
            log.warning(f"Login failed for {email}: incorrect email or password")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            log.warning(f"Login failed for {email}: account is inactive.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Inactive user."
            )
        return user

    async def login_user(self, form_data: OAuth2PasswordRequestForm) -> token_models.Token:
        log.info(f"Attempting login for user: {form_data.username}")
        user = await self.authenticate(form_data.username, form_data.password)

        access_token = JWTHandler.create_access_token(subject=user.email, role=user.role)
        log.info(f"Login successful for {user.email} (Role: {user.role})")
        return token_models.Token(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user_id=user.id,
            role=user.role,
        )
