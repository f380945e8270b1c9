'''
Login response and the claims carried inside the access token.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr

from ..database.db_enums import UserRole


class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int # seconds
    user_id: UUID
    role: UserRole


class TokenPayload(BaseModel):
    sub: EmailStr # the user's email
    role: Optional[UserRole] = None
    exp: datetime
