'''

'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..common.config import settings
from ..common.logger import log
from ..common.security_utils import HashedPassword
from ..models import user as user_models


class UserService:
    """
    Service for user accounts: lookup and signup of students and teachers.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_user_by_email(self, email: str) -> db_models.Users | None:
        """
        Fetches a user by email, eager-loading the teacher profile so the
        role-specific data is available without lazy loads.
        """
        log.info(f"Fetching user profile for email: {email}")
        try:
            stmt = select(db_models.Users).options(
                selectinload(db_models.Users.teacher_profile)
            ).filter(db_models.Users.email == email)
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by email {email}: {e}", exc_info=True)
            raise

    async def get_user_by_id(self, user_id: UUID) -> db_models.Users | None:
        log.info(f"Fetching user profile for ID: {user_id}")
        try:
            stmt = select(db_models.Users).options(
                selectinload(db_models.Users.teacher_profile)
            ).filter(db_models.Users.id == user_id)
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by ID {user_id}: {e}", exc_info=True)
            raise

    async def _ensure_email_available(self, email: str) -> None:
        existing = await self.db.execute(
            select(db_models.Users.id).filter(db_models.Users.email == email)
        )
        if existing.scalars().first() is not None:
            log.warning(f"Signup rejected: email {email} is already registered.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered."
            )

    def _new_user(self, data: user_models.UserCreate, role: UserRole) -> db_models.Users:
        return db_models.Users(
            email=data.email,
            password=HashedPassword.get_hash(data.password),
            role=role.value,
            first_name=data.first_name,
            last_name=data.last_name,
            timezone=data.timezone,
            is_active=True,
        )

    async def create_student(self, data: user_models.StudentCreate) -> db_models.Users:
        log.info(f"Creating student account for {data.email}")
        await self._ensure_email_available(data.email)

        student = self._new_user(data, UserRole.STUDENT)
        self.db.add(student)
        await self.db.flush()
        log.info(f"Created student {student.id}")
        return student

    async def create_teacher(self, data: user_models.TeacherCreate) -> db_models.Users:
        """
        Creates the teacher user, its public profile and an empty wallet
        that lesson earnings are credited to.
        """
        log.info(f"Creating teacher account for {data.email}")
        await self._ensure_email_available(data.email)

        teacher = self._new_user(data, UserRole.TEACHER)
        teacher.teacher_profile = db_models.TeacherProfiles(
            languages=list(data.languages),
            native_language=data.native_language,
            specialties=list(data.specialties),
            price=data.price,
            currency=settings.CURRENCY,
            experience=data.experience,
            country=data.country,
            description=data.description,
        )
        teacher.wallet = db_models.Wallets(currency=settings.CURRENCY)
        self.db.add(teacher)
        await self.db.flush()
        log.info(f"Created teacher {teacher.id}")
        return teacher
