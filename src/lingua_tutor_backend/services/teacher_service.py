'''
Teacher discovery: filtering, sorting and paginating the public teacher list.
'''
from decimal import Decimal
from typing import Annotated
from uuid import UUID
from fastapi import Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TeacherSortKey
from ..common.exceptions import TeacherNotFoundError
from ..common.logger import log
from ..models import user as user_models
from .user_service import UserService

ALL_LANGUAGES = "all-languages"
ALL_COUNTRIES = "all-countries"
FEATURED_MIN_RATING = Decimal("4.7")
FEATURED_LIMIT = 3

_SORT_COLUMNS = {
    TeacherSortKey.RATING: db_models.TeacherProfiles.rating.desc(),
    TeacherSortKey.PRICE_LOW: db_models.TeacherProfiles.price.asc(),
    TeacherSortKey.PRICE_HIGH: db_models.TeacherProfiles.price.desc(),
    TeacherSortKey.REVIEWS: db_models.TeacherProfiles.review_count.desc(),
    TeacherSortKey.EXPERIENCE: db_models.TeacherProfiles.experience.desc(),
}


def to_teacher_read(teacher: db_models.Users) -> user_models.TeacherProfileRead:
    profile = teacher.teacher_profile
    return user_models.TeacherProfileRead(
        id=teacher.id,
        name=teacher.full_name,
        languages=profile.languages or [],
        native_language=profile.native_language,
        specialties=profile.specialties or [],
        price=profile.price,
        currency=profile.currency,
        rating=profile.rating,
        review_count=profile.review_count,
        experience=profile.experience,
        country=profile.country,
        description=profile.description,
        completed_lessons=profile.completed_lessons,
    )


def _sort_key(sort_by: str) -> TeacherSortKey:
    try:
        return TeacherSortKey(sort_by)
    except ValueError:
        log.info(f"Unknown sort key '{sort_by}', falling back to rating.")
        return TeacherSortKey.RATING


def _matches_language(teacher: db_models.Users, language: str) -> bool:
    wanted = language.lower()
    return any(lang.lower() == wanted for lang in teacher.teacher_profile.languages or [])


def _matches_search(teacher: db_models.Users, search: str) -> bool:
    needle = search.lower()
    profile = teacher.teacher_profile
    haystack = [teacher.full_name, *(profile.specialties or []), *(profile.languages or [])]
    return any(needle in (value or "").lower() for value in haystack)


class TeacherService:
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        self.db = db
        self.user_service = user_service

    def _base_query(self):
        return select(db_models.Users).join(
            db_models.TeacherProfiles,
            db_models.TeacherProfiles.user_id == db_models.Users.id
        ).options(
            selectinload(db_models.Users.teacher_profile)
        ).filter(
            db_models.Users.role == UserRole.TEACHER.value,
            db_models.Users.is_active.is_(True),
            db_models.TeacherProfiles.is_suspended.is_(False)
        )

    async def list_teachers(self, filters: user_models.TeacherFilters) -> user_models.TeacherListResponse:
        """
        Scalar filters run in SQL. Language and free-text search match inside
        the JSON lists, so they are applied to the ordered rows afterwards.
        """
        log.info(f"Listing teachers with filters: {filters.model_dump(exclude_none=True)}")
        stmt = self._base_query()

        if filters.price_min is not None:
            stmt = stmt.filter(db_models.TeacherProfiles.price >= filters.price_min)
        if filters.price_max is not None:
            stmt = stmt.filter(db_models.TeacherProfiles.price <= filters.price_max)
        if filters.rating is not None:
            stmt = stmt.filter(db_models.TeacherProfiles.rating >= filters.rating)
        if filters.country and filters.country != ALL_COUNTRIES:
            stmt = stmt.filter(func.lower(db_models.TeacherProfiles.country) == filters.country.lower())

        sort_key = _sort_key(filters.sort_by)
        stmt = stmt.order_by(
            _SORT_COLUMNS[sort_key],
            db_models.TeacherProfiles.review_count.desc(),
            db_models.Users.id
        )
        result = await self.db.execute(stmt)
        teachers = list(result.scalars().unique().all())

        if filters.language and filters.language != ALL_LANGUAGES:
            teachers = [t for t in teachers if _matches_language(t, filters.language)]
        if filters.search:
            teachers = [t for t in teachers if _matches_search(t, filters.search)]

        total = len(teachers)
        offset = (filters.page - 1) * filters.limit
        page = teachers[offset:offset + filters.limit]
        return user_models.TeacherListResponse(
            teachers=[to_teacher_read(t) for t in page],
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    async def featured_teachers(self) -> list[user_models.TeacherProfileRead]:
        stmt = self._base_query().filter(
            db_models.TeacherProfiles.rating >= FEATURED_MIN_RATING
        ).order_by(
            db_models.TeacherProfiles.review_count.desc(),
            db_models.TeacherProfiles.rating.desc()
        ).limit(FEATURED_LIMIT)
        result = await self.db.execute(stmt)
        return [to_teacher_read(t) for t in result.scalars().unique().all()]

    async def get_teacher(self, teacher_id: UUID) -> user_models.TeacherProfileRead:
        teacher = await self.user_service.get_user_by_id(teacher_id)
        if teacher is None or teacher.role != UserRole.TEACHER.value or teacher.teacher_profile is None:
            raise TeacherNotFoundError(f"Teacher {teacher_id} not found.")
        return to_teacher_read(teacher)
