'''
API endpoints for discovering teachers.
'''
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..models import user as user_models
from ..services.teacher_service import TeacherService

class TeachersAPI:
    """
    Public teacher listing. No authentication is required to browse.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/teachers",
            tags=["Teachers"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_teachers,
                methods=["GET"],
                response_model=user_models.TeacherListResponse)
        self.router.add_api_route(
                "/featured",
                self.featured_teachers,
                methods=["GET"],
                response_model=list[user_models.TeacherProfileRead])
        self.router.add_api_route(
                "/{teacher_id}",
                self.get_teacher,
                methods=["GET"],
                response_model=user_models.TeacherProfileRead)

    async def list_teachers(
        self,
        teacher_service: Annotated[TeacherService, Depends(TeacherService)],
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int, Query(ge=1, le=100)] = 12,
        language: Annotated[Optional[str], Query(description="Language taught, or 'all-languages'")] = None,
        price_min: Annotated[Optional[Decimal], Query(alias="priceMin", ge=0)] = None,
        price_max: Annotated[Optional[Decimal], Query(alias="priceMax", ge=0)] = None,
        rating: Annotated[Optional[Decimal], Query(ge=0, le=5, description="Minimum rating")] = None,
        country: Annotated[Optional[str], Query(description="Country, or 'all-countries'")] = None,
        search: Annotated[Optional[str], Query(description="Matches name, specialties and languages")] = None,
        sort_by: Annotated[str, Query(alias="sortBy")] = "rating"
    ):
        """
        Lists teachers with filters, sorting (rating, price-low, price-high,
        reviews, experience) and pagination.
        """
        filters = user_models.TeacherFilters(
            page=page,
            limit=limit,
            language=language,
            price_min=price_min,
            price_max=price_max,
            rating=rating,
            country=country,
            search=search,
            sort_by=sort_by,
        )
        return await teacher_service.list_teachers(filters)

    async def featured_teachers(
        self,
        teacher_service: Annotated[TeacherService, Depends(TeacherService)]
    ):
        return await teacher_service.featured_teachers()

    async def get_teacher(
        self,
        teacher_id: UUID,
        teacher_service: Annotated[TeacherService, Depends(TeacherService)]
    ):
        return await teacher_service.get_teacher(teacher_id)

# Instantiate the class and export its router
teachers_api = TeachersAPI()
router = teachers_api.router
