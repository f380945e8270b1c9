'''

'''
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..database.db_enums import UserRole


# --- User API Read Models ---

class UserRead(BaseModel):
    """
    Base Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    id: UUID
    email: str
    role: UserRole
    timezone: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class TeacherProfileRead(BaseModel):
    """
    Public teacher card shown on the discovery pages.
    Built from db_models.Users + db_models.TeacherProfiles.
    """
    id: UUID
    name: str
    languages: list[str]
    native_language: str
    specialties: list[str]
    price: Decimal
    currency: str
    rating: Decimal
    review_count: int
    experience: int
    country: str
    description: Optional[str] = None
    completed_lessons: int

    model_config = ConfigDict(from_attributes=True)


class TeacherListResponse(BaseModel):
    teachers: list[TeacherProfileRead]
    total: int
    page: int
    limit: int


# --- User API Write Models ---

class UserCreate(BaseModel):
    """Shared signup fields."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str
    last_name: str
    timezone: str = "UTC"


class StudentCreate(UserCreate):
    pass


class TeacherCreate(UserCreate):
    languages: list[str] = Field(..., min_length=1)
    native_language: str
    specialties: list[str] = Field(default_factory=list)
    price: Decimal = Field(..., gt=0)
    country: str
    experience: int = Field(0, ge=0)
    description: Optional[str] = None


class TeacherFilters(BaseModel):
    """Query parameters accepted by the teacher discovery listing."""
    page: int = Field(1, ge=1)
    limit: int = Field(12, ge=1, le=100)
    language: Optional[str] = None
    price_min: Optional[Decimal] = Field(None, ge=0)
    price_max: Optional[Decimal] = Field(None, ge=0)
    rating: Optional[Decimal] = Field(None, ge=0, le=5)
    country: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "rating"
