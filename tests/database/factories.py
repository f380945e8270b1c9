import factory
import uuid
from decimal import Decimal
from factory.faker import Faker

from src.lingua_tutor_backend.database import models as db_models
from src.lingua_tutor_backend.database.db_enums import UserRole
from src.lingua_tutor_backend.common.security_utils import HashedPassword
from tests.constants import (
    TEST_PASSWORD_ADMIN,
    TEST_PASSWORD_STUDENT,
    TEST_PASSWORD_TEACHER,
    TEST_TEACHER_PRICE,
)

# bcrypt is slow, hash each test password once
_ADMIN_HASH = HashedPassword.get_hash(TEST_PASSWORD_ADMIN)
_STUDENT_HASH = HashedPassword.get_hash(TEST_PASSWORD_STUDENT)
_TEACHER_HASH = HashedPassword.get_hash(TEST_PASSWORD_TEACHER)


class BaseFactory(factory.Factory):
    """
    Factories only build ORM objects. The async session persists them,
    see tests.conftest.persist.
    """
    class Meta:
        abstract = True


class AdminFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"admin{n}@linguatutor.example.com")
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    role = UserRole.ADMIN.value
    timezone = "UTC"
    is_active = True
    password = _ADMIN_HASH

    class Meta:
        model = db_models.Users


class StudentFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"student{n}@linguatutor.example.com")
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    role = UserRole.STUDENT.value
    timezone = "UTC"
    is_active = True
    password = _STUDENT_HASH

    class Meta:
        model = db_models.Users


class TeacherProfileFactory(BaseFactory):
    languages = factory.LazyFunction(lambda: ["English"])
    native_language = "English"
    specialties = factory.LazyFunction(lambda: ["Conversation"])
    price = TEST_TEACHER_PRICE
    currency = "USD"
    rating = Decimal("4.50")
    review_count = 10
    experience = 3
    country = "USA"
    description = Faker("sentence")
    completed_lessons = 0
    absence_count = 0
    is_suspended = False

    class Meta:
        model = db_models.TeacherProfiles


class WalletFactory(BaseFactory):
    balance = Decimal("0.00")
    currency = "USD"

    class Meta:
        model = db_models.Wallets


class TeacherFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"teacher{n}@linguatutor.example.com")
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    role = UserRole.TEACHER.value
    timezone = "UTC"
    is_active = True
    password = _TEACHER_HASH
    teacher_profile = factory.SubFactory(TeacherProfileFactory)
    wallet = factory.SubFactory(WalletFactory)

    class Meta:
        model = db_models.Users
