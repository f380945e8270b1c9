'''
API endpoints for Authentication including login and user creation (signup).
'''
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from ..database import models as db_models
from ..services.auth_service import LoginService
from ..services.security import verify_token_and_get_user
from ..services.user_service import UserService
from ..services.teacher_service import to_teacher_read
from ..models import token as token_models
from ..models import user as user_models
from ..common.logger import log

class AuthRoutes:
    """
    A class to encapsulate all authentication and user creation endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/login",
            self.login_for_access_token,
            methods=["POST"],
            response_model=token_models.Token,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/signup/student",
            self.signup_student,
            methods=["POST"],
            response_model=user_models.UserRead,
            status_code=status.HTTP_201_CREATED,
            summary="Student Signup"
        )
        self.router.add_api_route(
            "/signup/teacher",
            self.signup_teacher,
            methods=["POST"],
            response_model=user_models.TeacherProfileRead,
            status_code=status.HTTP_201_CREATED,
            summary="Teacher Signup"
        )
        self.router.add_api_route(
            "/me",
            self.read_current_user,
            methods=["GET"],
            response_model=user_models.UserRead,
            summary="Current User"
        )

    async def login_for_access_token(
        self,
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Authenticates a user and returns an access token.
        Uses OAuth2PasswordRequestForm (username & password fields).
        """
        try:
            token = await login_service.login_user(form_data)
            return token
        except HTTPException as e:
            raise e
        except Exception as e:
            log.error(f"Unexpected error during login: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="An internal server error occurred during login.",
            )

    async def signup_student(
        self,
        student_data: user_models.StudentCreate,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Handles the creation of a new student user.
        """
        return await user_service.create_student(student_data)

    async def signup_teacher(
        self,
        teacher_data: user_models.TeacherCreate,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Handles the creation of a new teacher user with a public profile and a wallet.
        """
        new_teacher = await user_service.create_teacher(teacher_data)
        return to_teacher_read(new_teacher)

    async def read_current_user(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        return current_user

# Create an instance of the class and export its router
auth_routes = AuthRoutes()
router = auth_routes.router
