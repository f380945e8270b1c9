"""
This file contains custom, application-specific exceptions.
"""
from decimal import Decimal


class LinguaTutorError(Exception):
    """Base class for all domain errors raised by the services."""
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(LinguaTutorError):
    """Raised when a command is missing required data or carries invalid values."""
    status_code = 400


class InvalidPriceError(ValidationError):
    """Raised when a lesson price is zero or negative."""
    pass


class NotFoundError(LinguaTutorError):
    status_code = 404


class LessonNotFoundError(NotFoundError):
    """Raised when a lesson ID is not found in the database."""
    pass


class TeacherNotFoundError(NotFoundError):
    """Raised when a teacher ID is not found or has no teacher profile."""
    pass


class UserNotFoundError(NotFoundError):
    """Raised when a user ID is not found in the database."""
    pass


class BelowMinimumThresholdError(LinguaTutorError):
    """Raised when a payout request is smaller than the method's minimum."""
    status_code = 400

    def __init__(self, minimum: Decimal, method: str):
        super().__init__(f"Minimum payout amount is ${minimum} for {method}")
        self.minimum = minimum
        self.method = method


class UnsupportedPaymentMethodError(LinguaTutorError):
    """Raised when no payment adapter is registered for the requested method."""
    status_code = 400


class InvalidLessonTransitionError(LinguaTutorError):
    """Raised when a lifecycle command does not apply to the lesson's current state."""
    status_code = 409


class TeacherSuspendedError(LinguaTutorError):
    """Raised when booking a teacher whose account is suspended."""
    status_code = 409


class UnauthorizedRoleError(LinguaTutorError):
    """Raised when a user's role does not permit them to perform an action."""
    status_code = 403


class InsufficientBalanceError(LinguaTutorError):
    """Raised when a payout request exceeds the teacher's wallet balance."""
    status_code = 400
