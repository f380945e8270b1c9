'''
Holds all the configurations
'''
from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "LinguaTutor Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "The backend API for the LinguaTutor language-tutoring marketplace."
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Database URL
    DATABASE_URL_PROD: str = "sqlite+aiosqlite:///./linguatutor.db"
    DATABASE_URL_TEST: str = "sqlite+aiosqlite:///:memory:"
    AUTO_CREATE_TABLES: bool = True
    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # JWT Settings
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15

    BACKEND_CORS_ORIGINS: list[str] = []

    # Pricing
    COMMISSION_RATE: Decimal = Decimal("0.20")
    TAX_RATE: Decimal = Decimal("0.07")
    CURRENCY: str = "USD"

    # Lesson lifecycle policy
    REMINDER_MINUTES_BEFORE: int = 30
    AUTO_COMPLETE_AFTER_HOURS: int = 48
    RESCHEDULE_WINDOW_DAYS: int = 7
    RESCHEDULE_RESPONSE_HOURS: int = 24
    TEACHER_SUSPENSION_ABSENCES: int = 3

    # Cancellation refunds, by hours left before the lesson starts
    FULL_REFUND_HOURS: int = 48
    PARTIAL_REFUND_HOURS: int = 24
    PARTIAL_REFUND_PERCENT: int = 50

    # Payouts
    PAYPAL_MINIMUM_PAYOUT: Decimal = Decimal("10")
    BANK_TRANSFER_MINIMUM_PAYOUT: Decimal = Decimal("100")

    # Scheduled task worker
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_POLL_SECONDS: float = 30.0
    SCHEDULER_BATCH_SIZE: int = 50
    # A running task whose claim is older than this is picked up again
    SCHEDULER_LEASE_SECONDS: int = 600

    model_config = SettingsConfigDict(env_file=".env", extra="ignore") # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()
