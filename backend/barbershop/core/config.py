# backend/barbershop/core/config.py
import logging
import os
from typing import Literal, Optional, Tuple

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants
from .constants import BRAND_NAME


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

if not os.getenv("CI"):
    load_dotenv()


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        alias="ENVIRONMENT",
    )
    shop_name: str = Field(default=BRAND_NAME, alias="SHOP_NAME")
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")

    # Database
    database_url: str = Field(
        default="sqlite:///./barbershop.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the primary database",
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Shop schedule
    shop_timezone: str = Field(default=constants.SHOP_TIMEZONE, alias="SHOP_TIMEZONE")
    open_weekdays: str = Field(
        default=",".join(str(day) for day in constants.OPEN_WEEKDAYS),
        alias="OPEN_WEEKDAYS",
        description="Comma separated operating weekdays, Monday=0 through Sunday=6",
    )
    opening_hour: int = Field(default=constants.OPENING_HOUR, alias="OPENING_HOUR", ge=0, le=23)
    closing_hour: int = Field(default=constants.CLOSING_HOUR, alias="CLOSING_HOUR", ge=1, le=24)
    min_lead_minutes: int = Field(default=constants.MIN_LEAD_MINUTES, alias="MIN_LEAD_MINUTES")
    slot_interval_minutes: int = Field(
        default=constants.SLOT_INTERVAL_MINUTES, alias="SLOT_INTERVAL_MINUTES", gt=0
    )
    booking_window_days: int = Field(
        default=constants.BOOKING_WINDOW_DAYS, alias="BOOKING_WINDOW_DAYS"
    )
    booking_expiry_minutes: int = Field(
        default=constants.BOOKING_EXPIRY_MINUTES,
        alias="BOOKING_EXPIRY_MINUTES",
        gt=0,
        description="Minutes a QRIS charge stays payable",
    )

    # Midtrans
    midtrans_server_key: SecretStr = Field(default=SecretStr(""), alias="MIDTRANS_SERVER_KEY")
    midtrans_client_key: str = Field(default="", alias="MIDTRANS_CLIENT_KEY")
    midtrans_is_production: bool = Field(default=False, alias="MIDTRANS_IS_PRODUCTION")
    midtrans_fake: bool = Field(
        default=False,
        alias="MIDTRANS_FAKE",
        description="Use the in-memory gateway instead of calling Midtrans",
    )
    midtrans_timeout_seconds: float = Field(default=30.0, alias="MIDTRANS_TIMEOUT_SECONDS")

    # Redis / locking
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    booking_lock_ttl_seconds: int = Field(default=30, alias="BOOKING_LOCK_TTL_SECONDS")
    booking_lock_wait_seconds: float = Field(default=5.0, alias="BOOKING_LOCK_WAIT_SECONDS")

    # Email
    email_provider: Literal["console", "resend"] = Field(
        default="console", alias="EMAIL_PROVIDER"
    )
    resend_api_key: SecretStr = Field(default=SecretStr(""), alias="RESEND_API_KEY")
    from_email: str = Field(
        default=f"{BRAND_NAME} <no-reply@barbershop.local>", alias="FROM_EMAIL"
    )
    admin_email: Optional[str] = Field(default=None, alias="ADMIN_EMAIL")

    # Google Calendar
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    google_client_secret: SecretStr = Field(default=SecretStr(""), alias="GOOGLE_CLIENT_SECRET")
    google_refresh_token: SecretStr = Field(default=SecretStr(""), alias="GOOGLE_REFRESH_TOKEN")
    google_calendar_id: str = Field(default="primary", alias="GOOGLE_CALENDAR_ID")

    # Admin API
    admin_api_token: SecretStr = Field(
        default=SecretStr(""),
        alias="ADMIN_API_TOKEN",
        description="Shared token required in the X-Admin-Token header",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("open_weekdays")
    @classmethod
    def _validate_weekdays(cls, value: str) -> str:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or int(part) > 6:
                raise ValueError(f"Invalid weekday {part!r}; expected 0 (Monday) to 6 (Sunday)")
        return value

    @field_validator("closing_hour")
    @classmethod
    def _validate_closing_hour(cls, value: int, info) -> int:
        opening = info.data.get("opening_hour")
        if opening is not None and value <= opening:
            raise ValueError("closing_hour must be after opening_hour")
        return value

    @property
    def operating_weekdays(self) -> Tuple[int, ...]:
        return tuple(
            sorted({int(part) for part in self.open_weekdays.split(",") if part.strip()})
        )

    @property
    def midtrans_base_url(self) -> str:
        if self.midtrans_is_production:
            return "https://api.midtrans.com/v2"
        return "https://api.sandbox.midtrans.com/v2"

    @property
    def google_calendar_configured(self) -> bool:
        return bool(
            self.google_client_id
            and self.google_client_secret.get_secret_value()
            and self.google_refresh_token.get_secret_value()
        )


settings = Settings()
logger.info(
    "[CONFIG] Payment configuration: midtrans_production=%s midtrans_fake=%s email_provider=%s",
    settings.midtrans_is_production,
    settings.midtrans_fake,
    settings.email_provider,
)
