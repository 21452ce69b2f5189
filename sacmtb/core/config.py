"""Application configuration management using Pydantic Settings."""

import re
from functools import lru_cache
from string import Formatter

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")


def normalize_partner(delivery_partner: str | None) -> str:
    """Lower-case a partner name and drop everything but letters and digits."""
    return _NON_ALPHANUMERIC.sub("", (delivery_partner or "").lower())


class CarrierTemplate(BaseModel):
    """A known delivery partner and its tracking URL template.

    `pattern` is matched as a substring of the normalised partner name and
    `url_template` must contain a `{tracking_id}` placeholder.
    """

    name: str
    pattern: str
    url_template: str

    @field_validator("pattern")
    @classmethod
    def pattern_has_letters_or_digits(cls, v: str) -> str:
        # An empty normalised pattern would match every partner name
        if not normalize_partner(v):
            raise ValueError("pattern must contain at least one letter or digit")
        return v

    @field_validator("url_template")
    @classmethod
    def template_uses_tracking_id(cls, v: str) -> str:
        try:
            fields = {name for _, name, _, _ in Formatter().parse(v) if name is not None}
        except ValueError as e:
            raise ValueError(f"url_template is not a valid format string: {e}") from e
        if fields != {"tracking_id"}:
            raise ValueError("url_template must use exactly the {tracking_id} placeholder")
        return v


DEFAULT_CARRIERS: list[CarrierTemplate] = [
    CarrierTemplate(
        name="Delhivery",
        pattern="delhivery",
        url_template="https://www.delhivery.com/tracking/{tracking_id}",
    ),
    CarrierTemplate(
        name="BlueDart",
        pattern="bluedart",
        url_template="https://www.bluedart.com/tracking?trackno={tracking_id}",
    ),
    CarrierTemplate(
        name="XpressBees",
        pattern="xpressbees",
        url_template="https://www.xpressbees.com/track-shipment/{tracking_id}",
    ),
    CarrierTemplate(
        name="DTDC",
        pattern="dtdc",
        url_template="https://www.dtdc.in/tracking.asp?strCnno={tracking_id}",
    ),
    CarrierTemplate(
        name="Ekart",
        pattern="ekart",
        url_template="https://ekartlogistics.com/shipmenttrack/{tracking_id}",
    ),
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="sacmtb-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=5000, description="Server port")
    max_request_body_size: int = Field(default=10 * 1024 * 1024, description="Maximum request body size in bytes")
    max_upload_body_size: int = Field(default=60 * 1024 * 1024, description="Maximum request body size in bytes for media upload routes")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001,https://sacmtb.com",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # Auth
    jwt_secret: str = Field(..., description="Secret used to sign bearer tokens")
    jwt_algorithm: str = Field(default="HS256", description="Bearer token signing algorithm")
    jwt_expire_days: int = Field(default=7, description="Bearer token lifetime in days")
    google_client_id: str = Field(default="", description="Google OAuth client ID for ID token audience checks")

    # OTP
    otp_length: int = Field(default=6, description="Number of digits in an OTP")
    otp_expire_minutes: int = Field(default=5, description="Minutes an OTP stays valid")
    otp_resend_cooldown_seconds: int = Field(default=60, description="Minimum seconds between OTP emails for one account")
    otp_max_attempts: int = Field(default=3, description="Failed admin OTP attempts before the admin is blocked")
    otp_rate_limit_requests: int = Field(default=3, description="OTP requests allowed per client per window")
    otp_rate_limit_window_seconds: int = Field(default=60, description="OTP rate limit window in seconds")

    # Seeded admin identity
    admin_email: str = Field(default="admin@sacmtb.com", description="Administrative recipient and admin login email")
    admin_name: str = Field(default="Super Admin", description="Display name of the seeded admin")
    admin_phone: str = Field(default="9999999999", description="Phone number of the seeded admin")
    admin_bootstrap_password: str = Field(default="", description="Initial password for the seeded admin (OTP-only if empty)")

    # Payments (Stripe)
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_publishable_key: str = Field(default="", description="Stripe publishable key (for frontend)")
    payment_signing_secret: str = Field(default="", description="Shared secret for payment confirmation signatures")
    payment_currency: str = Field(default="inr", description="ISO currency code for payment intents")
    gateway_timeout_seconds: float = Field(default=15.0, description="Timeout for a single payment gateway call")
    gateway_max_attempts: int = Field(default=3, description="Attempts for a payment gateway call on timeout")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="SAC MTB <noreply@sacmtb.com>",
        description="From address for transactional emails",
    )
    notification_timeout_seconds: float = Field(default=10.0, description="Timeout for a single notification delivery")
    notification_max_attempts: int = Field(default=2, description="Delivery attempts for a notification on timeout")

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend application URL for email links",
    )

    # Media (Supabase Storage)
    media_bucket: str = Field(default="sacmtb-media", description="Public Supabase Storage bucket for uploaded media")
    max_image_size_bytes: int = Field(default=5 * 1024 * 1024, description="Maximum size of one uploaded image")
    max_video_size_bytes: int = Field(default=50 * 1024 * 1024, description="Maximum size of one uploaded video")
    max_product_images: int = Field(default=5, description="Images accepted in one product image upload")

    # Shipping
    carrier_tracking_table: list[CarrierTemplate] = Field(
        default_factory=lambda: list(DEFAULT_CARRIERS),
        description="Ordered carrier tracking URL table (JSON list in the environment)",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_stripe_test_mode(self) -> bool:
        """Check if using Stripe test keys."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
