"""
Centralized application configuration using Pydantic v2 BaseSettings.

Loads environment variables and provides sane defaults. This module should be the
single source of truth for configuration across the app. Import and instantiate
`get_settings()` rather than constructing `AppSettings` directly to benefit from
cached settings and env loading.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the project root directory (parent of legal_case_management package)
_PROJECT_ROOT = Path(__file__).parent.parent


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class AppSettings(BaseSettings):
    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )
    # Server
    app_name: str = Field(default="Legal Case Management Service")
    debug: bool = Field(default=False)
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    system_user: str = Field(default="system", alias="SYSTEM_USER")

    # ArangoDB
    arango_host: str = Field(default="http://localhost:8529", alias="ARANGO_HOST")
    arango_db_name: str = Field(default="legal_case_management", alias="ARANGO_DB_NAME")
    arango_username: str = Field(default="root", alias="ARANGO_USERNAME")
    arango_password: str = Field(default="", alias="ARANGO_PASSWORD")
    arango_max_retries: int = Field(default=3, alias="ARANGO_MAX_RETRIES")
    arango_retry_delay: int = Field(default=2, alias="ARANGO_RETRY_DELAY")

    # Case / code generation
    case_id_prefix: str = Field(
        default="LC",
        alias="CASE_ID_PREFIX",
        description="Prefix used for generated legal case ids (PREFIX-YYYYMMDD-NNNN)",
    )

    # Pagination
    default_page_size: int = Field(default=10, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    # Documents
    upload_path: Path = Field(default=Path("./uploads"), alias="UPLOAD_PATH")
    max_upload_size_mb: int = Field(
        default=10,
        alias="MAX_UPLOAD_SIZE_MB",
        description="Maximum size of a single uploaded document",
    )
    allowed_mime_types_raw: str = Field(
        default=(
            "application/pdf,application/msword,"
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document,"
            "image/jpeg,image/png,image/gif,text/plain"
        ),
        alias="ALLOWED_MIME_TYPES",
        description="Comma-separated list of MIME types accepted for document upload",
    )

    @property
    def allowed_mime_types(self) -> list[str]:
        """Parse allowed upload MIME types from comma-separated string."""
        return [m.strip() for m in self.allowed_mime_types_raw.split(",") if m.strip()]

    # SMS gateway
    sms_api_url: str = Field(
        default="",
        alias="SMS_API_URL",
        description="Base URL of the SMS gateway (empty disables template sync and SMS sends)",
    )
    sms_api_key: str = Field(default="", alias="SMS_API_KEY")
    sms_client_id: str = Field(default="", alias="SMS_CLIENT_ID")
    sms_sender_id: str = Field(default="LGLCMS", alias="SMS_SENDER_ID")
    sms_timeout_seconds: int = Field(default=10, alias="SMS_TIMEOUT_SECONDS")

    # Notices and triggers
    notice_max_characters: int = Field(default=2000, alias="NOTICE_MAX_CHARACTERS")
    min_notice_dpd: int = Field(
        default=30,
        alias="MIN_NOTICE_DPD",
        description="Minimum days past due before a notice trigger is eligible",
    )
    high_value_threshold: float = Field(
        default=500000.0,
        alias="HIGH_VALUE_THRESHOLD",
        description="Outstanding amount at or above which an account is flagged high value",
    )
    legal_company_name: str = Field(default="Recovery Finance Ltd.", alias="LEGAL_COMPANY_NAME")
    legal_company_address: str = Field(default="", alias="LEGAL_COMPANY_ADDRESS")
    legal_signatory: str = Field(default="Authorised Signatory", alias="LEGAL_SIGNATORY")

    # Error alerts
    error_alert_recipients_raw: str = Field(
        default="admin@company.com",
        alias="ERROR_ALERT_RECIPIENTS",
        description="Comma-separated email addresses notified when an error is logged",
    )
    error_alert_phones_raw: str = Field(
        default="",
        alias="ERROR_ALERT_PHONES",
        description="Comma-separated mobile numbers paged by SMS for critical errors",
    )
    error_escalation_recipients_raw: str = Field(
        default="admin@company.com,tech-lead@company.com",
        alias="ERROR_ESCALATION_RECIPIENTS",
        description="Comma-separated email addresses notified when an error breaches its SLA",
    )

    @property
    def error_alert_recipients(self) -> list[str]:
        return _split_csv(self.error_alert_recipients_raw)

    @property
    def error_alert_phones(self) -> list[str]:
        return _split_csv(self.error_alert_phones_raw)

    @property
    def error_escalation_recipients(self) -> list[str]:
        return _split_csv(self.error_escalation_recipients_raw)

    # Production Mode
    production_mode: bool = Field(
        default=False,
        alias="PRODUCTION_MODE",
        description="Enable production mode (disables debug features, enables security measures)",
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        alias="RATE_LIMIT_ENABLED",
        description="Enable rate limiting middleware",
    )
    rate_limit_per_minute: int = Field(
        default=100,
        alias="RATE_LIMIT_PER_MINUTE",
        description="Maximum requests per minute per IP",
    )
    rate_limit_per_minute_authenticated: int = Field(
        default=200,
        alias="RATE_LIMIT_PER_MINUTE_AUTHENTICATED",
        description="Maximum requests per minute for API key authenticated requests",
    )

    # Request Limits
    max_request_size_mb: int = Field(
        default=10,
        alias="MAX_REQUEST_SIZE_MB",
        description="Maximum request body size in megabytes",
    )
    request_timeout_seconds: int = Field(
        default=60,
        alias="REQUEST_TIMEOUT_SECONDS",
        description="Request timeout in seconds",
    )

    # CORS (Production)
    cors_allowed_origins_raw: str = Field(
        default="",
        alias="CORS_ALLOWED_ORIGINS",
        description="Comma-separated list of allowed CORS origins (required in production)",
    )

    @property
    def cors_allowed_origins(self) -> list[str]:
        """Parse CORS allowed origins from comma-separated string."""
        if not self.cors_allowed_origins_raw:
            return self.cors_allow_origins
        return [
            origin.strip() for origin in self.cors_allowed_origins_raw.split(",") if origin.strip()
        ]

    # API Keys (Optional Authentication)
    api_keys_raw: str = Field(
        default="",
        alias="API_KEYS",
        description="API keys for optional authentication (format: key1:name1,key2:name2)",
    )

    @property
    def api_keys(self) -> dict[str, str]:
        """Parse API keys from environment variable format."""
        if not self.api_keys_raw:
            return {}
        result: dict[str, str] = {}
        for pair in self.api_keys_raw.split(","):
            pair = pair.strip()
            if ":" in pair:
                key, name = pair.split(":", 1)
                result[key.strip()] = name.strip()
        return result

    # Health Check
    health_check_timeout_seconds: int = Field(
        default=5,
        alias="HEALTH_CHECK_TIMEOUT_SECONDS",
        description="Timeout for individual dependency health checks",
    )

    @model_validator(mode="after")
    def validate_production_settings(self) -> AppSettings:
        """Validate production settings after initialization."""
        if self.production_mode:
            if not self.cors_allowed_origins:
                raise ValueError("CORS_ALLOWED_ORIGINS must be set when PRODUCTION_MODE=true")
            if "*" in self.cors_allowed_origins:
                raise ValueError("CORS_ALLOWED_ORIGINS cannot contain '*' in production mode")
            if self.debug:
                raise ValueError("DEBUG must be false when PRODUCTION_MODE=true")

        if self.rate_limit_per_minute <= 0:
            raise ValueError("RATE_LIMIT_PER_MINUTE must be greater than 0")
        if self.rate_limit_per_minute_authenticated < self.rate_limit_per_minute:
            raise ValueError("RATE_LIMIT_PER_MINUTE_AUTHENTICATED must be >= RATE_LIMIT_PER_MINUTE")

        if not (1 <= self.max_request_size_mb <= 100):
            raise ValueError("MAX_REQUEST_SIZE_MB must be between 1 and 100")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be greater than 0")

        if not (1 <= self.default_page_size <= self.max_page_size):
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")
        if self.max_upload_size_mb <= 0:
            raise ValueError("MAX_UPLOAD_SIZE_MB must be greater than 0")

        return self


@lru_cache
def get_settings() -> AppSettings:
    """Return cached settings instance (singleton for process).

    Using lru_cache avoids re-parsing env on hot reload but ensures a single
    instance is used in app lifespan and imported modules.
    """
    return AppSettings()  # type: ignore[arg-type]
