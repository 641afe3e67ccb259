from typing import List, Optional

from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_ORIGIN = "http://127.0.0.1:5500"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Contact Relay"
    VERSION: str = "1.0.0"

    # --- Environment & Debug ---
    ENVIRONMENT: str = "local"
    DEBUG: bool = False  # Default to False for security
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None
    LOG_REDACT_PII: bool = False

    # --- Server ---
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    MAX_BODY_BYTES: int = 1024 * 1024  # 1MB

    # --- CORS / Origin gate ---
    # Comma-separated, e.g. "https://example.com,https://www.example.com"
    ALLOWED_ORIGINS: str = DEFAULT_ALLOWED_ORIGIN

    # --- Mail transport ---
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[SecretStr] = None
    FROM: Optional[str] = None
    COMPANY_EMAIL: Optional[str] = None
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT: float = 20.0
    MAIL_TIMEZONE: str = "America/La_Paz"

    # --- Rate Limiting / Proxy ---
    RATE_LIMIT_MAX_REQUESTS: int = 3
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    REDIS_URL: Optional[str] = None
    TRUSTED_PROXIES: List[str] = Field(
        default_factory=lambda: ["127.0.0.1", "10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        description="CIDR ranges of trusted reverse proxies for X-Forwarded-For",
    )

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def default_allowed_origins(cls, v: Optional[str]) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_ALLOWED_ORIGIN
        return v

    @field_validator("RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS")
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return v

    @property
    def allowed_origin_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def sender_address(self) -> Optional[str]:
        """Envelope sender; Gmail rewrites anything else to the login user anyway."""
        return self.FROM or self.EMAIL_USER


settings = Settings()
