from datetime import timedelta
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecm_docusign.core.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_ESIGNATURE_PROVIDERS = {"docusign", "adobe_sign", "hellosign"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ECM_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = Field(default="ECM DocuSign Adapter")
    environment: str = Field(default="development")

    # Selects which SignatureEnvelopePort implementation gets wired at startup
    esignature_provider: str = Field(
        default="docusign",
        description="Active e-signature provider: 'docusign', 'adobe_sign' or 'hellosign'",
    )

    @field_validator("esignature_provider")
    @classmethod
    def validate_esignature_provider(cls, value: str) -> str:
        provider = value.strip().lower()
        if provider not in SUPPORTED_ESIGNATURE_PROVIDERS:
            raise ValueError(
                f"esignature_provider must be one of {SUPPORTED_ESIGNATURE_PROVIDERS}, got '{value}'"
            )
        return provider


class DocuSignSettings(BaseSettings):
    """
    DocuSign adapter configuration.

    Bound from ``ECM_ADAPTER_DOCUSIGN_*`` environment variables (or ``.env``).
    Loaded once at startup and treated as immutable afterwards.
    """

    model_config = SettingsConfigDict(
        env_prefix="ECM_ADAPTER_DOCUSIGN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    integration_key: str = Field(min_length=1, description="OAuth client id of the DocuSign app")
    user_id: str = Field(min_length=1, description="User GUID impersonated by the JWT grant")
    account_id: str = Field(min_length=1, description="DocuSign account the adapter operates on")
    private_key: str = Field(min_length=1, repr=False, description="RSA private key in PEM format")

    base_url: str = Field(default="https://na3.docusign.net/restapi")
    auth_server: str = Field(default="https://account.docusign.com")

    webhook_url: Optional[str] = Field(default=None, description="Connect webhook URL (not used yet)")
    webhook_secret: Optional[str] = Field(default=None, repr=False, description="Connect HMAC secret (not used yet)")

    sandbox_mode: bool = Field(default=False)

    connection_timeout: timedelta = Field(default=timedelta(seconds=30))
    read_timeout: timedelta = Field(default=timedelta(seconds=60))

    # Not wired into any retry logic yet
    max_retries: int = Field(default=3, ge=0)
    jwt_expiration: int = Field(default=3600, gt=0, description="JWT assertion lifetime in seconds")

    # Status polling is not implemented; kept for configuration compatibility
    enable_polling: bool = Field(default=True)
    polling_interval: timedelta = Field(default=timedelta(minutes=5))

    # Reserved for envelope creation once documents and recipients are populated
    default_email_subject: str = Field(default="Please sign this document")
    default_email_message: str = Field(default="Please review and sign the attached document(s).")

    @field_validator("integration_key", "user_id", "account_id", "private_key")
    @classmethod
    def reject_blank(cls, value: str, info) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return value.strip()

    @field_validator("connection_timeout", "read_timeout", "polling_interval", mode="before")
    @classmethod
    def parse_seconds(cls, value):
        # Plain numbers are seconds; ISO-8601 durations fall through to pydantic
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            return value
        try:
            return timedelta(seconds=float(value))
        except (ValueError, OverflowError):
            return value

    @field_validator("private_key")
    @classmethod
    def unescape_private_key(cls, value: str) -> str:
        # Env files usually carry PEM keys on a single line with literal \n
        return value.replace("\\n", "\n")

    @model_validator(mode="after")
    def warn_unused_settings(self) -> "DocuSignSettings":
        if self.webhook_url and not self.webhook_secret:
            logger.warning("docusign.settings.webhook_secret_missing", webhook_url=self.webhook_url)
        return self


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: The cached settings instance
    """
    return Settings()


@lru_cache(maxsize=None)
def get_docusign_settings() -> DocuSignSettings:
    """
    Get cached DocuSign settings.

    Raises a pydantic ``ValidationError`` when a required credential is
    missing, which aborts startup.
    """
    return DocuSignSettings()


def clear_settings_cache() -> None:
    """
    Clear the cached settings instances.

    Useful for testing or when configuration needs to be reloaded.
    """
    get_settings.cache_clear()
    get_docusign_settings.cache_clear()
