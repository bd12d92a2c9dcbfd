"""Configuration management for the Artemo provisioning service."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


def split_env_list(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Environment
    ARTEMO_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Webhook secrets (checked per request so a missing secret is a 500, not a boot failure)
    MAKE_WEBHOOK_SECRET: str | None = Field(
        default=None, description="Shared bearer secret for the Make.com provisioning webhook"
    )
    GHL_WEBHOOK_SECRET: str | None = Field(
        default=None, description="HMAC key for GoHighLevel webhook signatures"
    )

    # GoHighLevel product routing
    GHL_PRO_PRODUCT_IDS: str = Field(default="", description="Comma list of pro product ids")
    GHL_TRIAL_PRODUCT_IDS: str = Field(default="", description="Comma list of trial product ids")

    # CORS allow-list for webhook endpoints
    CORS_ALLOWED_HOSTS: str = Field(
        default="main.artemo.ai,artemo.vercel.app",
        description="Comma list of exact hosts allowed as CORS origins",
    )
    CORS_ALLOWED_HOST_PATTERNS: str = Field(
        default=(
            r"[a-z0-9-]+\.local-credentialless\.webcontainer-api\.io,"
            r"[a-z0-9-]+\.w-credentialless-staticblitz\.com"
        ),
        description="Comma list of host regexes for preview deployments",
    )

    # Tool catalog
    STATIC_TOOLS_PATH: str | None = Field(
        default=None, description="Override path for the bundled static tool dataset"
    )

    # Identity lookup paging (auth admin API has no email filter)
    AUTH_LOOKUP_PAGE_SIZE: int = Field(default=1000, description="Users per list_users page")

    @property
    def ghl_pro_product_ids(self) -> set[str]:
        return set(split_env_list(self.GHL_PRO_PRODUCT_IDS))

    @property
    def ghl_trial_product_ids(self) -> set[str]:
        return set(split_env_list(self.GHL_TRIAL_PRODUCT_IDS))

    @property
    def cors_allowed_hosts(self) -> list[str]:
        return split_env_list(self.CORS_ALLOWED_HOSTS)

    @property
    def cors_allowed_host_patterns(self) -> list[str]:
        return split_env_list(self.CORS_ALLOWED_HOST_PATTERNS)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
