from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""  # Read-only key used by the lookup endpoint
    supabase_service_role_key: str = ""  # Write key for maintenance tasks (backfill)

    # Table/column overrides for the lookup
    referral_codes_table: str = "referral_codes"
    referral_code_column: str = "code"
    # Authoritative usage counter; rows without it fall back to "uses"
    referral_uses_column: str = "total_uses"
    user_profiles_table: str = "user_profiles"
    user_email_column: str = "school_email"
    referrals_table: str = "referrals"

    # Application
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def supabase_configured(self) -> bool:
        """Check if the read-only client can be built."""
        return bool(self.supabase_url and self.supabase_anon_key)


settings = Settings()
