"""Unit tests for environment-driven settings."""

from app.config.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "REFERRAL_USES_COLUMN", "USER_EMAIL_COLUMN"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.referral_codes_table == "referral_codes"
        assert config.referral_code_column == "code"
        assert config.referral_uses_column == "total_uses"
        assert config.user_email_column == "school_email"
        assert config.supabase_configured is False

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        monkeypatch.setenv("REFERRAL_CODES_TABLE", "codes")

        config = Settings(_env_file=None)

        assert config.supabase_configured is True
        assert config.referral_codes_table == "codes"
