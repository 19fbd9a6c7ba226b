"""Supabase clients for the referral tables."""

from supabase import Client, ClientOptions, create_client

from app.config.settings import settings


def get_supabase_client() -> Client:
    """
    Get Supabase client with the anon key for read-only lookups.

    Sessions are never persisted: the client is built per request and
    discarded afterwards. Row-level security must allow SELECT on the
    referral tables for anonymous users.
    """
    if not settings.supabase_configured:
        raise ValueError(
            "Missing SUPABASE_URL or SUPABASE_ANON_KEY. Set them in your environment."
        )

    return create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


def get_supabase_admin_client() -> Client:
    """
    Get Supabase client with service role key for admin operations.

    This client has elevated privileges and should only be used for:
    - Backfilling referral_code_used on user profiles
    - Inserting missing rows into the referrals join table

    IMPORTANT: Never expose this client to the lookup endpoint.
    """
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise ValueError(
            "Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY. "
            "Set them in .env to run referral maintenance tasks."
        )

    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )
