# Services package

from app.services.supabase import get_supabase_admin_client, get_supabase_client

__all__ = [
    "get_supabase_admin_client",
    "get_supabase_client",
]
