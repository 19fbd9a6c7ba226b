"""Data store dependencies."""

import logging
from typing import Annotated

from fastapi import Depends
from supabase import Client

from app.core.exceptions import StoreUnavailableError
from app.services.supabase import get_supabase_client

logger = logging.getLogger(__name__)


def get_read_client() -> Client:
    """
    Build the read-only Supabase client for a lookup request.

    Missing configuration is a store failure from the caller's point of
    view, so it surfaces as a 500 with the configuration message.
    """
    try:
        return get_supabase_client()
    except ValueError as e:
        logger.error(f"Supabase client unavailable: {e}")
        raise StoreUnavailableError(str(e)) from None


ReadClient = Annotated[Client, Depends(get_read_client)]
