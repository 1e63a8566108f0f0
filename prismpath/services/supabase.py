import logging
from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from prismpath.config import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _client_for(url: str, key: str) -> Client:
    logger.info("Creating Supabase client")
    return create_client(url, key)


def get_supabase_client(settings: Optional[Settings] = None) -> Optional[Client]:
    """Shared Supabase client, or None when the remote backend is not configured."""
    settings = settings or get_settings()
    if not settings.has_remote_backend:
        return None
    try:
        return _client_for(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logger.error(f"Could not create Supabase client: {str(e)}")
        return None
