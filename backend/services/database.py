"""Supabase client factory shared by the stores."""
import logging
from typing import Optional
from supabase import acreate_client, AsyncClient

from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


async def create_database_client(
    supabase_url: Optional[str] = SUPABASE_URL,
    supabase_key: Optional[str] = SUPABASE_KEY
) -> AsyncClient:
    """
    Create an async Supabase client.

    Raises:
        ValueError: If Supabase credentials are missing
    """
    if not supabase_url or not supabase_key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

    client = await acreate_client(supabase_url, supabase_key)
    logger.info("Supabase client initialized")
    return client
