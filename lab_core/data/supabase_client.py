# =============================================================================
# lab_core/data/supabase_client.py
# Supabase Client Construction
# =============================================================================

from __future__ import annotations
import logging

from supabase import AsyncClient, acreate_client

from lab_core.config import LabConfig
from lab_core.errors import ConfigurationError, RemoteUnavailable

logger = logging.getLogger(__name__)


async def create_supabase_client(config: LabConfig) -> AsyncClient:
    """
    Create an async Supabase client from the resolved configuration.

    Args:
        config: LabConfig carrying ``supabase_url`` and ``supabase_key``

    Returns:
        Connected AsyncClient (PostgREST + Realtime)

    Raises:
        ConfigurationError: Credentials are missing
        RemoteUnavailable: The client could not be created
    """
    if not config.has_supabase:
        raise ConfigurationError(
            "Supabase credentials not found. Configure .streamlit/secrets.toml "
            "[supabase] url/key or set SUPABASE_URL and SUPABASE_KEY.",
            config_key="supabase",
        )

    try:
        client = await acreate_client(config.supabase_url, config.supabase_key)
    except Exception as e:
        raise RemoteUnavailable(
            f"Failed to initialize Supabase client: {e}",
            operation="create_client",
        ) from e

    logger.info(f"Supabase client ready: {config.supabase_url[:40]}...")
    return client
