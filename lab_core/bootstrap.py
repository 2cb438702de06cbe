# =============================================================================
# lab_core/bootstrap.py
# Composition root: builds the data layer once per process
# =============================================================================
"""
Usage:
------
from lab_core.bootstrap import build_data_service, build_auth_gate

service = await build_data_service()
gate = build_auth_gate(service)
session = await gate.restore(on_data) or await gate.login(email, password, on_data)
"""

from __future__ import annotations
from typing import Optional
import logging

from lab_core.auth import AuthGate, PasswordPolicy
from lab_core.config import MODE_CLOUD, LabConfig, load_config
from lab_core.data import RemoteStoreAdapter, create_supabase_client
from lab_core.offline import (
    LabDataService,
    LocalBackend,
    LocalCache,
    LocalStore,
    RemoteBackend,
    SessionStore,
)

logger = logging.getLogger(__name__)


def build_local_store(config: LabConfig) -> LocalStore:
    return LocalStore(config.db_path).initialize()


async def build_data_service(
    config: Optional[LabConfig] = None,
    store: Optional[LocalStore] = None,
    client=None,
) -> LabDataService:
    """
    Build a LabDataService with the backend the configuration selects.

    Args:
        config: Resolved configuration (loaded from secrets/env when None)
        store: Local key/value store to share with the session store
        client: Pre-built Supabase AsyncClient (created from config when None)
    """
    config = config or load_config()
    store = store or build_local_store(config)
    policy = PasswordPolicy.from_config(config)
    cache = LocalCache(store, admin_email=config.admin_email)

    if config.mode == MODE_CLOUD:
        client = client or await create_supabase_client(config)
        backend = RemoteBackend(RemoteStoreAdapter(client, policy))
    else:
        backend = LocalBackend(cache, policy)

    logger.info(f"LabDataService initialized. Mode: {backend.mode}")
    return LabDataService(backend, cache)


def build_auth_gate(service: LabDataService) -> AuthGate:
    """Auth gate whose session key lives next to the service's snapshot."""
    return AuthGate(service, SessionStore(service.cache.store))
