# =============================================================================
# lab_core/data/__init__.py
# Remote store access and export
# =============================================================================

from .export import CSV_HEADERS, render_requests_csv
from .remote_store import RemoteStoreAdapter, RemoteSubscription
from .supabase_client import create_supabase_client

__all__ = [
    "CSV_HEADERS",
    "render_requests_csv",
    "RemoteStoreAdapter",
    "RemoteSubscription",
    "create_supabase_client",
]
