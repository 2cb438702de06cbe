# =============================================================================
# lab_core/offline/__init__.py
# Cloud/Local data layer
# =============================================================================
"""
Cloud/Local Data Layer

┌──────────────────────────────────────────────────────────┐
│                     LabDataService                        │
│        (Single API - presentation code uses this only)    │
└──────────────────────────────────────────────────────────┘
                           │
             ┌─────────────┴─────────────┐
             ▼                           ▼
   ┌──────────────────┐        ┌──────────────────┐
   │  RemoteBackend   │        │   LocalBackend   │
   │ (Supabase scope) │        │ (SQLite snapshot)│
   └──────────────────┘        └──────────────────┘
             │ write-through             │
             └──────────► LocalCache ◄───┘

The backend is picked once by lab_core.bootstrap; there is no runtime switch.
"""

from lab_core.offline.local_database import (
    LocalStore,
    LocalCache,
    SessionStore,
)

from lab_core.offline.backends import (
    Collection,
    NullSubscription,
    StorageBackend,
    RemoteBackend,
    LocalBackend,
)

from lab_core.offline.unified_data_service import (
    LabDataService,
    reduce_snapshot,
)

__all__ = [
    # Local storage
    "LocalStore",
    "LocalCache",
    "SessionStore",
    # Backends
    "Collection",
    "NullSubscription",
    "StorageBackend",
    "RemoteBackend",
    "LocalBackend",
    # Unified Service (Main API)
    "LabDataService",
    "reduce_snapshot",
]
