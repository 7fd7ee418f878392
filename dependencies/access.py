# dependencies/access.py

from threading import Lock
from typing import Optional

from fastapi import Depends

from core.access_control import AccessController
from core.access_store import AccessStore
from core.config import settings
from core.logging_config import logger
from core.memory_store import InMemoryAccessStore
from core.role_admin import RoleAdministrator
from core.supabase_client import get_supabase_client
from core.supabase_store import SupabaseAccessStore


_store: Optional[AccessStore] = None
_store_lock = Lock()


def build_access_store() -> AccessStore:
    """Create the store selected by ACCESS_STORE_BACKEND."""
    if settings.ACCESS_STORE_BACKEND == "memory":
        store = InMemoryAccessStore()
        for user_id, role in settings.MEMORY_STORE_SEED_USERS.items():
            store.add_user(user_id, role)
        logger.info(f"Using in-memory access store ({len(settings.MEMORY_STORE_SEED_USERS)} seeded users)")
        return store

    return SupabaseAccessStore(get_supabase_client())


# ============================================================
# FastAPI dependencies
# ============================================================
def get_access_store() -> AccessStore:
    """Process-wide store. Tests replace it through dependency_overrides."""
    global _store
    with _store_lock:
        if _store is None:
            _store = build_access_store()
        return _store


def get_access_controller(store: AccessStore = Depends(get_access_store)) -> AccessController:
    return AccessController(store)


def get_role_admin(store: AccessStore = Depends(get_access_store)) -> RoleAdministrator:
    return RoleAdministrator(store)
