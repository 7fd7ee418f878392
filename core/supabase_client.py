# core/supabase_client.py

from typing import Optional

from supabase import Client, ClientOptions, create_client

from core.config import settings
from core.logging_config import logger


# ============================================================
# Supabase Client Factory (ALWAYS service role)
# ============================================================

def get_supabase_client() -> Optional[Client]:
    """
    Creates a Supabase client using the SERVICE ROLE KEY.
    Every PostgREST request is bounded by ACCESS_STORE_TIMEOUT_SECONDS.
    REQUIRED for:
        - auth.get_user (token validation)
        - full read/write on profiles, facility_specific_roles,
          conditional_permissions and the two log tables
    """
    supabase_url = settings.SUPABASE_URL
    supabase_key = settings.SUPABASE_SERVICE_ROLE_KEY  # MUST be service-role

    if not supabase_url or not supabase_key:
        logger.error("Missing Supabase credentials")
        logger.error(f"   URL: {supabase_url}")
        logger.error(f"   SERVICE ROLE KEY: {'SET' if supabase_key else 'MISSING'}")
        return None

    try:
        options = ClientOptions(
            postgrest_client_timeout=settings.ACCESS_STORE_TIMEOUT_SECONDS,
        )
        return create_client(supabase_url, supabase_key, options=options)

    except Exception as e:
        logger.error(f"Supabase Init Error: {e}", exc_info=True)
        return None
