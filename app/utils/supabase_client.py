"""Service-role Supabase client shared by the API, jobs and scripts.

The API performs its own authentication, so every table access goes through
this one client; row level security is not relied upon.
"""

from functools import lru_cache

import httpx
from supabase.lib.client_options import SyncClientOptions

from app.config import settings
from supabase import Client, create_client


def _timeout_seconds() -> int:
    return max(1, settings.supabase_postgrest_timeout_seconds)


@lru_cache(maxsize=1)
def _pooled_http() -> httpx.Client:
    max_connections = max(10, settings.supabase_http_max_connections)
    keepalive = min(max_connections, max(5, settings.supabase_http_max_keepalive_connections))
    return httpx.Client(
        timeout=httpx.Timeout(_timeout_seconds()),
        limits=httpx.Limits(max_connections=max_connections, max_keepalive_connections=keepalive),
    )


@lru_cache(maxsize=1)
def get_service_client() -> Client:
    """Return the process-wide service-role client."""
    options = SyncClientOptions(
        auto_refresh_token=False,
        persist_session=False,
        postgrest_client_timeout=_timeout_seconds(),
        httpx_client=_pooled_http(),
    )
    return create_client(settings.supabase_url, settings.supabase_service_key, options=options)


def close_service_client() -> None:
    """Release pooled connections; the next call builds a fresh client."""
    if _pooled_http.cache_info().currsize:
        _pooled_http().close()
    _pooled_http.cache_clear()
    get_service_client.cache_clear()
