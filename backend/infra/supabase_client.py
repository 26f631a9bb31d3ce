from typing import Optional
from supabase import create_client, Client, ClientOptions
from backend.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, SUPABASE_TIMEOUT_SECONDS
from backend.errors import UpstreamConfigurationError

_service_supabase: Optional[Client] = None

def _options() -> ClientOptions:
    # Pas de session persistée côté serveur: chaque requête porte son propre token
    return ClientOptions(
        postgrest_client_timeout=SUPABASE_TIMEOUT_SECONDS,
        auto_refresh_token=False,
        persist_session=False,
    )

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS): utilisé pour les tables orders/order_items
    et pour vérifier les tokens utilisateurs.
    """
    global _service_supabase
    if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
        raise UpstreamConfigurationError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY, options=_options())
    return _service_supabase
