from urllib.parse import urlparse
import socket
from backend.config import SUPABASE_URL, STRIPE_SECRET_KEY
from backend.infra.supabase_client import get_service_supabase
from backend.orders.repository import ORDERS_TABLE, ORDER_ITEMS_TABLE

def _check_table(client, name: str):
    try:
        res = client.table(name).select("id").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": type(e).__name__}

def health_supabase_info():
    effective_url = SUPABASE_URL
    parsed = urlparse(effective_url) if effective_url else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError:
            dns_ok = False

    info = {
        "hostname": hostname,
        "dns_ok": dns_ok,
        "connect_ok": False,
        "stripe_configured": bool(STRIPE_SECRET_KEY),
        "error": None,
        "tables": {}
    }
    try:
        client = get_service_supabase()
        for t in [ORDERS_TABLE, ORDER_ITEMS_TABLE]:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        # Pas de détail interne (clés, URLs complètes) dans la réponse publique
        info["error"] = type(e).__name__
    return info
