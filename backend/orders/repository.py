"""
Accès aux données pour les commandes (tables 'orders' et 'order_items').
Toutes les écritures passent par le client service-role (bypass RLS).
Les fonctions ne lèvent pas: elles journalisent avec le contexte (order_id)
et retournent None/False; le service décide de l'erreur à remonter.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

import backend.infra.supabase_client as supabase_client
from backend.errors import UpstreamConfigurationError
from .models import OrderStatus

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"

# module backend.orders.repository
def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _first(rows) -> Optional[dict]:
    return rows[0] if isinstance(rows, list) and rows else None

def require_store() -> None:
    """Vérifie que le client service-role est configuré (UpstreamConfigurationError sinon)."""
    supabase_client.get_service_supabase()

def insert_order(row: Dict[str, Any]) -> Optional[dict]:
    """
    Insère une commande 'pending' et retourne la ligne créée (avec son id).
    Jamais rejoué automatiquement: un second essai créerait une commande en double.
    """
    try:
        res = supabase_client.get_service_supabase().table(ORDERS_TABLE).insert(row).execute()
        return _first(res.data)
    except UpstreamConfigurationError:
        raise
    except Exception:
        logger.exception("orders.repository.insert_order failed email=%s", row.get("customer_email"))
        return None

def insert_order_items(rows: List[Dict[str, Any]]) -> Optional[List[dict]]:
    """Insère toutes les lignes de la commande en un seul appel (un seul INSERT multi-lignes)."""
    order_id = rows[0].get("order_id") if rows else None
    try:
        res = supabase_client.get_service_supabase().table(ORDER_ITEMS_TABLE).insert(rows).execute()
        return res.data or []
    except Exception:
        logger.exception("orders.repository.insert_order_items failed order_id=%s", order_id)
        return None

def delete_order(order_id: str) -> bool:
    """Compensation: supprime une commande restée sans articles."""
    try:
        supabase_client.get_service_supabase().table(ORDERS_TABLE).delete().eq("id", order_id).execute()
        return True
    except Exception:
        logger.exception("orders.repository.delete_order failed order_id=%s", order_id)
        return False

def link_session(order_id: str, session_id: str) -> bool:
    """
    Associe la session de paiement à la commande.
    La condition IS NULL garantit qu'un identifiant déjà lié n'est jamais remplacé.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(ORDERS_TABLE)
            .update({"stripe_session_id": session_id, "updated_at": _now_iso()})
            .eq("id", order_id)
            .is_("stripe_session_id", "null")
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("orders.repository.link_session failed order_id=%s session_id=%s", order_id, session_id)
        return False

def transition_status(order_id: str, status: OrderStatus) -> Optional[List[dict]]:
    """
    Mise à jour conditionnelle: UPDATE orders SET status=? WHERE id=? AND status='pending'.
    - Retourne les lignes modifiées ([] si la commande n'était plus 'pending').
    - Retourne None en cas d'erreur base.
    Deux appels concurrents convergent: un seul voit sa ligne modifiée.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(ORDERS_TABLE)
            .update({"status": status.value, "updated_at": _now_iso()})
            .eq("id", order_id)
            .eq("status", OrderStatus.PENDING.value)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.transition_status failed order_id=%s status=%s", order_id, status.value)
        return None

def fetch_order_with_items(order_id: str) -> Optional[dict]:
    """
    Lit la commande et ses lignes (embed PostgREST order_items).
    Lecture idempotente: un seul nouvel essai en cas d'erreur.
    """
    for attempt in (1, 2):
        try:
            res = (
                supabase_client.get_service_supabase()
                .table(ORDERS_TABLE)
                .select("*, order_items(*)")
                .eq("id", order_id)
                .limit(1)
                .execute()
            )
            return _first(res.data)
        except Exception:
            logger.warning("orders.repository.fetch_order_with_items failed order_id=%s attempt=%s", order_id, attempt, exc_info=True)
    return None

