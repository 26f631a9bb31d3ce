"""
Lecture des métadonnées et du statut d'une session Stripe Checkout.
"""
from typing import Any, Dict, Optional

from backend.orders.models import OrderStatus

PAID = "paid"

# module backend.payments.metadata
def extract_order_id(session: Dict[str, Any]) -> Optional[str]:
    """
    Extrait metadata.order_id d'une session (lecture directe).
    - Retourne None si la session ne porte pas de commande.
    """
    if not isinstance(session, dict):
        return None
    meta = session.get("metadata") or {}
    order_id = meta.get("order_id")
    return str(order_id) if order_id else None

def settlement_outcome(session: Dict[str, Any]) -> OrderStatus:
    """paid si et seulement si payment_status == 'paid'; tout autre statut -> failed."""
    return OrderStatus.PAID if (session or {}).get("payment_status") == PAID else OrderStatus.FAILED

def session_summary(session: Dict[str, Any]) -> Dict[str, Any]:
    """Résumé affichable/auditable: montant, devise et email saisi sur la page Stripe."""
    details = session.get("customer_details") or {}
    return {
        "id": session.get("id"),
        "amount_total": session.get("amount_total"),
        "currency": session.get("currency"),
        "customer_email": details.get("email") or session.get("customer_email"),
    }
