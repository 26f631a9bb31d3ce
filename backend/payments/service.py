"""
Cas d'usage 'payments': orchestre identité, commandes, line_items et Stripe.

create_checkout (saga):
  panier -> identité -> client Stripe -> commande 'pending' -> lignes
  -> session Stripe -> liaison session/commande
  Chaque étape échouée après l'insertion de la commande est compensée
  (suppression si sans lignes, sinon passage à 'failed').

verify_payment:
  session Stripe -> statut paid/failed -> transition conditionnelle de la commande
  -> commande + lignes pour la page de confirmation.
"""
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence
import logging

from backend.config import (
    CHECKOUT_CURRENCY,
    CHECKOUT_ALLOWED_COUNTRIES,
    CHECKOUT_SUCCESS_PATH,
    CHECKOUT_CANCEL_PATH,
    FRONTEND_URL,
)
from backend.errors import (
    EmptyCartError,
    MissingSessionError,
    OrderCreationError,
    OrderItemsCreationError,
    OrderUpdateError,
    ProviderError,
    SessionNotFoundError,
    TotalMismatchError,
    ValidationError,
)
from backend.auth.service import resolve_checkout_identity
from backend.cart.models import Address, CartLineItem, quantize_money
from backend.orders import repository as orders_repository
from backend.orders.models import OrderStatus, build_order_row, build_order_item_rows, can_transition
from . import line_items as line_items_logic
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)

def check_totals(
    items: Sequence[CartLineItem],
    total_price: Optional[Decimal],
    delivery_cost: Decimal,
    final_total: Optional[Decimal],
) -> Decimal:
    """
    Vérifie que les montants envoyés par le front correspondent au panier.
    Retour: le total final (sous-total des lignes + livraison), quantifié à 2 décimales.
    """
    delivery = quantize_money(delivery_cost or 0)
    if delivery < 0:
        raise ValidationError("Frais de livraison négatifs")
    subtotal = quantize_money(sum((it.subtotal for it in items), Decimal("0")))
    if total_price is not None and quantize_money(total_price) != subtotal:
        raise TotalMismatchError(f"Sous-total incohérent: reçu {quantize_money(total_price)}, attendu {subtotal}")
    expected = subtotal + delivery
    if final_total is not None and quantize_money(final_total) != expected:
        raise TotalMismatchError(f"Total incohérent: reçu {quantize_money(final_total)}, attendu {expected}")
    return expected

def _redirect_urls(origin: str) -> Dict[str, str]:
    return {
        "success_url": f"{origin}{CHECKOUT_SUCCESS_PATH}",
        "cancel_url": f"{origin}{CHECKOUT_CANCEL_PATH}",
    }

def _fail_order(order_id: str, reason: str) -> None:
    """Compensation: la commande ne pourra jamais être payée, on la clôt en 'failed'."""
    rows = orders_repository.transition_status(order_id, OrderStatus.FAILED)
    if rows:
        logger.warning("payments.checkout commande compensée en failed order_id=%s reason=%s", order_id, reason)
    else:
        logger.error("payments.checkout compensation impossible, commande pending orpheline order_id=%s reason=%s", order_id, reason)

def create_checkout(
    *,
    items: Sequence[CartLineItem],
    total_price: Optional[Decimal] = None,
    delivery_cost: Decimal = Decimal("0"),
    final_total: Optional[Decimal] = None,
    delivery_address: Optional[Address] = None,
    auth_token: Optional[str] = None,
    origin: Optional[str] = None,
) -> Dict[str, str]:
    """
    Démarre un checkout et retourne {"url", "orderId", "sessionId"}.
    - Rejette un panier vide ou des totaux incohérents avant tout effet de bord.
    - Un token invalide dégrade en checkout invité (jamais bloquant).
    - La commande est insérée une seule fois (pas de rejeu sans clé de déduplication).
    """
    if not items:
        raise EmptyCartError()
    total_amount = check_totals(items, total_price, delivery_cost, final_total)
    delivery = quantize_money(delivery_cost or 0)
    stripe_client.require_stripe()
    orders_repository.require_store()

    logger.info(
        "payments.checkout début items=%s subtotal=%s delivery=%s total=%s",
        len(items), total_amount - delivery, delivery, total_amount,
    )

    identity = resolve_checkout_identity(auth_token)
    customer_id = stripe_client.find_or_create_customer(identity.email)

    order = orders_repository.insert_order(build_order_row(
        user_id=identity.user_id,
        customer_email=identity.email,
        total_amount=total_amount,
        currency=CHECKOUT_CURRENCY,
        delivery_address=delivery_address,
    ))
    if not order or not order.get("id"):
        raise OrderCreationError("insert orders n'a retourné aucune ligne")
    order_id = str(order["id"])
    logger.info("payments.checkout commande créée order_id=%s email=%s", order_id, identity.email)

    created_items = orders_repository.insert_order_items(build_order_item_rows(order_id, items))
    if created_items is None:
        # Une commande ne doit jamais subsister sans lignes
        if not orders_repository.delete_order(order_id):
            _fail_order(order_id, "order_items insert failed")
        raise OrderItemsCreationError(f"insert order_items failed order_id={order_id}")

    urls = _redirect_urls((origin or FRONTEND_URL).rstrip("/"))
    try:
        session = stripe_client.create_session(
            customer_id=customer_id,
            line_items=line_items_logic.to_line_items(items, delivery, CHECKOUT_CURRENCY),
            success_url=urls["success_url"],
            cancel_url=urls["cancel_url"],
            metadata=line_items_logic.make_metadata(order_id, identity.email),
            idempotency_key=f"checkout-session-{order_id}",
            allowed_countries=CHECKOUT_ALLOWED_COUNTRIES,
        )
    except Exception:
        _fail_order(order_id, "session creation failed")
        raise

    session_id = session.get("id")
    if not session_id or not session.get("url"):
        _fail_order(order_id, "session without id/url")
        raise ProviderError(f"Stripe session sans id/url order_id={order_id}")

    if not orders_repository.link_session(order_id, session_id):
        stripe_client.expire_session(session_id)
        _fail_order(order_id, "session link failed")
        raise OrderUpdateError(f"link stripe_session_id failed order_id={order_id} session_id={session_id}")

    logger.info("payments.checkout session créée order_id=%s session_id=%s", order_id, session_id)
    return {"url": session["url"], "orderId": order_id, "sessionId": session_id}

def _apply_outcome(order_id: str, outcome: OrderStatus, session_id: str) -> Dict[str, Any]:
    """
    Transition conditionnelle pending -> outcome puis relecture de la commande.
    Retour: {"order": <commande|None>, "reconciliation": updated|unchanged|conflict|gap}
    - unchanged: déjà dans le même état terminal (rejeu idempotent)
    - conflict: état terminal différent, jamais écrasé
    - gap: écart base/Stripe à traiter manuellement
    """
    rows = orders_repository.transition_status(order_id, outcome)
    order = orders_repository.fetch_order_with_items(order_id)

    if rows is None:
        logger.error(
            "payments.verify écart de réconciliation (update échoué) order_id=%s session_id=%s outcome=%s",
            order_id, session_id, outcome.value,
        )
        return {"order": order, "reconciliation": "gap"}
    if rows:
        logger.info("payments.verify commande mise à jour order_id=%s status=%s", order_id, outcome.value)
        return {"order": order, "reconciliation": "updated"}

    if order is None:
        logger.error("payments.verify commande introuvable order_id=%s session_id=%s", order_id, session_id)
        return {"order": None, "reconciliation": "gap"}
    try:
        current = OrderStatus(order.get("status"))
    except ValueError:
        logger.error("payments.verify statut inconnu order_id=%s status=%s", order_id, order.get("status"))
        return {"order": order, "reconciliation": "gap"}
    if current is outcome:
        return {"order": order, "reconciliation": "unchanged"}
    if can_transition(current, outcome):
        # Toujours pending mais aucune ligne modifiée: mise à jour non appliquée
        logger.error(
            "payments.verify écart de réconciliation (transition non appliquée) order_id=%s session_id=%s outcome=%s",
            order_id, session_id, outcome.value,
        )
        return {"order": order, "reconciliation": "gap"}
    logger.error(
        "payments.verify conflit de statut, non écrasé order_id=%s session_id=%s persisted=%s provider=%s",
        order_id, session_id, current.value, outcome.value,
    )
    return {"order": order, "reconciliation": "conflict"}

def verify_payment(session_id: Optional[str]) -> Dict[str, Any]:
    """
    Réconcilie une session Stripe avec la commande liée (metadata.order_id).
    - Prestataire indisponible: erreur, aucune commande modifiée.
    - Échec base après lecture Stripe: réponse renvoyée quand même (statut Stripe fait foi).
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise MissingSessionError()

    session = stripe_client.get_session(session_id)
    if not session:
        raise SessionNotFoundError(f"session inconnue de Stripe session_id={session_id}")

    payment_status = session.get("payment_status") or ""
    outcome = meta.settlement_outcome(session)
    order_id = meta.extract_order_id(session)
    logger.info("payments.verify session_id=%s payment_status=%s order_id=%s", session_id, payment_status, order_id)

    if order_id:
        result = _apply_outcome(order_id, outcome, session_id)
    else:
        logger.error("payments.verify session sans metadata.order_id session_id=%s", session_id)
        result = {"order": None, "reconciliation": "gap"}

    return {
        "success": outcome is OrderStatus.PAID,
        "paymentStatus": payment_status,
        "order": result["order"],
        "session": meta.session_summary(session),
        "reconciliation": result["reconciliation"],
    }
