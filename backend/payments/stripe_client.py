"""
Adaptateur Stripe: interface étroite du prestataire de paiement.
- find_or_create_customer(email): client unique par email
- create_session(...): session Checkout hébergée
- get_session(session_id): lecture du statut de paiement (None si inconnue)
- expire_session(session_id): compensation si la commande ne peut pas être liée
Le reste du code ne manipule que des dicts: aucun objet SDK ne sort de ce module.
"""
import hashlib
import logging
from typing import Any, Dict, List, Optional

import stripe

from backend.config import STRIPE_SECRET_KEY, STRIPE_API_VERSION, STRIPE_TIMEOUT_SECONDS
from backend.errors import ProviderError, UpstreamConfigurationError

logger = logging.getLogger(__name__)

CUSTOMER_SOURCE = "kisan-marketplace"

# module backend.payments.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure clé, version d'API, timeout HTTP et un seul nouvel essai réseau
      (les écritures Stripe portent une clé d'idempotence, le rejeu est donc sûr).
    - Sans clé: UpstreamConfigurationError (erreur fatale, non rejouable).
    """
    if not STRIPE_SECRET_KEY:
        raise UpstreamConfigurationError("STRIPE_SECRET_KEY is not configured")
    if stripe.api_key != STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
        stripe.api_version = STRIPE_API_VERSION
        stripe.max_network_retries = 1
        stripe.default_http_client = stripe.RequestsClient(timeout=STRIPE_TIMEOUT_SECONDS)
    return stripe

def _to_plain(obj: Any) -> Any:
    """Convertit récursivement un StripeObject en dict/list Python."""
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_plain(v) for v in obj]
    return obj

def _email_key(email: str) -> str:
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:32]

def find_or_create_customer(email: str) -> str:
    """
    Retourne l'id du client Stripe associé à l'email, en le créant si absent.
    La création porte une clé d'idempotence dérivée de l'email: deux checkouts
    simultanés pour un même nouvel email obtiennent le même client.
    """
    require_stripe()
    try:
        customers = stripe.Customer.list(email=email, limit=1)
        existing = _to_plain(customers).get("data") or []
        if existing:
            logger.info("stripe.find_or_create_customer client existant customer_id=%s", existing[0].get("id"))
            return existing[0]["id"]
        customer = stripe.Customer.create(
            email=email,
            metadata={"source": CUSTOMER_SOURCE},
            idempotency_key=f"customer-{_email_key(email)}",
        )
        customer_id = _to_plain(customer)["id"]
        logger.info("stripe.find_or_create_customer client créé customer_id=%s", customer_id)
        return customer_id
    except stripe.StripeError as e:
        raise ProviderError(f"Stripe customer lookup/create failed: {e}") from e

def create_session(
    *,
    customer_id: str,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    idempotency_key: Optional[str] = None,
    allowed_countries: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode paiement).
    - metadata: {"order_id", "user_email"} (seul lien utilisé par la réconciliation)
    - success_url contient {CHECKOUT_SESSION_ID}, substitué par Stripe
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "customer": customer_id,
        "line_items": line_items,
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
        "phone_number_collection": {"enabled": True},
        "customer_update": {"address": "auto", "name": "auto"},
    }
    if allowed_countries:
        params["shipping_address_collection"] = {"allowed_countries": allowed_countries}
    if idempotency_key:
        params["idempotency_key"] = idempotency_key
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        raise ProviderError(f"Stripe session creation failed: {e}") from e
    return _to_plain(session)

def get_session(session_id: str) -> Optional[Dict[str, Any]]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    - None si Stripe ne connaît pas la session (resource_missing)
    - ProviderError pour toute autre erreur (réseau, authentification, ...)
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError as e:
        if getattr(e, "code", None) == "resource_missing":
            return None
        raise ProviderError(f"Stripe session retrieval failed: {e}") from e
    except stripe.StripeError as e:
        raise ProviderError(f"Stripe session retrieval failed: {e}") from e
    return _to_plain(session) if session else None

def expire_session(session_id: str) -> bool:
    """Expire une session encore ouverte (compensation). Retourne False en cas d'échec."""
    try:
        require_stripe()
        stripe.checkout.Session.expire(session_id)
        return True
    except (stripe.StripeError, UpstreamConfigurationError):
        logger.exception("stripe.expire_session failed session_id=%s", session_id)
        return False
