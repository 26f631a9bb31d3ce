import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Request, Depends
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from backend.config import CORS_ORIGINS, CORS_ALLOW_HEADERS, FRONTEND_URL
from backend.cart.models import Address, CartLineItem
from backend.errors import CheckoutError
from backend.utils.security import get_bearer_token, client_origin
from backend.utils.rate_limit import optional_rate_limit
from backend.payments import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineItem] = Field(default_factory=list)
    total_price: Optional[Decimal] = Field(default=None, alias="totalPrice")
    delivery_cost: Decimal = Field(default=Decimal("0"), alias="deliveryCost")
    final_total: Optional[Decimal] = Field(default=None, alias="finalTotal")
    delivery_address: Optional[Address] = Field(default=None, alias="deliveryAddress")
    auth_token: Optional[str] = Field(default=None, alias="authToken")

class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")

# module backend.payments.views
@router.options("/create-checkout", include_in_schema=False)
@router.options("/verify-payment", include_in_schema=False)
def preflight() -> Response:
    """Sonde OPTIONS sans en-têtes CORS complets: réponse vide avec en-têtes permissifs."""
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)

@router.post("/create-checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout(body: CheckoutRequest, request: Request):
    """
    Crée une commande 'pending' et une session Stripe Checkout pour le panier.
    - Entrée JSON: { items, totalPrice, deliveryCost, finalTotal, deliveryAddress?, authToken? }
    - Identité: authToken du body, sinon Authorization: Bearer; invité si absent/invalide
    - Sécurité: rate limit (10 req / 60s)
    - Réponse: { url, orderId, sessionId }
    - Erreurs: 500 { error } (message public uniquement, détail en logs)
    """
    try:
        return payments_service.create_checkout(
            items=body.items,
            total_price=body.total_price,
            delivery_cost=body.delivery_cost,
            final_total=body.final_total,
            delivery_address=body.delivery_address,
            auth_token=body.auth_token or get_bearer_token(request),
            origin=client_origin(request, CORS_ORIGINS, FRONTEND_URL),
        )
    except CheckoutError:
        raise
    except Exception as e:
        logger.exception("Erreur create_checkout")
        raise CheckoutError(str(e)) from e

@router.post("/verify-payment")
def verify_payment(body: VerifyPaymentRequest):
    """
    Confirme le paiement au retour de Stripe (redirection avec session_id).
    - Lit la session Stripe, met à jour la commande liée (metadata.order_id)
    - Réponse: { success, paymentStatus, order, session, reconciliation }
    - Erreurs: 500 { error } (session manquante/inconnue, Stripe indisponible)
    """
    try:
        return payments_service.verify_payment(body.session_id)
    except CheckoutError:
        raise
    except Exception as e:
        logger.exception("Erreur verify_payment session_id=%s", body.session_id)
        raise CheckoutError(str(e)) from e
