import logging
from typing import Optional

from backend.config import GUEST_EMAIL
from .models import CheckoutIdentity
from .repository import get_user_from_access_token as _repo_get_user_from_token

logger = logging.getLogger(__name__)

def resolve_checkout_identity(access_token: Optional[str]) -> CheckoutIdentity:
    """Identité du checkout:
    - Token valide avec email -> utilisateur authentifié (id + email)
    - Token absent, invalide ou expiré -> invité (GUEST_EMAIL)
    L'authentification est indicative pour le checkout: un échec ne bloque jamais l'achat.
    """
    token = (access_token or "").strip()
    if not token:
        return CheckoutIdentity(GUEST_EMAIL)
    try:
        user = _repo_get_user_from_token(token)
    except Exception:
        logger.warning("auth.resolve_checkout_identity token refusé, checkout en invité", exc_info=True)
        return CheckoutIdentity(GUEST_EMAIL)

    email = (user or {}).get("email")
    uid = (user or {}).get("id")
    if not uid:
        return CheckoutIdentity(GUEST_EMAIL)
    # Compte sans email (ex: téléphone): commande rattachée au compte, contact invité
    logger.info("auth.resolve_checkout_identity utilisateur authentifié user_id=%s", uid)
    return CheckoutIdentity(email or GUEST_EMAIL, user_id=str(uid))
