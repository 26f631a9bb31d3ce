from fastapi import Request
from typing import Optional

def get_bearer_token(request: Request) -> Optional[str]:
    """Extrait le token de l'en-tête Authorization: Bearer <token> (None si absent)."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None

def client_origin(request: Request, allowed_origins: list, default: str) -> str:
    """
    Origine du front pour les URLs de redirection Stripe.
    - Utilise l'en-tête Origin s'il est autorisé par CORS_ORIGINS (ou si CORS est ouvert)
    - Sinon retombe sur FRONTEND_URL
    """
    origin = (request.headers.get("origin") or "").rstrip("/")
    if origin.startswith(("http://", "https://")) and ("*" in allowed_origins or origin in allowed_origins):
        return origin
    return default
