"""
Middlewares transverses de l’application.
- register_basic_middlewares: CORS permissif (front hébergé séparément) et confiance en X-Forwarded-*.
- register_security_middleware: en-têtes de sécurité sur les réponses JSON.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
try:
    from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware
except Exception:
    ProxyHeadersMiddleware = None
from backend.config import CORS_ORIGINS, CORS_ALLOW_HEADERS

def register_basic_middlewares(app: FastAPI) -> None:
    """
    Ajoute les middlewares « de base »:
    - CORSMiddleware: répond aux pre-flights (OPTIONS + Access-Control-Request-Method).
      Pas de cookies: l'identité passe par Authorization/authToken, donc allow_credentials=False.
    - ProxyHeadersMiddleware (si dispo): fait confiance aux en-têtes du proxy (x-forwarded-*).
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    if ProxyHeadersMiddleware:
        app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        # Réponses de paiement: jamais en cache
        if request.url.path.startswith("/api/v1/payments"):
            response.headers["Cache-Control"] = "no-store"
        return response
