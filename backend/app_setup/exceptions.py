"""
Gestionnaires d’exceptions utilisés par la factory.
- CheckoutError: HTTP 500 + {"error": message_public}, détail interne en logs uniquement.
- RequestValidationError: corps JSON invalide, même format {"error": ...}.
- HTTPException: conserve le code (ex: 429 du rate limit) mais au format {"error": ...}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from backend.errors import CheckoutError, ValidationError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    """
    Enregistre les handlers de normalisation des erreurs.
    Les messages internes ne sont jamais renvoyés tels quels au front.
    """
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        log = logger.warning if isinstance(exc, ValidationError) else logger.error
        log("%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.detail or exc.public_message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("%s %s -> corps invalide: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=500, content={"error": "Requête invalide"})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=getattr(exc, "headers", None))
