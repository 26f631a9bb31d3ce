# module backend.app
from fastapi import FastAPI

from backend.app_setup.middlewares import register_basic_middlewares, register_security_middleware
from backend.app_setup.exceptions import register_exception_handlers
from backend.app_setup.routers import register_routers
from backend.app_setup.lifespan import lifespan

def create_app() -> FastAPI:
    """
    Crée et configure l’instance FastAPI de l’application.
    Étapes et ordre:
      1) register_basic_middlewares: CORS (pre-flight), ProxyHeaders.
      2) register_security_middleware: en-têtes de sécurité, no-store sur les paiements.
      3) register_exception_handlers: erreurs normalisées en {"error": ...}.
      4) register_routers: payments + health.
    Retourne:
      - FastAPI: l’application prête à être servie (ASGI).
    """
    app = FastAPI(title="Kisan Marketplace Checkout API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app

# App globale
app = create_app()
