"""
Registre central des routers.
- API v1: payments (create-checkout, verify-payment)
- Health: health_router
"""
from fastapi import FastAPI
from backend.payments import views as payments_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """Agrège tous les routers de l’application (préfixes distincts, ordre sans impact)."""
    app.include_router(payments_views.router)
    app.include_router(health_router)
