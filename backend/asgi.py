"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `backend.asgi:app`
  pour servir l’application FastAPI en mode ASGI.
- Toute la configuration (routes, middlewares, erreurs) est centralisée
  dans backend.app, ce fichier ne fait qu’exposer l’instance `app`.
"""

from backend.app import app

if __name__ == "__main__":
    # Exécution directe utile en développement local (uvicorn standalone).
    import os
    import uvicorn
    uvicorn.run(
        "backend.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
