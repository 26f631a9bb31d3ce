from typing import Dict, Any
from fastapi import Request, Response, HTTPException
import os
import time
import hashlib
from backend.utils.security import get_bearer_token

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        def _client_key_from_request(req: Request) -> str:
            # Priorité: token Bearer (hashé) puis IP
            token = get_bearer_token(req)
            path = req.url.path
            if token:
                h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
                return f"user:{h}:{path}"
            ip = req.client.host if req.client else "local"
            return f"ip:{ip}:{path}"

        # Forcer le fallback mémoire en DEV si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _client_key_from_request(request)
            stores = getattr(request.app.state, "_rl_store", None)
            if stores is None:
                stores = request.app.state._rl_store = {}
            # Un compteur par fenêtre: les clés expirées de cette fenêtre sont purgées à chaque appel
            store = stores.setdefault(seconds, {})
            for stale in [k for k, ts in store.items() if now - ts[-1] >= seconds]:
                del store[stale]
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            return

        # Respecter le flag global
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        try:
            from fastapi_limiter.depends import RateLimiter
            async def _identifier(req: Request) -> str:
                return _client_key_from_request(req)
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # fastapi-limiter non initialisé ou Redis indisponible: pas de 429 en prod
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    try:
        from fastapi_limiter import FastAPILimiter
        ready = getattr(FastAPILimiter, "redis", None) is not None
    except Exception:
        ready = False
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": ready,
        "backend": "redis" if ready else None,
    }
