from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from backend.health.service import health_supabase_info
from backend.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root(request: Request):
    return {
        "ok": True,
        "upstream_configured": getattr(request.app.state, "upstream_configured", None),
        "rate_limit": rate_limit_health_info(request),
    }

@router.get("/supabase")
def health_supabase():
    return JSONResponse(health_supabase_info())
