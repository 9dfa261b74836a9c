from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from storefront.payments.registry import get_providers
from storefront.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/providers")
def health_providers(request: Request):
    providers = get_providers(request)
    return {
        "ok": all(p.is_configured() for p in providers.values()),
        "providers": [p.describe() for p in providers.values()],
        "invoices": len(request.app.state.crypto_service.store),
    }

@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return JSONResponse(rate_limit_health_info(request))
