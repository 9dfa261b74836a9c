"""
Limitation de débit optionnelle pour les endpoints qui créent des paiements.
- Clé: cookie de session (haché) sinon IP, plus le chemin
- LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire (app.state._rl_store)
- app.state.rate_limit_enabled=False: aucune limite
- sinon fastapi-limiter (Redis initialisé dans le lifespan)
"""
import hashlib
import logging
import os
import time
from typing import Any, Dict
from urllib.parse import urlparse

from fastapi import HTTPException, Request, Response
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

SESSION_COOKIE_NAME = "storefront_session"

logger = logging.getLogger(__name__)

# module storefront.utils.rate_limit
def _client_key(req: Request) -> str:
    token = req.cookies.get(SESSION_COOKIE_NAME)
    path = req.url.path
    if token:
        h = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"session:{h}:{path}"
    ip = req.client.host if req.client else "local"
    return f"ip:{ip}:{path}"

def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            now = time.time()
            key = _client_key(request)
            store = getattr(request.app.state, "_rl_store", {})
            hits = [t for t in store.get(key, []) if now - t < seconds]
            if len(hits) >= times:
                raise HTTPException(status_code=429, detail="Too Many Requests")
            hits.append(now)
            store[key] = hits
            request.app.state._rl_store = store
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        if getattr(FastAPILimiter, "redis", None) is None:
            return

        async def _identifier(req: Request) -> str:
            return _client_key(req)
        try:
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception as e:
            # Redis indisponible: pas de 429 côté client
            logger.warning("rate_limit.backend_error path=%s error=%s", request.url.path, e)
            return
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
    backend = "redis" if limiter_ready else None
    if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
        backend = "memory"

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }

    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if limiter_ready and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {
            "scheme": p.scheme,
            "host": p.hostname,
            "port": p.port,
        }
    return info
