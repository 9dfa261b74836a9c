"""
Middlewares transverses de l'application.
- register_basic_middlewares: session (porte le panier), CORS, TrustedHost.
- register_no_cache_middleware: empêche la mise en cache du panier et du tunnel de paiement.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from storefront.config import ALLOWED_HOSTS, COOKIE_SECURE, CORS_ORIGINS, SESSION_SECRET_KEY
from storefront.utils.rate_limit import SESSION_COOKIE_NAME

NO_CACHE_PREFIXES = ("/cart", "/checkout", "/success", "/api/cart", "/api/coinremitter")

def register_basic_middlewares(app: FastAPI) -> None:
    """
    Ajoute les middlewares « de base »:
    - SessionMiddleware: cookie signé portant l'identifiant du panier.
    - CORSMiddleware: autorise les origines définies (dev/prod).
    - TrustedHostMiddleware: limite les hôtes acceptés.
    """
    app.add_middleware(
        SessionMiddleware,
        secret_key=SESSION_SECRET_KEY,
        session_cookie=SESSION_COOKIE_NAME,
        same_site="lax",
        https_only=COOKIE_SECURE,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=ALLOWED_HOSTS + ["*"] if "*" in CORS_ORIGINS else ALLOWED_HOSTS,
    )

def register_no_cache_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def no_cache_for_checkout(request: Request, call_next):
        response = await call_next(request)
        path = request.url.path.rstrip("/")
        if request.method == "GET" and path.startswith(NO_CACHE_PREFIXES):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"
        return response
