"""
Factory d'application pour les entrypoints (storefront.asgi) et les tests.
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from typing import Dict, Optional

from fastapi import FastAPI

from storefront.cart.store import CartStore
from storefront.crypto.service import CryptoPaymentService, build_crypto_service
from storefront.payments.base import PaymentProvider
from storefront.payments.registry import build_providers
from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware
from .routers import register_routers
from .routes import register_routes
from .security import register_security_middleware
from .static import mount_static_files

def create_app(
    *,
    cart_store: Optional[CartStore] = None,
    crypto_service: Optional[CryptoPaymentService] = None,
    providers: Optional[Dict[str, PaymentProvider]] = None,
) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - l'état partagé: paniers, service crypto, prestataires actifs (injectables pour les tests)
      - middlewares de base, statiques, sécurité, no-cache
      - gestionnaires d'exceptions et routes simples
      - tous les routers (pages, API, health)
    """
    app = FastAPI(title="Storefront", lifespan=lifespan)
    app.state.cart_store = cart_store if cart_store is not None else CartStore()
    app.state.crypto_service = crypto_service if crypto_service is not None else build_crypto_service()
    app.state.providers = providers if providers is not None else build_providers(app.state.crypto_service)

    register_basic_middlewares(app)
    mount_static_files(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    return app
