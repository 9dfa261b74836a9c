"""
Registre central des routers.
- Pages: accueil, panier, checkout, succès/échec
- API: catalogue, panier, paiements (PayPal, Stripe, Mastercard), crypto (Coinremitter)
- Health
"""
from fastapi import FastAPI

from storefront.cart.views import router as cart_router
from storefront.catalog.views import router as catalog_router
from storefront.crypto.views import router as crypto_router
from storefront.health.router import router as health_router
from storefront.pages.views import router as pages_router
from storefront.payments.views import router as payments_router

def register_routers(app: FastAPI) -> None:
    # Pages web (HTML)
    app.include_router(pages_router)
    # API
    app.include_router(catalog_router)
    app.include_router(cart_router)
    app.include_router(payments_router)
    app.include_router(crypto_router)
    # Health & monitoring
    app.include_router(health_router)
