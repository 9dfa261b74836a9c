"""
Pages HTML (Jinja2): accueil, panier, checkout, succès, échec.

La page /success vérifie le paiement avant d'afficher la confirmation:
- retour Stripe (?payment_intent=pi_...): PaymentIntent relu côté serveur
- paiement crypto (?invoice=...): l'invoice doit être confirmée
Un paiement non abouti redirige vers /failure; un paiement abouti vide le panier de la session.
"""
import logging
import urllib.parse
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.status import HTTP_303_SEE_OTHER

from storefront.cart.store import CartStore, get_cart_id, get_cart_store
from storefront.cart.totals import compute_totals
from storefront.catalog.products import list_products
from storefront.config import DEFAULT_CURRENCY
from storefront.crypto.models import InvoiceStatus
from storefront.errors import StorefrontError
from storefront.payments.base import STATUS_PENDING
from storefront.payments.registry import get_providers
from storefront.utils.templates import templates

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Pages"])

# module storefront.pages.views
def _failure_redirect(error: str, error_type: str) -> RedirectResponse:
    query = urllib.parse.urlencode({"error": error, "type": error_type})
    return RedirectResponse(url=f"/failure?{query}", status_code=HTTP_303_SEE_OTHER)

@router.get("/", response_class=HTMLResponse)
def index_page(request: Request):
    return templates.TemplateResponse(request, "index.html", {"products": list_products()})

@router.get("/cart", response_class=HTMLResponse)
def cart_page(request: Request, cart_id: str = Depends(get_cart_id), store: CartStore = Depends(get_cart_store)):
    totals = compute_totals(store.get(cart_id))
    return templates.TemplateResponse(request, "cart.html", {"cart": totals.to_dict()})

@router.get("/checkout", response_class=HTMLResponse)
def checkout_page(request: Request, cart_id: str = Depends(get_cart_id), store: CartStore = Depends(get_cart_store)):
    totals = compute_totals(store.get(cart_id))
    providers = get_providers(request)
    stripe_provider = providers.get("stripe")
    return templates.TemplateResponse(
        request,
        "checkout.html",
        {
            "cart": totals.to_dict(),
            "currency": DEFAULT_CURRENCY,
            "providers": [p.describe() for p in providers.values()],
            "paypal_client_id": getattr(providers.get("paypal"), "client_id", ""),
            "stripe_publishable_key": getattr(stripe_provider, "publishable_key", "") if stripe_provider else "",
        },
    )

@router.get("/success", response_class=HTMLResponse)
def success_page(
    request: Request,
    payment_intent: Optional[str] = None,
    invoice: Optional[str] = None,
    cart_id: str = Depends(get_cart_id),
    store: CartStore = Depends(get_cart_store),
):
    details = {"method": None, "reference": None, "status": "succeeded"}
    if payment_intent:
        provider = get_providers(request).get("stripe")
        if provider is None:
            return _failure_redirect("Stripe n'est pas activé", "provider_not_configured")
        try:
            confirmation = provider.confirm_payment(payment_intent)
        except StorefrontError as e:
            logger.warning("pages.success.stripe_rejected payment_intent=%s type=%s", payment_intent, e.error_type)
            return _failure_redirect(e.message, e.error_type)
        if not confirmation.succeeded and confirmation.status != STATUS_PENDING:
            return _failure_redirect("Payment could not be completed.", "payment_incomplete")
        details = {"method": "stripe", "reference": confirmation.normalized_transaction_id, "status": confirmation.status}
    elif invoice:
        try:
            paid = request.app.state.crypto_service.get_invoice(invoice)
        except StorefrontError as e:
            return _failure_redirect(e.message, e.error_type)
        if paid.status != InvoiceStatus.CONFIRMED:
            return _failure_redirect(paid.failure_reason or "Payment not confirmed", "payment_incomplete")
        details = {"method": paid.crypto_currency, "reference": paid.transaction_hash, "status": "succeeded"}

    # Paiement en cours de traitement (Stripe "processing"): le panier est conservé
    if details["status"] == "succeeded":
        store.clear(cart_id)
    return templates.TemplateResponse(request, "success.html", {"payment": details})

@router.get("/failure", response_class=HTMLResponse)
def failure_page(request: Request, error: Optional[str] = None, type: Optional[str] = None):
    return templates.TemplateResponse(
        request,
        "failure.html",
        {"error": error or "Payment failed. Please try again.", "error_type": type or "payment_error"},
    )
