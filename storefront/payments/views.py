import logging
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from storefront.cart.store import CartStore, get_cart_id, get_cart_store
from storefront.cart.totals import compute_totals, parse_amount
from storefront.config import DEFAULT_CURRENCY
from storefront.errors import InvalidAmountError
from storefront.utils.rate_limit import optional_rate_limit
from .base import PaymentProvider
from .mastercard import MockMastercardProvider
from .registry import get_providers, provider_dependency

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments API"])

IDEMPOTENCY_HEADER = "Idempotency-Key"


class PaymentIntentBody(BaseModel):
    """Montant en centimes (optionnel: total du panier de session sinon)."""
    amount: Optional[int] = None
    currency: Optional[str] = None


class MastercardSessionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Any] = None
    currency: Optional[str] = None
    order_id: Optional[str] = Field(default=None, alias="orderId")


class MastercardResultBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    result_indicator: Optional[str] = Field(default=None, alias="resultIndicator")


class MastercardSimulationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    approve: bool = True


# module storefront.payments.views
def _idempotency_key(request: Request) -> str:
    return (request.headers.get(IDEMPOTENCY_HEADER) or "").strip() or uuid4().hex

def _cart_total(request: Request, store: CartStore) -> Decimal:
    return compute_totals(store.get(get_cart_id(request))).total

@router.get("/api/payments/providers")
def list_payment_providers(request: Request) -> Dict[str, Any]:
    """Prestataires activés (ordre d'affichage) et état de leur configuration."""
    providers = get_providers(request)
    return {
        "success": True,
        "currency": DEFAULT_CURRENCY,
        "providers": [p.describe() for p in providers.values()],
    }

# --- PayPal ---
@router.post("/api/orders", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_paypal_order(
    request: Request,
    store: CartStore = Depends(get_cart_store),
    provider: PaymentProvider = Depends(provider_dependency("paypal")),
):
    """
    Crée une commande PayPal pour le total du panier de session.
    - Retour: JSON PayPal brut (dont l'id attendu par le SDK JS) et son code HTTP
    - Erreurs: 400 invalid_amount (panier vide), 502/503 selon l'erreur prestataire
    """
    total = _cart_total(request, store)
    payment = provider.create_payment_request(total, DEFAULT_CURRENCY, _idempotency_key(request))
    return JSONResponse(payment.raw or {"id": payment.provider_reference_id}, status_code=payment.http_status)

@router.post("/api/orders/{order_id}/capture", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def capture_paypal_order(order_id: str, provider: PaymentProvider = Depends(provider_dependency("paypal"))):
    confirmation = provider.confirm_payment(order_id)
    return JSONResponse(confirmation.raw, status_code=confirmation.http_status)

# --- Stripe ---
@router.post("/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(
    request: Request,
    body: Optional[PaymentIntentBody] = None,
    store: CartStore = Depends(get_cart_store),
    provider: PaymentProvider = Depends(provider_dependency("stripe")),
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent Stripe.
    - Entrée JSON: {"amount": <centimes>} (sinon total du panier de session)
    - Retour: {"clientSecret": "..."}; erreurs: {"success": false, "error", "type"}
    """
    body = body or PaymentIntentBody()
    if body.amount is not None:
        if body.amount <= 0:
            raise InvalidAmountError("Le montant doit être supérieur à 0", provider=provider.name)
        total = Decimal(body.amount) / 100
    else:
        total = _cart_total(request, store)
    payment = provider.create_payment_request(total, body.currency or DEFAULT_CURRENCY, _idempotency_key(request))
    return {"clientSecret": payment.client_parameters.get("clientSecret")}

# --- Mastercard (simulé) ---
@router.post("/api/mastercard/create-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_mastercard_session(
    request: Request,
    body: MastercardSessionBody,
    store: CartStore = Depends(get_cart_store),
    provider: PaymentProvider = Depends(provider_dependency("mastercard")),
) -> Dict[str, Any]:
    total = parse_amount(body.amount) if body.amount is not None else _cart_total(request, store)
    order_id = (body.order_id or "").strip() or _idempotency_key(request)
    payment = provider.create_payment_request(total, body.currency or DEFAULT_CURRENCY, order_id)
    return {"success": True, **payment.client_parameters}

@router.post("/api/mastercard/process-result")
def process_mastercard_result(
    body: MastercardResultBody,
    provider: PaymentProvider = Depends(provider_dependency("mastercard")),
) -> Dict[str, Any]:
    """Retour du Hosted Checkout: compare resultIndicator au successIndicator de la session."""
    confirmation = provider.confirm_payment(body.session_id, {"resultIndicator": body.result_indicator})
    return {
        "success": True,
        "status": confirmation.status,
        "orderId": confirmation.normalized_transaction_id,
    }

@router.post("/api/mastercard/simulate-payment", include_in_schema=False)
def simulate_mastercard_payment(
    body: MastercardSimulationBody,
    provider: PaymentProvider = Depends(provider_dependency("mastercard")),
) -> Dict[str, Any]:
    """
    Remplace la page de paiement du gateway: renvoie le resultIndicator qu'il aurait transmis
    (le bon si approve=true, un indicateur quelconque sinon).
    """
    indicator = None
    if isinstance(provider, MockMastercardProvider):
        indicator = provider.success_indicator_for(body.session_id)
    if indicator is None:
        raise HTTPException(status_code=404, detail="Session Mastercard inconnue")
    return {"success": True, "sessionId": body.session_id, "resultIndicator": indicator if body.approve else uuid4().hex[:16]}
