from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from storefront.config import DEFAULT_CURRENCY
from storefront.errors import ProviderNotConfiguredError
from storefront.utils.rate_limit import optional_rate_limit
from .service import CryptoPaymentService

router = APIRouter(prefix="/api/coinremitter", tags=["Crypto API"])


class CreateInvoiceBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[Any] = None
    currency: str = DEFAULT_CURRENCY
    crypto: Optional[str] = None
    order_id: Optional[str] = Field(default=None, alias="orderId")


class VerifyTransactionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: str = Field(alias="invoiceId")
    transaction_hash: str = Field(default="", alias="transactionHash")


# module storefront.crypto.views
def _enabled(request: Request) -> bool:
    return "coinremitter" in request.app.state.providers

def get_crypto_service(request: Request) -> CryptoPaymentService:
    if not _enabled(request):
        raise ProviderNotConfiguredError("Paiement crypto désactivé", provider="coinremitter")
    return request.app.state.crypto_service

@router.get("/check-availability")
def check_availability(request: Request) -> Dict[str, Any]:
    """Cryptomonnaies proposées; success=false si le paiement crypto est désactivé."""
    if not _enabled(request):
        return {"success": False, "availableCryptos": []}
    cryptos = request.app.state.crypto_service.available_cryptos()
    return {"success": bool(cryptos), "availableCryptos": cryptos}

@router.post("/create-invoice", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_invoice(body: CreateInvoiceBody, service: CryptoPaymentService = Depends(get_crypto_service)) -> Dict[str, Any]:
    """
    Crée une invoice crypto (adresse de dépôt, montant converti, QR code, échéance à 15 min).
    - Entrée JSON: {"amount", "currency", "crypto", "orderId"}
    - Erreurs: 400 invalid_amount / unsupported_currency, aucune invoice créée
    """
    invoice = service.create_invoice(body.amount, body.currency, body.crypto, body.order_id)
    return {"success": True, "invoice": invoice.to_invoice_dict(service.clock())}

@router.get("/payment-status/{invoice_id}")
def payment_status(invoice_id: str, service: CryptoPaymentService = Depends(get_crypto_service)) -> Dict[str, Any]:
    """Une consultation de statut (expiration, détection, confirmations). 404 si invoice inconnue."""
    invoice = service.check_status(invoice_id)
    return invoice.to_status_dict(service.clock())

@router.post("/verify-transaction", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def verify_transaction(body: VerifyTransactionBody, service: CryptoPaymentService = Depends(get_crypto_service)) -> Dict[str, Any]:
    result = service.verify_transaction(body.invoice_id, body.transaction_hash)
    return result.to_dict(service.clock())
