"""
Variante Coinremitter (simulée) de PaymentProvider: délègue au CryptoPaymentService.
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from storefront.crypto.service import CryptoPaymentService
from storefront.errors import PaymentDeclinedError
from .base import STATUS_PENDING, STATUS_SUCCEEDED, PaymentConfirmation, PaymentProvider, PaymentRequest


class MockCoinremitterProvider(PaymentProvider):
    name = "coinremitter"
    label = "Crypto (Coinremitter)"

    def __init__(self, service: CryptoPaymentService):
        self.service = service

    def is_configured(self) -> bool:
        return self.service.is_configured()

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["cryptos"] = self.service.available_cryptos()
        return info

    def create_payment_request(self, order_total: Decimal, currency: str, idempotency_key: str, **options: Any) -> PaymentRequest:
        """
        Crée une invoice crypto. options["crypto"] choisit la cryptomonnaie (BTC par défaut).
        idempotency_key sert d'order_id.
        """
        invoice = self.service.create_invoice(
            amount=order_total,
            currency=currency,
            crypto=options.get("crypto") or "BTC",
            order_id=idempotency_key,
        )
        return PaymentRequest(
            provider=self.name,
            provider_reference_id=invoice.invoice_id,
            client_parameters=invoice.to_invoice_dict(self.service.clock()),
        )

    def confirm_payment(self, provider_reference_id: str, evidence: Optional[Dict[str, Any]] = None) -> PaymentConfirmation:
        """
        Avec evidence["transactionHash"]: vérification manuelle; sinon simple consultation de statut.
        """
        tx_hash = (evidence or {}).get("transactionHash")
        now = self.service.clock()
        if tx_hash:
            result = self.service.verify_transaction(provider_reference_id, tx_hash)
            if not result.verified:
                raise PaymentDeclinedError(result.error, provider=self.name)
            invoice = result.invoice
        else:
            invoice = self.service.check_status(provider_reference_id)
        if invoice.status.value == "confirmed":
            status = STATUS_SUCCEEDED
        elif invoice.status.value == "expired":
            raise PaymentDeclinedError(invoice.failure_reason, provider=self.name)
        else:
            status = STATUS_PENDING
        return PaymentConfirmation(
            provider=self.name,
            status=status,
            normalized_transaction_id=invoice.transaction_hash,
            raw=invoice.to_status_dict(now),
        )
