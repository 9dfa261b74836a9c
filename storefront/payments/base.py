"""
Interface commune des prestataires de paiement.

Chaque variante (PayPal, Stripe, Mastercard mock, Coinremitter mock) expose:
- create_payment_request(order_total, currency, idempotency_key) -> PaymentRequest
- confirm_payment(provider_reference_id, evidence) -> PaymentConfirmation
Les erreurs sont toujours des sous-classes de storefront.errors.PaymentError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from storefront.cart.totals import MAX_AMOUNT
from storefront.errors import InvalidAmountError, ProviderNotConfiguredError, UnsupportedCurrencyError

SUPPORTED_FIAT = {"USD", "EUR", "GBP"}

# Statuts normalisés d'une confirmation
STATUS_SUCCEEDED = "succeeded"
STATUS_PENDING = "pending"
STATUS_FAILED = "failed"


@dataclass
class PaymentRequest:
    provider: str
    provider_reference_id: str
    client_parameters: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    http_status: int = 200


@dataclass
class PaymentConfirmation:
    provider: str
    status: str
    normalized_transaction_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    http_status: int = 200

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCEEDED


class PaymentProvider(ABC):
    name: str = ""
    label: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        """Vrai si les identifiants nécessaires sont présents."""

    @abstractmethod
    def create_payment_request(self, order_total: Decimal, currency: str, idempotency_key: str, **options: Any) -> PaymentRequest:
        ...

    @abstractmethod
    def confirm_payment(self, provider_reference_id: str, evidence: Optional[Dict[str, Any]] = None) -> PaymentConfirmation:
        ...

    def require_configured(self) -> None:
        if not self.is_configured():
            raise ProviderNotConfiguredError(provider=self.name)

    def check_amount(self, order_total: Decimal, currency: str) -> str:
        """Valide montant/devise avant tout appel distant; renvoie la devise normalisée."""
        if order_total is None or not order_total.is_finite() or order_total <= 0:
            raise InvalidAmountError("Le montant doit être supérieur à 0", provider=self.name)
        if order_total > MAX_AMOUNT:
            raise InvalidAmountError(f"Montant trop élevé (maximum {MAX_AMOUNT})", provider=self.name)
        normalized = (currency or "").upper()
        if normalized not in SUPPORTED_FIAT:
            raise UnsupportedCurrencyError(f"Devise non supportée: {currency}", provider=self.name)
        return normalized

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "label": self.label, "configured": self.is_configured()}
