# module storefront.crypto.models
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class InvoiceStatus(str, Enum):
    WAITING = "waiting"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (InvoiceStatus.CONFIRMED, InvoiceStatus.EXPIRED)


EXPIRED_REASON = "payment window expired"


@dataclass
class PaymentInvoice:
    """
    Une tentative de paiement crypto suivie par le serveur.
    Le statut n'avance que vers l'avant: waiting -> pending -> confirmed, ou vers expired.
    """
    invoice_id: str
    order_id: str
    requested_crypto_amount: Decimal
    crypto_currency: str
    fiat_amount: Decimal
    fiat_currency: str
    deposit_address: str
    network: str
    created_at: datetime
    expire_at: datetime
    confirmations_required: int
    qr_code: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.WAITING
    confirmations_observed: int = 0
    received_amount: Decimal = Decimal("0")
    transaction_hash: Optional[str] = None
    verification_attempts: int = 0
    last_verified_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    verification_method: Optional[str] = None

    def seconds_remaining(self, now: datetime) -> int:
        return max(0, int((self.expire_at - now).total_seconds()))

    def to_invoice_dict(self, now: datetime) -> Dict[str, Any]:
        """Représentation renvoyée à la création (affichage adresse, QR, compte à rebours)."""
        return {
            "invoice_id": self.invoice_id,
            "order_id": self.order_id,
            "total_amount": str(self.requested_crypto_amount),
            "crypto": self.crypto_currency,
            "fiat_amount": f"{self.fiat_amount:.2f}",
            "fiat_currency": self.fiat_currency,
            "address": self.deposit_address,
            "network": self.network,
            "qr_code": self.qr_code,
            "status": self.status.value,
            "confirmations_required": self.confirmations_required,
            "created_at": self.created_at.isoformat(),
            "expire_at": self.expire_at.isoformat(),
            "expire_in_seconds": self.seconds_remaining(now),
        }

    def to_status_dict(self, now: datetime) -> Dict[str, Any]:
        return {
            "success": True,
            "invoice_id": self.invoice_id,
            "order_id": self.order_id,
            "status": self.status.value,
            "payment_verified": self.status == InvoiceStatus.CONFIRMED,
            "crypto": self.crypto_currency,
            "network": self.network,
            "total_amount": str(self.requested_crypto_amount),
            "received_amount": str(self.received_amount),
            "confirmations": self.confirmations_observed,
            "confirmations_required": self.confirmations_required,
            "transaction_hash": self.transaction_hash,
            "verification_attempts": self.verification_attempts,
            "verification_method": self.verification_method,
            "last_verified": self.last_verified_at.isoformat() if self.last_verified_at else None,
            "failure_reason": self.failure_reason,
            "expire_at": self.expire_at.isoformat(),
            "seconds_remaining": self.seconds_remaining(now),
        }
