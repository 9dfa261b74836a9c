"""
Mastercard Hosted Checkout simulé.

Aucun appel au gateway: une "session" est créée en mémoire avec un successIndicator;
au retour du Hosted Checkout, le resultIndicator fourni est comparé à celui de la session.
"""
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from storefront.config import MASTERCARD_MERCHANT_ID, MASTERCARD_PASSWORD, MASTERCARD_USERNAME
from storefront.errors import InvalidAmountError, PaymentDeclinedError, PaymentError
from .base import STATUS_SUCCEEDED, PaymentConfirmation, PaymentProvider, PaymentRequest

logger = logging.getLogger(__name__)

API_VERSION = "73"


@dataclass
class HostedSession:
    id: str
    success_indicator: str
    order_id: str
    amount: Decimal
    currency: str
    created_at: datetime
    result: Optional[str] = None


class MockMastercardProvider(PaymentProvider):
    name = "mastercard"
    label = "Mastercard"

    def __init__(
        self,
        *,
        merchant_id: str = MASTERCARD_MERCHANT_ID,
        username: str = MASTERCARD_USERNAME,
        password: str = MASTERCARD_PASSWORD,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.merchant_id = merchant_id
        self.username = username
        self.password = password
        self._clock = clock
        self._sessions: Dict[str, HostedSession] = {}
        self._by_order: Dict[str, str] = {}
        self._lock = threading.Lock()

    def is_configured(self) -> bool:
        # Simulation: les identifiants sont informatifs, la session est créée même sans eux
        return bool(self.merchant_id and self.username and self.password)

    def create_payment_request(self, order_total: Decimal, currency: str, idempotency_key: str, **options: Any) -> PaymentRequest:
        """
        Crée (ou retrouve) la session Hosted Checkout d'une commande.
        - Même orderId, même montant et devise: session existante renvoyée
        - Même orderId avec un autre montant ou une autre devise: InvalidAmountError
        """
        currency = self.check_amount(order_total, currency)
        with self._lock:
            session = self._sessions.get(self._by_order.get(idempotency_key, ""))
            if session is not None and (session.amount != order_total or session.currency != currency):
                logger.warning(
                    "payments.mastercard.order_mismatch order_id=%s amount=%s/%s currency=%s/%s",
                    idempotency_key, session.amount, order_total, session.currency, currency,
                )
                raise InvalidAmountError(
                    "orderId déjà utilisé pour un autre montant ou une autre devise", provider=self.name
                )
            if session is None:
                session = HostedSession(
                    id=f"SESSION{secrets.token_hex(12).upper()}",
                    success_indicator=secrets.token_hex(8),
                    order_id=idempotency_key,
                    amount=order_total,
                    currency=currency,
                    created_at=self._clock(),
                )
                self._sessions[session.id] = session
                self._by_order[session.order_id] = session.id
        logger.info("payments.mastercard.session_created session_id=%s order_id=%s amount=%s", session.id, session.order_id, order_total)
        return PaymentRequest(
            provider=self.name,
            provider_reference_id=session.id,
            client_parameters={
                "session": {"id": session.id, "version": API_VERSION},
                "merchant": self.merchant_id or "TESTMERCHANT",
                "orderId": session.order_id,
            },
            # successIndicator reste côté serveur
            raw={"id": session.id, "version": API_VERSION},
        )

    def confirm_payment(self, provider_reference_id: str, evidence: Optional[Dict[str, Any]] = None) -> PaymentConfirmation:
        """
        Traite le retour du Hosted Checkout.
        - evidence = {"resultIndicator": "..."}; égal au successIndicator -> succeeded
        - sinon PaymentDeclinedError; session inconnue -> PaymentError
        """
        with self._lock:
            session = self._sessions.get((provider_reference_id or "").strip())
            if session is None:
                raise PaymentError("Session Mastercard inconnue", provider=self.name)
            result_indicator = str((evidence or {}).get("resultIndicator") or "")
            ok = bool(result_indicator) and secrets.compare_digest(result_indicator, session.success_indicator)
            session.result = STATUS_SUCCEEDED if ok else "declined"
        logger.info("payments.mastercard.result session_id=%s ok=%s", session.id, ok)
        if not ok:
            raise PaymentDeclinedError(provider=self.name)
        return PaymentConfirmation(
            provider=self.name,
            status=STATUS_SUCCEEDED,
            normalized_transaction_id=session.order_id,
            raw={"session_id": session.id, "order_id": session.order_id},
        )

    def success_indicator_for(self, session_id: str) -> Optional[str]:
        """resultIndicator que renverrait le gateway pour un paiement accepté."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.success_indicator if session else None
