"""
Adaptateur Stripe: centralise les appels et la configuration Stripe (PaymentIntent).
"""
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import stripe

from storefront.cart.totals import to_minor_units
from storefront.config import STRIPE_PUBLISHABLE_KEY, STRIPE_SECRET_KEY
from storefront.errors import (
    InvalidAmountError,
    PaymentDeclinedError,
    PaymentError,
    ProviderNotConfiguredError,
    ProviderUnavailableError,
)
from .base import (
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_SUCCEEDED,
    PaymentConfirmation,
    PaymentProvider,
    PaymentRequest,
)
from .retry import call_with_retries

logger = logging.getLogger(__name__)

# module storefront.payments.stripe_client
def require_stripe(secret_key: str = STRIPE_SECRET_KEY):
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key avec la clé secrète.
    - Soulève ProviderNotConfiguredError si la clé est absente.
    """
    if not secret_key:
        raise ProviderNotConfiguredError("STRIPE_SECRET_KEY manquant", provider="stripe")
    stripe.api_key = secret_key
    return stripe

def translate_stripe_error(e: Exception) -> PaymentError:
    """Traduit une exception du SDK Stripe en erreur typée (sans exposer le message brut)."""
    if isinstance(e, stripe.CardError):
        return PaymentDeclinedError(provider="stripe")
    if isinstance(e, (stripe.APIConnectionError, stripe.RateLimitError)):
        return ProviderUnavailableError(provider="stripe")
    if isinstance(e, (stripe.AuthenticationError, stripe.PermissionError)):
        return ProviderNotConfiguredError("Clé Stripe refusée", provider="stripe")
    if isinstance(e, stripe.InvalidRequestError) and getattr(e, "param", None) in ("amount", "currency"):
        return InvalidAmountError(provider="stripe")
    if isinstance(e, stripe.APIError):
        return ProviderUnavailableError(provider="stripe")
    return PaymentError(provider="stripe")


class StripeProvider(PaymentProvider):
    name = "stripe"
    label = "Stripe"

    def __init__(
        self,
        *,
        secret_key: str = STRIPE_SECRET_KEY,
        publishable_key: str = STRIPE_PUBLISHABLE_KEY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.secret_key = secret_key
        self.publishable_key = publishable_key
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(self.secret_key and self.publishable_key)

    def _call(self, fn: Callable[[], Any], operation: str) -> Any:
        def _attempt():
            try:
                return fn()
            except stripe.StripeError as e:
                logger.warning(
                    "payments.stripe.error op=%s kind=%s code=%s request_id=%s",
                    operation, type(e).__name__, getattr(e, "code", None), getattr(e, "request_id", None),
                )
                raise translate_stripe_error(e)
        return call_with_retries(_attempt, operation=operation, sleep=self._sleep)

    def create_payment_request(self, order_total: Decimal, currency: str, idempotency_key: str, **options: Any) -> PaymentRequest:
        """
        Crée un PaymentIntent (montant en centimes) et renvoie le client_secret au front.
        La clé d'idempotence est transmise au SDK: un rejeu ne crée pas de second PaymentIntent.
        """
        currency = self.check_amount(order_total, currency)
        require_stripe(self.secret_key)
        amount = to_minor_units(order_total)
        intent = self._call(
            lambda: stripe.PaymentIntent.create(
                amount=amount,
                currency=currency.lower(),
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
            ),
            operation="stripe.create_payment_intent",
        )
        logger.info("payments.stripe.intent_created id=%s amount=%s currency=%s", intent.id, amount, currency)
        return PaymentRequest(
            provider=self.name,
            provider_reference_id=intent.id,
            client_parameters={"clientSecret": intent.client_secret},
            raw={"id": intent.id, "status": intent.status},
        )

    def confirm_payment(self, provider_reference_id: str, evidence: Optional[Dict[str, Any]] = None) -> PaymentConfirmation:
        """
        Vérifie l'état d'un PaymentIntent (retour de redirection Stripe vers /success).
        - succeeded -> succeeded; processing/requires_action/requires_capture -> pending
        - requires_payment_method -> PaymentDeclinedError; canceled -> failed
        """
        intent_id = (provider_reference_id or "").strip()
        if not intent_id:
            raise PaymentError("payment_intent manquant", provider=self.name)
        require_stripe(self.secret_key)
        intent = self._call(lambda: stripe.PaymentIntent.retrieve(intent_id), operation="stripe.retrieve_payment_intent")
        intent_status = str(intent.status or "")
        if intent_status == "succeeded":
            status = STATUS_SUCCEEDED
        elif intent_status == "requires_payment_method":
            raise PaymentDeclinedError("Payment failed. Please try a different payment method.", provider=self.name)
        elif intent_status in ("processing", "requires_action", "requires_confirmation", "requires_capture"):
            status = STATUS_PENDING
        else:
            status = STATUS_FAILED
        logger.info("payments.stripe.intent_checked id=%s status=%s", intent_id, intent_status)
        return PaymentConfirmation(
            provider=self.name,
            status=status,
            normalized_transaction_id=intent_id,
            raw={"id": intent_id, "status": intent_status},
        )
