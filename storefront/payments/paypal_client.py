"""
Adaptateur PayPal: Orders API v2 (création + capture) via requests.
- Jeton OAuth2 client_credentials mis en cache jusqu'à son expiration
- PayPal-Request-Id = clé d'idempotence (PayPal déduplique côté serveur)
- Erreurs HTTP traduites en erreurs typées (storefront.errors)
"""
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

import requests

from storefront.config import (
    PAYPAL_API_BASE,
    PAYPAL_CLIENT_ID,
    PAYPAL_CLIENT_SECRET,
    PAYMENT_HTTP_TIMEOUT,
)
from storefront.errors import (
    InvalidAmountError,
    PaymentDeclinedError,
    PaymentError,
    ProviderNotConfiguredError,
    ProviderUnavailableError,
    UnsupportedCurrencyError,
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

# Codes "issue" renvoyés par PayPal (details[].issue)
DECLINE_ISSUES = {"INSTRUMENT_DECLINED", "TRANSACTION_REFUSED", "PAYER_CANNOT_PAY", "PAYER_ACTION_REQUIRED"}
AMOUNT_ISSUES = {"DECIMAL_PRECISION", "AMOUNT_MISMATCH", "INVALID_PARAMETER_VALUE", "CANNOT_BE_ZERO_OR_NEGATIVE"}
CURRENCY_ISSUES = {"CURRENCY_NOT_SUPPORTED", "INVALID_CURRENCY_CODE"}

# Marge avant expiration du jeton (secondes)
TOKEN_EXPIRY_MARGIN = 60

# module storefront.payments.paypal_client
def _issues(payload: Dict[str, Any]) -> set:
    return {str(d.get("issue") or "") for d in (payload.get("details") or []) if isinstance(d, dict)}

def _json_or_empty(resp: requests.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
        return data if isinstance(data, dict) else {}
    except ValueError:
        return {}


class PayPalProvider(PaymentProvider):
    name = "paypal"
    label = "PayPal"

    def __init__(
        self,
        *,
        client_id: str = PAYPAL_CLIENT_ID,
        client_secret: str = PAYPAL_CLIENT_SECRET,
        api_base: str = PAYPAL_API_BASE,
        timeout: float = PAYMENT_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # --- HTTP bas niveau ---
    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        """Un seul appel HTTP; réseau/timeout/429/5xx -> ProviderUnavailableError (rejouable)."""
        url = f"{self.api_base}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.Timeout, requests.ConnectionError) as e:
            logger.warning("payments.paypal.network_error method=%s path=%s error=%s", method, path, type(e).__name__)
            raise ProviderUnavailableError(provider=self.name)
        if resp.status_code == 429 or resp.status_code >= 500:
            logger.warning("payments.paypal.transient status=%s path=%s", resp.status_code, path)
            raise ProviderUnavailableError(provider=self.name)
        return resp

    def _access_token(self) -> str:
        if self._token and self._clock() < self._token_expires_at:
            return self._token
        self.require_configured()
        resp = call_with_retries(
            lambda: self._send(
                "POST",
                "/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
            ),
            operation="paypal.oauth",
            sleep=self._sleep,
        )
        if resp.status_code in (400, 401, 403):
            logger.error("payments.paypal.oauth_rejected status=%s", resp.status_code)
            raise ProviderNotConfiguredError("Identifiants PayPal refusés", provider=self.name)
        data = _json_or_empty(resp)
        token = data.get("access_token")
        if not token:
            raise PaymentError("Réponse OAuth PayPal invalide", provider=self.name)
        self._token = token
        self._token_expires_at = self._clock() + max(0, int(data.get("expires_in") or 0) - TOKEN_EXPIRY_MARGIN)
        return token

    def _api_call(self, method: str, path: str, *, json: Dict[str, Any], request_id: str, operation: str) -> requests.Response:
        token = self._access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "PayPal-Request-Id": request_id,
            "Prefer": "return=representation",
        }
        resp = call_with_retries(
            lambda: self._send(method, path, json=json, headers=headers),
            operation=operation,
            sleep=self._sleep,
        )
        if resp.status_code == 401:
            self._token = None
            raise ProviderNotConfiguredError("Jeton PayPal refusé", provider=self.name)
        if resp.status_code >= 400:
            self._raise_for_error(resp, operation)
        return resp

    def _raise_for_error(self, resp: requests.Response, operation: str) -> None:
        payload = _json_or_empty(resp)
        issues = _issues(payload)
        logger.warning(
            "payments.paypal.error op=%s status=%s name=%s issues=%s debug_id=%s",
            operation, resp.status_code, payload.get("name"), sorted(issues), payload.get("debug_id"),
        )
        if issues & DECLINE_ISSUES:
            raise PaymentDeclinedError(provider=self.name)
        if issues & CURRENCY_ISSUES:
            raise UnsupportedCurrencyError(provider=self.name)
        if issues & AMOUNT_ISSUES:
            raise InvalidAmountError(provider=self.name)
        if resp.status_code == 404:
            raise PaymentError("Commande PayPal introuvable", provider=self.name)
        raise PaymentError(provider=self.name)

    # --- Interface PaymentProvider ---
    def create_payment_request(self, order_total: Decimal, currency: str, idempotency_key: str, **options: Any) -> PaymentRequest:
        """
        Crée une commande PayPal (intent CAPTURE) pour le total du panier.
        Retour: PaymentRequest avec l'orderID et le JSON PayPal brut (renvoyé au SDK JS).
        """
        currency = self.check_amount(order_total, currency)
        self.require_configured()
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": idempotency_key,
                    "amount": {"currency_code": currency, "value": f"{order_total:.2f}"},
                }
            ],
        }
        resp = self._api_call("POST", "/v2/checkout/orders", json=body, request_id=idempotency_key, operation="paypal.create_order")
        data = _json_or_empty(resp)
        order_id = str(data.get("id") or "")
        if not order_id:
            raise PaymentError("Réponse PayPal sans identifiant de commande", provider=self.name)
        logger.info("payments.paypal.order_created order_id=%s amount=%s currency=%s", order_id, order_total, currency)
        return PaymentRequest(
            provider=self.name,
            provider_reference_id=order_id,
            client_parameters={"orderID": order_id},
            raw=data,
            http_status=resp.status_code,
        )

    def confirm_payment(self, provider_reference_id: str, evidence: Optional[Dict[str, Any]] = None) -> PaymentConfirmation:
        """
        Capture une commande PayPal approuvée par l'acheteur.
        - COMPLETED -> succeeded, PENDING -> pending, DECLINED -> PaymentDeclinedError
        """
        self.require_configured()
        order_id = (provider_reference_id or "").strip()
        if not order_id:
            raise PaymentError("orderID manquant", provider=self.name)
        resp = self._api_call(
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            json={},
            request_id=f"capture-{order_id}",
            operation="paypal.capture_order",
        )
        data = _json_or_empty(resp)
        capture = self._first_capture(data)
        capture_status = str(capture.get("status") or data.get("status") or "").upper()
        if capture_status == "DECLINED":
            logger.warning("payments.paypal.capture_declined order_id=%s", order_id)
            raise PaymentDeclinedError(provider=self.name)
        if capture_status == "COMPLETED":
            status = STATUS_SUCCEEDED
        elif capture_status == "PENDING":
            status = STATUS_PENDING
        else:
            status = STATUS_FAILED
        logger.info("payments.paypal.captured order_id=%s status=%s", order_id, capture_status)
        return PaymentConfirmation(
            provider=self.name,
            status=status,
            normalized_transaction_id=capture.get("id") or order_id,
            raw=data,
            http_status=resp.status_code,
        )

    @staticmethod
    def _first_capture(data: Dict[str, Any]) -> Dict[str, Any]:
        for unit in data.get("purchase_units") or []:
            captures = ((unit or {}).get("payments") or {}).get("captures") or []
            if captures:
                return captures[0] or {}
        return {}
