import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, List, Optional

import pytest
import requests
import stripe
from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.cart.store import CartStore
from storefront.crypto.repository import InMemoryInvoiceStore
from storefront.crypto.service import CryptoPaymentService
from storefront.crypto.verifier import TransactionLookup, TransactionVerifier
from storefront.payments.coinremitter import MockCoinremitterProvider
from storefront.payments.mastercard import MockMastercardProvider
from storefront.payments.paypal_client import PayPalProvider
from storefront.payments.stripe_client import StripeProvider

ALL_CRYPTOS = ["BTC", "ETH", "LTC", "DOGE", "USDT"]
BTC_HASH = "a" * 64
ETH_HASH = "0x" + "b" * 64

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


class FixedClock:
    """Horloge contrôlée par le test (UTC)."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class ScriptedVerifier(TransactionVerifier):
    """
    Vérificateur déterministe:
    - payments[invoice_id]: ce que find_payment "voit" sur la blockchain
    - known_hashes: hash acceptés par la vérification manuelle
    """

    def __init__(self):
        self.payments: Dict[str, TransactionLookup] = {}
        self.known_hashes: set = set()
        self.find_calls = 0
        self.lookup_calls = 0

    def find_payment(self, invoice, now):
        self.find_calls += 1
        return self.payments.get(invoice.invoice_id)

    def lookup_transaction(self, invoice, transaction_hash, now):
        self.lookup_calls += 1
        if transaction_hash not in self.known_hashes:
            return None
        return TransactionLookup(
            transaction_hash=transaction_hash,
            amount=invoice.requested_crypto_amount,
            confirmations=invoice.confirmations_required,
        )


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakePayPalSession:
    """
    Remplace requests.Session pour l'API PayPal.
    Réponses par défaut (token, création, capture) surchargeables via queue(path_suffix, réponse|exception).
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self._queued: Dict[str, List[Any]] = {}

    def queue(self, path_suffix: str, *responses: Any) -> None:
        self._queued.setdefault(path_suffix, []).extend(responses)

    def calls_to(self, path_suffix: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["url"].endswith(path_suffix)]

    def request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        for suffix, pending in self._queued.items():
            if url.endswith(suffix) and pending:
                item = pending.pop(0)
                if isinstance(item, Exception):
                    raise item
                return item
        if url.endswith("/v1/oauth2/token"):
            return FakeResponse(200, {"access_token": "tok-1", "expires_in": 3600})
        if url.endswith("/capture"):
            order_id = url.rsplit("/", 2)[-2]
            return FakeResponse(201, {
                "id": order_id,
                "status": "COMPLETED",
                "purchase_units": [{"payments": {"captures": [{"id": "CAPTURE-1", "status": "COMPLETED"}]}}],
            })
        if url.endswith("/v2/checkout/orders"):
            return FakeResponse(201, {"id": "ORDER-1", "status": "CREATED"})
        raise requests.ConnectionError(f"unexpected url {url}")


class FakeStripeIntents:
    """Remplace stripe.PaymentIntent (create/retrieve) et renvoie de vrais objets du SDK."""

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.status = "succeeded"
        self.create_error: Optional[Exception] = None
        self.retrieve_error: Optional[Exception] = None

    def create(self, **kwargs):
        self.created.append(kwargs)
        if self.create_error is not None:
            raise self.create_error
        n = len(self.created)
        return stripe.PaymentIntent.construct_from(
            {"id": f"pi_{n}", "client_secret": f"pi_{n}_secret_x", "status": "requires_payment_method"},
            "sk_test_x",
        )

    def retrieve(self, intent_id, **kwargs):
        if self.retrieve_error is not None:
            raise self.retrieve_error
        return stripe.PaymentIntent.construct_from({"id": intent_id, "status": self.status}, "sk_test_x")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))

@pytest.fixture
def verifier() -> ScriptedVerifier:
    return ScriptedVerifier()

@pytest.fixture
def crypto_service(clock, verifier) -> CryptoPaymentService:
    return CryptoPaymentService(
        InMemoryInvoiceStore(),
        verifier,
        cryptos=ALL_CRYPTOS,
        public_address="",
        api_key="key",
        password="pass",
        invoice_ttl=timedelta(minutes=15),
        clock=clock,
        qr_generator=None,
    )

@pytest.fixture
def paypal_session() -> FakePayPalSession:
    return FakePayPalSession()

@pytest.fixture
def stripe_intents(monkeypatch) -> FakeStripeIntents:
    fake = FakeStripeIntents()
    monkeypatch.setattr(stripe.PaymentIntent, "create", fake.create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", fake.retrieve)
    return fake

@pytest.fixture
def providers(crypto_service, paypal_session, stripe_intents):
    no_sleep = lambda s: None
    return {
        "paypal": PayPalProvider(client_id="client", client_secret="secret", api_base="https://paypal.test", session=paypal_session, sleep=no_sleep),
        "stripe": StripeProvider(secret_key="sk_test_x", publishable_key="pk_test_x", sleep=no_sleep),
        "mastercard": MockMastercardProvider(merchant_id="TESTMERCHANT", username="user", password="pass"),
        "coinremitter": MockCoinremitterProvider(crypto_service),
    }

@pytest.fixture
def app(crypto_service, providers):
    return create_app(cart_store=CartStore(), crypto_service=crypto_service, providers=providers)

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture
def sample_cart() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "name": "Gloves", "price": "19.99", "quantity": 2},
        {"id": 2, "name": "Lights", "price": 19.99, "quantity": 2},
        {"id": "3", "name": "Bell", "price": "19.99", "quantity": 2, "img": "/public/img/f65.svg"},
    ]
