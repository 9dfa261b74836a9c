from decimal import Decimal

import pytest

from conftest import BTC_HASH
from storefront.crypto.verifier import TransactionLookup
from storefront.errors import PaymentDeclinedError, UnsupportedCurrencyError
from storefront.payments.coinremitter import MockCoinremitterProvider


@pytest.fixture
def provider(crypto_service):
    return MockCoinremitterProvider(crypto_service)


def test_describe_lists_cryptos(provider):
    info = provider.describe()
    assert info["name"] == "coinremitter"
    assert info["configured"] is True
    assert info["cryptos"] == ["BTC", "ETH", "LTC", "DOGE", "USDT"]

def test_create_uses_idempotency_key_as_order(provider):
    request = provider.create_payment_request(Decimal("100"), "USD", "order-7", crypto="btc")
    params = request.client_parameters
    assert params["order_id"] == "order-7"
    assert params["total_amount"] == "0.00153847"
    assert params["invoice_id"] == request.provider_reference_id
    assert params["expire_in_seconds"] == 900

def test_defaults_to_bitcoin(provider):
    assert provider.create_payment_request(Decimal("5"), "USD", "o").client_parameters["crypto"] == "BTC"

def test_unsupported_crypto(provider):
    with pytest.raises(UnsupportedCurrencyError):
        provider.create_payment_request(Decimal("5"), "USD", "o", crypto="XRP")

def test_confirm_by_status(provider, verifier, clock):
    invoice_id = provider.create_payment_request(Decimal("5"), "USD", "o").provider_reference_id
    assert provider.confirm_payment(invoice_id).status == "pending"

    invoice = provider.service.get_invoice(invoice_id)
    verifier.payments[invoice_id] = TransactionLookup(BTC_HASH, invoice.requested_crypto_amount, 3)
    confirmation = provider.confirm_payment(invoice_id)
    assert confirmation.succeeded
    assert confirmation.normalized_transaction_id == BTC_HASH
    assert confirmation.raw["payment_verified"] is True

def test_confirm_with_hash(provider, verifier):
    invoice_id = provider.create_payment_request(Decimal("5"), "USD", "o").provider_reference_id
    with pytest.raises(PaymentDeclinedError):
        provider.confirm_payment(invoice_id, {"transactionHash": BTC_HASH})
    verifier.known_hashes.add(BTC_HASH)
    assert provider.confirm_payment(invoice_id, {"transactionHash": BTC_HASH}).succeeded

def test_expired_invoice_is_declined(provider, clock):
    invoice_id = provider.create_payment_request(Decimal("5"), "USD", "o").provider_reference_id
    clock.advance(minutes=30)
    with pytest.raises(PaymentDeclinedError) as exc:
        provider.confirm_payment(invoice_id)
    assert exc.value.message == "payment window expired"
