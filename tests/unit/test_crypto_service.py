from decimal import Decimal

import pytest

from conftest import BTC_HASH, ETH_HASH
from storefront.crypto.models import EXPIRED_REASON, InvoiceStatus
from storefront.crypto.verifier import TransactionLookup
from storefront.errors import InvalidAmountError, InvoiceNotFoundError, UnsupportedCurrencyError


def _pay(verifier, invoice, confirmations, amount=None, tx_hash=BTC_HASH):
    verifier.payments[invoice.invoice_id] = TransactionLookup(
        transaction_hash=tx_hash,
        amount=invoice.requested_crypto_amount if amount is None else amount,
        confirmations=confirmations,
    )


# --- Création ---
def test_create_invoice_converts_and_schedules_expiry(crypto_service, clock):
    invoice = crypto_service.create_invoice("100", "USD", "btc", order_id="ORDER_1")
    assert invoice.crypto_currency == "BTC"
    assert invoice.requested_crypto_amount == Decimal("0.00153847")
    assert invoice.network == "Bitcoin"
    assert invoice.confirmations_required == 3
    assert invoice.status == InvoiceStatus.WAITING
    assert (invoice.expire_at - clock.now).total_seconds() == 15 * 60
    assert invoice.order_id == "ORDER_1"
    assert invoice.deposit_address.startswith("bc1q")
    assert len(crypto_service.store) == 1

def test_fiat_currency_is_converted_through_usd(crypto_service):
    invoice = crypto_service.create_invoice(100, "EUR", "ETH")
    assert invoice.requested_crypto_amount == Decimal("0.03375000")
    assert invoice.order_id.startswith("ORDER_")

def test_configured_public_address_is_used(crypto_service):
    crypto_service.public_address = "bc1qmerchant"
    assert crypto_service.create_invoice(10, "USD", "BTC").deposit_address == "bc1qmerchant"

@pytest.mark.parametrize("amount", [0, -5, "abc", None, ""])
def test_invalid_amount_creates_no_invoice(crypto_service, amount):
    with pytest.raises(InvalidAmountError):
        crypto_service.create_invoice(amount, "USD", "BTC")
    assert len(crypto_service.store) == 0

@pytest.mark.parametrize("currency,crypto", [("JPY", "BTC"), ("USD", "XRP"), ("USD", None)])
def test_unsupported_currency_creates_no_invoice(crypto_service, currency, crypto):
    with pytest.raises(UnsupportedCurrencyError):
        crypto_service.create_invoice(10, currency, crypto)
    assert len(crypto_service.store) == 0

def test_disabled_crypto_is_rejected(crypto_service):
    crypto_service.cryptos = ["BTC"]
    with pytest.raises(UnsupportedCurrencyError):
        crypto_service.create_invoice(10, "USD", "ETH")

def test_unknown_invoice(crypto_service):
    with pytest.raises(InvoiceNotFoundError):
        crypto_service.check_status("BTCNOPE")
    with pytest.raises(InvoiceNotFoundError):
        crypto_service.verify_transaction("BTCNOPE", BTC_HASH)


# --- Statut ---
def test_each_query_on_open_invoice_counts_one_attempt(crypto_service, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    for expected in (1, 2, 3):
        clock.advance(seconds=30)
        current = crypto_service.check_status(invoice.invoice_id)
        assert current.status == InvoiceStatus.WAITING
        assert current.verification_attempts == expected
        assert current.last_verified_at == clock.now

def test_expiry_has_priority_over_a_found_payment(crypto_service, verifier, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    _pay(verifier, invoice, confirmations=10)
    clock.advance(minutes=15, seconds=1)
    current = crypto_service.check_status(invoice.invoice_id)
    assert current.status == InvoiceStatus.EXPIRED
    assert current.failure_reason == EXPIRED_REASON
    assert verifier.find_calls == 0

def test_invoice_at_exact_deadline_is_not_expired(crypto_service, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    clock.advance(minutes=15)
    assert crypto_service.check_status(invoice.invoice_id).status == InvoiceStatus.WAITING

def test_payment_progresses_from_pending_to_confirmed(crypto_service, verifier, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    _pay(verifier, invoice, confirmations=1)
    current = crypto_service.check_status(invoice.invoice_id)
    assert current.status == InvoiceStatus.PENDING
    assert current.confirmations_observed == 1
    assert current.transaction_hash == BTC_HASH

    _pay(verifier, invoice, confirmations=3)
    current = crypto_service.check_status(invoice.invoice_id)
    assert current.status == InvoiceStatus.CONFIRMED
    assert current.verification_method == "automatic"
    assert current.failure_reason is None

def test_underpayment_stays_pending_with_reason(crypto_service, verifier):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    _pay(verifier, invoice, confirmations=5, amount=invoice.requested_crypto_amount / 2)
    current = crypto_service.check_status(invoice.invoice_id)
    assert current.status == InvoiceStatus.PENDING
    assert "insufficient" in current.failure_reason

@pytest.mark.parametrize("final_status", ["confirmed", "expired"])
def test_terminal_status_never_changes(crypto_service, verifier, clock, final_status):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    if final_status == "confirmed":
        _pay(verifier, invoice, confirmations=3)
    else:
        clock.advance(minutes=20)
    first = crypto_service.check_status(invoice.invoice_id)
    assert first.status.value == final_status

    verifier.payments.pop(invoice.invoice_id, None)
    clock.advance(hours=2)
    for _ in range(3):
        again = crypto_service.check_status(invoice.invoice_id)
        assert again.status.value == final_status
        assert again.verification_attempts == first.verification_attempts


# --- Vérification manuelle ---
def test_malformed_hash_is_rejected_without_status_change(crypto_service, verifier):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    result = crypto_service.verify_transaction(invoice.invoice_id, "not-a-hash")
    assert result.verified is False
    assert result.invoice.status == InvoiceStatus.WAITING
    assert "format" in result.invoice.failure_reason
    assert verifier.lookup_calls == 0

def test_eth_hash_requires_0x_prefix(crypto_service, verifier):
    invoice = crypto_service.create_invoice(10, "USD", "ETH")
    verifier.known_hashes.update({"b" * 64, ETH_HASH})
    assert crypto_service.verify_transaction(invoice.invoice_id, "b" * 64).verified is False
    assert crypto_service.verify_transaction(invoice.invoice_id, ETH_HASH).verified is True

def test_known_hash_forces_confirmation(crypto_service, verifier):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    verifier.known_hashes.add(BTC_HASH)
    result = crypto_service.verify_transaction(invoice.invoice_id, BTC_HASH)
    assert result.verified is True
    assert result.invoice.status == InvoiceStatus.CONFIRMED
    assert result.invoice.verification_method == "manual"
    assert result.invoice.confirmations_observed == 3
    assert crypto_service.get_invoice(invoice.invoice_id).status == InvoiceStatus.CONFIRMED

def test_unknown_hash_records_reason_only(crypto_service):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    result = crypto_service.verify_transaction(invoice.invoice_id, "c" * 64)
    assert result.verified is False
    assert result.invoice.status == InvoiceStatus.WAITING
    assert "not found" in result.invoice.failure_reason

def test_manual_verification_after_deadline_expires_invoice(crypto_service, verifier, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    verifier.known_hashes.add(BTC_HASH)
    clock.advance(minutes=16)
    result = crypto_service.verify_transaction(invoice.invoice_id, BTC_HASH)
    assert result.verified is False
    assert result.invoice.status == InvoiceStatus.EXPIRED
    assert verifier.lookup_calls == 0

def test_confirmed_invoice_only_accepts_its_own_hash(crypto_service, verifier):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    _pay(verifier, invoice, confirmations=3)
    crypto_service.check_status(invoice.invoice_id)
    assert crypto_service.verify_transaction(invoice.invoice_id, BTC_HASH.upper()).verified is True
    other = crypto_service.verify_transaction(invoice.invoice_id, "d" * 64)
    assert other.verified is False
    assert other.invoice.status == InvoiceStatus.CONFIRMED

def test_manual_result_dict_carries_status_fields(crypto_service, verifier, clock):
    invoice = crypto_service.create_invoice(10, "USD", "BTC")
    body = crypto_service.verify_transaction(invoice.invoice_id, "zz").to_dict(clock.now)
    assert body["success"] is True
    assert body["verified"] is False
    assert body["status"] == "waiting"
    assert body["error"]
    assert body["seconds_remaining"] == 900
