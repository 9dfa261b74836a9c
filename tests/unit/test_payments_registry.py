from storefront.payments.coinremitter import MockCoinremitterProvider
from storefront.payments.paypal_client import PayPalProvider
from storefront.payments.registry import build_providers


def test_providers_follow_configured_order(crypto_service):
    providers = build_providers(crypto_service, names=["coinremitter", " PayPal "])
    assert list(providers) == ["coinremitter", "paypal"]
    assert isinstance(providers["paypal"], PayPalProvider)
    assert isinstance(providers["coinremitter"], MockCoinremitterProvider)
    assert providers["coinremitter"].service is crypto_service

def test_unknown_names_are_skipped(crypto_service, caplog):
    providers = build_providers(crypto_service, names=["stripe", "bitpay"])
    assert list(providers) == ["stripe"]
    assert "bitpay" in caplog.text

def test_empty_selection(crypto_service):
    assert build_providers(crypto_service, names=[]) == {}
