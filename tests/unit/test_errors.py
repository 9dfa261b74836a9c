from storefront.errors import (
    InvoiceNotFoundError,
    PaymentDeclinedError,
    PaymentError,
    ProviderNotConfiguredError,
    ProviderUnavailableError,
    StorefrontError,
)


def test_error_body_shape():
    body = PaymentDeclinedError(provider="stripe").to_dict()
    assert body == {"success": False, "error": "Paiement refusé", "type": "payment_declined", "provider": "stripe"}

def test_status_codes_and_types():
    assert (InvoiceNotFoundError.status_code, InvoiceNotFoundError.error_type) == (404, "invoice_not_found")
    assert (ProviderUnavailableError.status_code, ProviderUnavailableError.error_type) == (502, "provider_unavailable")
    assert (ProviderNotConfiguredError.status_code, ProviderNotConfiguredError.error_type) == (503, "provider_not_configured")
    assert PaymentDeclinedError.status_code == 402

def test_provider_errors_share_a_base_class():
    for cls in (PaymentDeclinedError, ProviderUnavailableError, ProviderNotConfiguredError):
        assert issubclass(cls, PaymentError)
        assert issubclass(cls, StorefrontError)
    assert "provider" not in InvoiceNotFoundError().to_dict()
