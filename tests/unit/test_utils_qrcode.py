import base64
from decimal import Decimal

from storefront.utils.qrcode_utils import generate_qr_code, payment_uri


def test_payment_uri_per_network():
    assert payment_uri("btc", "bc1qxyz", Decimal("0.00153847")) == "bitcoin:bc1qxyz?amount=0.00153847"
    assert payment_uri("ETH", "0xabc", Decimal("1.5")) == "ethereum:0xabc?amount=1.5"
    assert payment_uri("XMR", "addr", Decimal("1")) == "addr"

def test_qr_code_is_png_data_uri():
    uri = generate_qr_code("bitcoin:bc1qxyz?amount=0.1")
    prefix = "data:image/png;base64,"
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix):]).startswith(b"\x89PNG")

def test_invoice_carries_qr_code(crypto_service):
    crypto_service.qr_generator = generate_qr_code
    invoice = crypto_service.create_invoice(10, "USD", "LTC")
    assert invoice.qr_code.startswith("data:image/png;base64,")
