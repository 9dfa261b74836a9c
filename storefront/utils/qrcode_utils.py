import base64
from decimal import Decimal
from io import BytesIO

import qrcode

# Schémas d'URI reconnus par les wallets (BIP21 et équivalents)
URI_SCHEMES = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "LTC": "litecoin",
    "DOGE": "dogecoin",
    "USDT": "tron",
}

def payment_uri(crypto: str, address: str, amount: Decimal) -> str:
    """URI de paiement à scanner, ex: bitcoin:bc1q...?amount=0.00123"""
    scheme = URI_SCHEMES.get(crypto.upper())
    if not scheme:
        return address
    return f"{scheme}:{address}?amount={amount}"

def generate_qr_code(data: str, box_size: int = 6, border: int = 2) -> str:
    """
    Génère un QR code PNG et le retourne sous forme de data URI base64
    (directement utilisable dans un <img src="...">).
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffered = BytesIO()
    img.save(buffered, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffered.getvalue()).decode("ascii")
