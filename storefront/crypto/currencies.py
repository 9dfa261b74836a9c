"""
Référentiel des cryptomonnaies et devises acceptées par la simulation Coinremitter.
- Réseau, confirmations requises, format de hash de transaction, taux fictif en USD
- Génération d'adresses de dépôt et de hash au bon format (simulation)
"""
import random
import re
import string
from dataclasses import dataclass
from decimal import Decimal, ROUND_UP
from typing import Dict, Optional

HEX64 = re.compile(r"^[0-9a-fA-F]{64}$")
ETH_HASH = re.compile(r"^0x[0-9a-fA-F]{64}$")

BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32 = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

CRYPTO_PRECISION = Decimal("0.00000001")


@dataclass(frozen=True)
class CryptoSpec:
    code: str
    name: str
    icon: str
    network: str
    confirmations_required: int
    hash_pattern: re.Pattern
    usd_rate: Decimal
    address_prefix: str
    address_alphabet: str
    address_length: int

    def is_valid_hash(self, tx_hash: str) -> bool:
        return bool(tx_hash) and bool(self.hash_pattern.match(tx_hash))


CRYPTOS: Dict[str, CryptoSpec] = {
    "BTC": CryptoSpec("BTC", "Bitcoin", "₿", "Bitcoin", 3, HEX64, Decimal("65000"), "bc1q", BECH32, 38),
    "ETH": CryptoSpec("ETH", "Ethereum", "Ξ", "Ethereum (ERC20)", 12, ETH_HASH, Decimal("3200"), "0x", "0123456789abcdef", 40),
    "LTC": CryptoSpec("LTC", "Litecoin", "Ł", "Litecoin", 6, HEX64, Decimal("80"), "ltc1q", BECH32, 38),
    "DOGE": CryptoSpec("DOGE", "Dogecoin", "Ð", "Dogecoin", 6, HEX64, Decimal("0.15"), "D", BASE58, 33),
    "USDT": CryptoSpec("USDT", "Tether", "₮", "Tron (TRC20)", 19, HEX64, Decimal("1"), "T", BASE58, 33),
}

# Taux fictifs devise -> USD
FIAT_USD_RATES: Dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("1.08"),
    "GBP": Decimal("1.27"),
}

# module storefront.crypto.currencies
def get_crypto(code: str) -> Optional[CryptoSpec]:
    return CRYPTOS.get((code or "").strip().upper())

def convert_to_crypto(fiat_amount: Decimal, fiat_currency: str, spec: CryptoSpec) -> Decimal:
    """Montant crypto à demander (8 décimales, arrondi supérieur)."""
    usd = fiat_amount * FIAT_USD_RATES[fiat_currency]
    return (usd / spec.usd_rate).quantize(CRYPTO_PRECISION, rounding=ROUND_UP)

def random_address(spec: CryptoSpec, rng: random.Random) -> str:
    body = "".join(rng.choice(spec.address_alphabet) for _ in range(spec.address_length))
    return f"{spec.address_prefix}{body}"

def random_tx_hash(spec: CryptoSpec, rng: random.Random) -> str:
    digest = "".join(rng.choice(string.hexdigits[:16]) for _ in range(64))
    return f"0x{digest}" if spec.hash_pattern is ETH_HASH else digest
