"""
Sélection des prestataires actifs (PAYMENT_PROVIDERS) et dépendances FastAPI d'accès.
"""
import logging
from typing import Dict, Iterable, Optional

from fastapi import Request

from storefront.config import PAYMENT_PROVIDERS
from storefront.crypto.service import CryptoPaymentService
from storefront.errors import ProviderNotConfiguredError
from .base import PaymentProvider
from .coinremitter import MockCoinremitterProvider
from .mastercard import MockMastercardProvider
from .paypal_client import PayPalProvider
from .stripe_client import StripeProvider

logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ("paypal", "stripe", "mastercard", "coinremitter")

# module storefront.payments.registry
def build_providers(
    crypto_service: CryptoPaymentService,
    names: Optional[Iterable[str]] = None,
) -> Dict[str, PaymentProvider]:
    """
    Instancie les prestataires demandés, dans l'ordre de configuration.
    Un nom inconnu est ignoré (avec un avertissement).
    """
    providers: Dict[str, PaymentProvider] = {}
    for name in (names if names is not None else PAYMENT_PROVIDERS):
        name = name.strip().lower()
        if name == "paypal":
            providers[name] = PayPalProvider()
        elif name == "stripe":
            providers[name] = StripeProvider()
        elif name == "mastercard":
            providers[name] = MockMastercardProvider()
        elif name == "coinremitter":
            providers[name] = MockCoinremitterProvider(crypto_service)
        else:
            logger.warning("payments.registry.unknown_provider name=%s", name)
    logger.info(
        "payments.registry providers=%s",
        ",".join(f"{n}:{'ok' if p.is_configured() else 'unconfigured'}" for n, p in providers.items()),
    )
    return providers

def get_providers(request: Request) -> Dict[str, PaymentProvider]:
    return request.app.state.providers

def provider_dependency(name: str):
    """Dépendance FastAPI: renvoie le prestataire `name` ou 503 provider_not_configured s'il est désactivé."""
    def _dep(request: Request) -> PaymentProvider:
        provider = get_providers(request).get(name)
        if provider is None:
            raise ProviderNotConfiguredError(f"Moyen de paiement désactivé: {name}", provider=name)
        return provider
    return _dep
