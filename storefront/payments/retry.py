"""
Retry borné avec backoff exponentiel pour les appels prestataires.
Seules les erreurs ProviderUnavailableError (réseau, timeout, 429, 5xx) sont rejouées;
un refus de paiement ou une erreur de configuration remonte immédiatement.
"""
import logging
import time
from typing import Callable, TypeVar

from storefront.config import PAYMENT_MAX_RETRIES, PAYMENT_RETRY_BASE_DELAY
from storefront.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

def call_with_retries(
    fn: Callable[[], T],
    *,
    operation: str,
    attempts: int = PAYMENT_MAX_RETRIES,
    base_delay: float = PAYMENT_RETRY_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Exécute fn() jusqu'à `attempts` fois.
    - Délai entre tentatives: base_delay * 2**(n-1)
    - Après la dernière tentative, l'erreur transitoire est propagée telle quelle.
    """
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ProviderUnavailableError as e:
            if attempt >= attempts:
                logger.error("payments.retry.exhausted op=%s attempts=%s error=%s", operation, attempt, e.message)
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning("payments.retry op=%s attempt=%s next_delay=%.2fs error=%s", operation, attempt, delay, e.message)
            sleep(delay)
    raise AssertionError("unreachable")
