"""
Vérification des transactions crypto.

TransactionVerifier isole la recherche de transaction:
- find_payment: cherche un paiement entrant pour l'adresse de dépôt d'une invoice
- lookup_transaction: vérifie un hash fourni par le client (vérification manuelle)

SimulatedTransactionVerifier remplace l'appel à l'API du processeur de paiement.
Son aléa passe par un random.Random injecté (graine configurable), jamais par le
module random global.
"""
import logging
import random
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Optional

from .currencies import get_crypto, random_tx_hash
from .models import PaymentInvoice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionLookup:
    transaction_hash: str
    amount: Decimal
    confirmations: int


class TransactionVerifier(ABC):
    @abstractmethod
    def find_payment(self, invoice: PaymentInvoice, now: datetime) -> Optional[TransactionLookup]:
        ...

    @abstractmethod
    def lookup_transaction(self, invoice: PaymentInvoice, transaction_hash: str, now: datetime) -> Optional[TransactionLookup]:
        ...


@dataclass
class _PaymentPlan:
    will_pay: bool
    transaction_hash: str


# module storefront.crypto.verifier
class SimulatedTransactionVerifier(TransactionVerifier):
    """
    Simulation Coinremitter.
    - Chaque invoice tire une seule fois si le client "finit par payer" (probabilité pay_probability).
    - Un paiement n'est visible qu'après detection_delay depuis la création de l'invoice,
      puis gagne une confirmation par confirmation_interval.
    - La vérification manuelle est un tirage indépendant (manual_success_probability).
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        *,
        pay_probability: float = 0.7,
        manual_success_probability: float = 0.8,
        detection_delay: timedelta = timedelta(minutes=2),
        confirmation_interval: timedelta = timedelta(minutes=1),
    ):
        self.rng = rng or random.Random()
        self.pay_probability = pay_probability
        self.manual_success_probability = manual_success_probability
        self.detection_delay = detection_delay
        self.confirmation_interval = confirmation_interval
        self._plans: Dict[str, _PaymentPlan] = {}
        self._lock = threading.Lock()

    def _plan_for(self, invoice: PaymentInvoice) -> _PaymentPlan:
        with self._lock:
            plan = self._plans.get(invoice.invoice_id)
            if plan is None:
                spec = get_crypto(invoice.crypto_currency)
                plan = _PaymentPlan(
                    will_pay=self.rng.random() < self.pay_probability,
                    transaction_hash=random_tx_hash(spec, self.rng),
                )
                self._plans[invoice.invoice_id] = plan
                logger.debug("crypto.simulation.plan invoice_id=%s will_pay=%s", invoice.invoice_id, plan.will_pay)
            return plan

    def find_payment(self, invoice: PaymentInvoice, now: datetime) -> Optional[TransactionLookup]:
        plan = self._plan_for(invoice)
        if not plan.will_pay:
            return None
        elapsed = now - invoice.created_at
        if elapsed < self.detection_delay:
            return None
        confirmations = 1 + int((elapsed - self.detection_delay) / self.confirmation_interval)
        return TransactionLookup(
            transaction_hash=plan.transaction_hash,
            amount=invoice.requested_crypto_amount,
            confirmations=confirmations,
        )

    def lookup_transaction(self, invoice: PaymentInvoice, transaction_hash: str, now: datetime) -> Optional[TransactionLookup]:
        with self._lock:
            found = self.rng.random() < self.manual_success_probability
        if not found:
            return None
        return TransactionLookup(
            transaction_hash=transaction_hash,
            amount=invoice.requested_crypto_amount,
            confirmations=invoice.confirmations_required,
        )
