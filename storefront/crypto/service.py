"""
Cas d'usage 'crypto' (simulation Coinremitter): création d'invoice, suivi de statut,
vérification manuelle d'une transaction.

Règles de la machine à états:
- l'expiration (now > expire_at) est testée en premier et prime sur toute autre transition
- confirmed et expired sont terminaux: une invoice terminale n'est plus jamais modifiée
- chaque consultation d'une invoice non terminale incrémente verification_attempts
- toutes les transitions se font sous le verrou de l'invoice (store.locked)
"""
import logging
import random
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from storefront.cart.totals import parse_amount
from storefront.config import (
    COINREMITTER_API_KEY,
    COINREMITTER_CRYPTOS,
    COINREMITTER_INVOICE_TTL_MINUTES,
    COINREMITTER_PASSWORD,
    COINREMITTER_PAYMENT_BIAS,
    COINREMITTER_PUBLIC_ADDRESS,
    COINREMITTER_SIMULATION_SEED,
)
from storefront.errors import InvoiceNotFoundError, UnsupportedCurrencyError
from storefront.utils.qrcode_utils import generate_qr_code, payment_uri
from .currencies import CRYPTOS, FIAT_USD_RATES, convert_to_crypto, get_crypto, random_address
from .models import EXPIRED_REASON, InvoiceStatus, PaymentInvoice
from .repository import InMemoryInvoiceStore, InvoiceStore
from .verifier import SimulatedTransactionVerifier, TransactionLookup, TransactionVerifier

logger = logging.getLogger(__name__)

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ManualVerificationResult:
    verified: bool
    invoice: PaymentInvoice
    error: Optional[str] = None

    def to_dict(self, now: datetime) -> Dict[str, Any]:
        body = self.invoice.to_status_dict(now)
        body["verified"] = self.verified
        if self.error:
            body["error"] = self.error
        return body


# module storefront.crypto.service
class CryptoPaymentService:
    def __init__(
        self,
        store: InvoiceStore,
        verifier: TransactionVerifier,
        *,
        cryptos: Optional[List[str]] = None,
        public_address: str = COINREMITTER_PUBLIC_ADDRESS,
        api_key: str = COINREMITTER_API_KEY,
        password: str = COINREMITTER_PASSWORD,
        invoice_ttl: timedelta = timedelta(minutes=COINREMITTER_INVOICE_TTL_MINUTES),
        clock: Callable[[], datetime] = utcnow,
        qr_generator: Optional[Callable[[str], str]] = generate_qr_code,
        rng: Optional[random.Random] = None,
    ):
        wanted = cryptos if cryptos is not None else COINREMITTER_CRYPTOS
        self.cryptos = [c for c in (x.upper() for x in wanted) if c in CRYPTOS]
        self.store = store
        self.verifier = verifier
        self.public_address = public_address
        self.api_key = api_key
        self.password = password
        self.invoice_ttl = invoice_ttl
        self.clock = clock
        self.qr_generator = qr_generator
        self.rng = rng or random.Random()

    def is_configured(self) -> bool:
        return bool(self.api_key and self.password)

    def available_cryptos(self) -> List[str]:
        return list(self.cryptos)

    # --- Création ---
    def create_invoice(self, amount: Any, currency: str, crypto: str, order_id: Optional[str] = None) -> PaymentInvoice:
        """
        Crée une invoice pour un paiement crypto.
        - amount: montant fiat > 0 (sinon InvalidAmountError)
        - currency: devise fiat supportée (USD, EUR, GBP), crypto: parmi available_cryptos()
        - Aucune invoice n'est enregistrée si la validation échoue.
        """
        fiat_amount = parse_amount(amount)
        fiat_currency = (currency or "").strip().upper()
        if fiat_currency not in FIAT_USD_RATES:
            raise UnsupportedCurrencyError(f"Devise non supportée: {currency}", provider="coinremitter")
        spec = get_crypto(crypto)
        if spec is None or spec.code not in self.cryptos:
            raise UnsupportedCurrencyError(f"Cryptomonnaie non supportée: {crypto}", provider="coinremitter")

        now = self.clock()
        crypto_amount = convert_to_crypto(fiat_amount, fiat_currency, spec)
        address = self.public_address or random_address(spec, self.rng)
        invoice = PaymentInvoice(
            invoice_id=f"{spec.code}{secrets.token_hex(6).upper()}",
            order_id=(order_id or "").strip() or f"ORDER_{int(now.timestamp() * 1000)}",
            requested_crypto_amount=crypto_amount,
            crypto_currency=spec.code,
            fiat_amount=fiat_amount,
            fiat_currency=fiat_currency,
            deposit_address=address,
            network=spec.network,
            created_at=now,
            expire_at=now + self.invoice_ttl,
            confirmations_required=spec.confirmations_required,
        )
        if self.qr_generator:
            invoice.qr_code = self.qr_generator(payment_uri(spec.code, address, crypto_amount))
        self.store.add(invoice)
        logger.info(
            "crypto.invoice_created invoice_id=%s order_id=%s crypto=%s amount=%s fiat=%s %s",
            invoice.invoice_id, invoice.order_id, spec.code, crypto_amount, fiat_amount, fiat_currency,
        )
        return invoice

    def get_invoice(self, invoice_id: str) -> PaymentInvoice:
        invoice = self.store.get((invoice_id or "").strip())
        if invoice is None:
            raise InvoiceNotFoundError()
        return invoice

    # --- Transitions ---
    def _expire_if_due(self, invoice: PaymentInvoice, now: datetime) -> bool:
        if now > invoice.expire_at:
            invoice.status = InvoiceStatus.EXPIRED
            invoice.failure_reason = EXPIRED_REASON
            logger.info("crypto.invoice_expired invoice_id=%s attempts=%s", invoice.invoice_id, invoice.verification_attempts)
            return True
        return False

    def _apply_lookup(self, invoice: PaymentInvoice, lookup: TransactionLookup) -> None:
        invoice.transaction_hash = lookup.transaction_hash
        invoice.confirmations_observed = lookup.confirmations
        invoice.received_amount = lookup.amount
        if lookup.amount < invoice.requested_crypto_amount:
            invoice.status = InvoiceStatus.PENDING
            invoice.failure_reason = f"insufficient amount received ({lookup.amount} < {invoice.requested_crypto_amount})"
        elif lookup.confirmations >= invoice.confirmations_required:
            invoice.status = InvoiceStatus.CONFIRMED
            invoice.failure_reason = None
        else:
            invoice.status = InvoiceStatus.PENDING
            invoice.failure_reason = None

    def check_status(self, invoice_id: str) -> PaymentInvoice:
        """
        Une consultation de statut (polling client toutes les 30 s).
        - terminal: renvoyé tel quel
        - sinon: attempts += 1, last_verified_at = now, puis expiration ou recherche de paiement
        """
        invoice_id = (invoice_id or "").strip()
        with self.store.locked(invoice_id):
            invoice = self.get_invoice(invoice_id)
            if invoice.status.is_terminal:
                return invoice
            now = self.clock()
            invoice.verification_attempts += 1
            invoice.last_verified_at = now
            if not self._expire_if_due(invoice, now):
                lookup = self.verifier.find_payment(invoice, now)
                if lookup is not None:
                    self._apply_lookup(invoice, lookup)
                    if invoice.status == InvoiceStatus.CONFIRMED:
                        invoice.verification_method = "automatic"
            self.store.save(invoice)
        logger.info(
            "crypto.status invoice_id=%s status=%s confirmations=%s/%s attempts=%s",
            invoice.invoice_id, invoice.status.value, invoice.confirmations_observed,
            invoice.confirmations_required, invoice.verification_attempts,
        )
        return invoice

    def verify_transaction(self, invoice_id: str, transaction_hash: str) -> ManualVerificationResult:
        """
        Vérification manuelle d'un hash fourni par le client.
        - hash au mauvais format: verified=False, statut inchangé
        - invoice expirée (ou échéance dépassée): verified=False
        - recherche indépendante réussie: statut forcé à confirmed
        - recherche infructueuse: failure_reason renseigné, statut inchangé
        """
        invoice_id = (invoice_id or "").strip()
        tx_hash = (transaction_hash or "").strip()
        with self.store.locked(invoice_id):
            invoice = self.get_invoice(invoice_id)
            spec = get_crypto(invoice.crypto_currency)

            if invoice.status == InvoiceStatus.CONFIRMED:
                same = bool(invoice.transaction_hash) and tx_hash.lower() == invoice.transaction_hash.lower()
                return ManualVerificationResult(
                    verified=same,
                    invoice=invoice,
                    error=None if same else "Invoice already confirmed with another transaction",
                )
            if invoice.status == InvoiceStatus.EXPIRED:
                return ManualVerificationResult(verified=False, invoice=invoice, error=EXPIRED_REASON)

            if not spec.is_valid_hash(tx_hash):
                invoice.failure_reason = f"invalid {spec.code} transaction hash format"
                self.store.save(invoice)
                logger.info("crypto.manual_verify.bad_format invoice_id=%s", invoice_id)
                return ManualVerificationResult(verified=False, invoice=invoice, error=invoice.failure_reason)

            now = self.clock()
            if self._expire_if_due(invoice, now):
                self.store.save(invoice)
                return ManualVerificationResult(verified=False, invoice=invoice, error=EXPIRED_REASON)

            lookup = self.verifier.lookup_transaction(invoice, tx_hash, now)
            if lookup is None:
                invoice.failure_reason = "transaction not found or does not match this invoice"
                self.store.save(invoice)
                logger.info("crypto.manual_verify.not_found invoice_id=%s", invoice_id)
                return ManualVerificationResult(verified=False, invoice=invoice, error=invoice.failure_reason)

            invoice.status = InvoiceStatus.CONFIRMED
            invoice.transaction_hash = lookup.transaction_hash
            invoice.confirmations_observed = max(lookup.confirmations, invoice.confirmations_required)
            invoice.received_amount = lookup.amount
            invoice.failure_reason = None
            invoice.verification_method = "manual"
            invoice.last_verified_at = now
            self.store.save(invoice)
        logger.info("crypto.manual_verify.confirmed invoice_id=%s", invoice_id)
        return ManualVerificationResult(verified=True, invoice=invoice)


def build_crypto_service() -> CryptoPaymentService:
    """Service par défaut: stockage mémoire + vérificateur simulé (graine COINREMITTER_SIMULATION_SEED)."""
    seed = COINREMITTER_SIMULATION_SEED
    rng = random.Random(seed) if seed is not None else random.Random()
    verifier = SimulatedTransactionVerifier(rng, pay_probability=COINREMITTER_PAYMENT_BIAS)
    return CryptoPaymentService(InMemoryInvoiceStore(), verifier, rng=rng)
