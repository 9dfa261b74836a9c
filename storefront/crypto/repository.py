"""
Accès aux invoices crypto.

InvoiceStore est l'interface injectée dans le service; InMemoryInvoiceStore est
l'implémentation actuelle (durée de vie du process, aucune suppression).
locked(invoice_id) sérialise les transitions d'une même invoice.
"""
import dataclasses
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from .models import PaymentInvoice


class InvoiceStore(ABC):
    @abstractmethod
    def add(self, invoice: PaymentInvoice) -> None:
        ...

    @abstractmethod
    def get(self, invoice_id: str) -> Optional[PaymentInvoice]:
        """Retourne une copie de l'invoice (None si inconnue)."""

    @abstractmethod
    def save(self, invoice: PaymentInvoice) -> None:
        ...

    @abstractmethod
    def locked(self, invoice_id: str):
        """Context manager: section critique pour une invoice donnée."""

    @abstractmethod
    def __len__(self) -> int:
        ...


# module storefront.crypto.repository
class InMemoryInvoiceStore(InvoiceStore):
    def __init__(self) -> None:
        self._invoices: Dict[str, PaymentInvoice] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def add(self, invoice: PaymentInvoice) -> None:
        with self._guard:
            if invoice.invoice_id in self._invoices:
                raise KeyError(f"invoice déjà existante: {invoice.invoice_id}")
            self._invoices[invoice.invoice_id] = dataclasses.replace(invoice)
            self._locks[invoice.invoice_id] = threading.Lock()

    def get(self, invoice_id: str) -> Optional[PaymentInvoice]:
        with self._guard:
            invoice = self._invoices.get(invoice_id)
            return dataclasses.replace(invoice) if invoice else None

    def save(self, invoice: PaymentInvoice) -> None:
        with self._guard:
            if invoice.invoice_id not in self._invoices:
                raise KeyError(f"invoice inconnue: {invoice.invoice_id}")
            self._invoices[invoice.invoice_id] = dataclasses.replace(invoice)

    @contextmanager
    def locked(self, invoice_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(invoice_id) or threading.Lock()
        with lock:
            yield

    def __len__(self) -> int:
        with self._guard:
            return len(self._invoices)
