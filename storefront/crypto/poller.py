"""
Suivi client d'une invoice crypto (équivalent Python de public/js/coinremitter.js).

Deux tâches asyncio tournent en parallèle:
- consultation du statut toutes les `status_interval` secondes (30 s par défaut)
- compte à rebours jusqu'à l'échéance, une unité toutes les `tick_interval` secondes (1 s)
Les deux sont annulées dès qu'un statut terminal est reçu, que le compte à rebours
atteint zéro, que cancel() est appelé, ou qu'une des boucles échoue (outcome "error").

Usage:
    python -m storefront.crypto.poller <invoice_id> --base-url http://localhost:8000
"""
import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ("confirmed", "expired")

FetchStatus = Callable[[str], Awaitable[Dict[str, Any]]]


@dataclass
class PollResult:
    outcome: str  # confirmed | expired | cancelled | not_found | error
    polls: int
    last_status: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None


class PaymentStatusPoller:
    def __init__(
        self,
        invoice_id: str,
        fetch_status: FetchStatus,
        *,
        expire_in_seconds: int,
        status_interval: float = 30.0,
        tick_interval: float = 1.0,
        on_status: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.invoice_id = invoice_id
        self.fetch_status = fetch_status
        self.expire_in_seconds = max(0, int(expire_in_seconds))
        self.status_interval = status_interval
        self.tick_interval = tick_interval
        self.on_status = on_status
        self.on_tick = on_tick
        self.polls = 0
        self.last_status: Optional[Dict[str, Any]] = None
        self.tasks: list = []
        self.error: Optional[BaseException] = None
        self._outcome: Optional[str] = None
        self._done: Optional[asyncio.Event] = None

    def _finish(self, outcome: str) -> None:
        if self._outcome is None:
            self._outcome = outcome
            logger.info("crypto.poller.finished invoice_id=%s outcome=%s polls=%s", self.invoice_id, outcome, self.polls)
        if self._done is not None:
            self._done.set()

    def cancel(self) -> None:
        """Annulation utilisateur (bouton Cancel / navigation)."""
        self._finish("cancelled")

    async def _status_loop(self) -> None:
        while True:
            await asyncio.sleep(self.status_interval)
            try:
                data = await self.fetch_status(self.invoice_id)
            except (httpx.HTTPError, ValueError) as e:
                # ValueError: corps non JSON (page d'erreur d'un proxy)
                logger.warning("crypto.poller.fetch_failed invoice_id=%s error=%s", self.invoice_id, e)
                continue
            self.polls += 1
            self.last_status = data
            if self.on_status:
                self.on_status(data)
            if not data.get("success", False):
                if data.get("type") == "invoice_not_found":
                    self._finish("not_found")
                    return
                continue
            status = data.get("status")
            if status in TERMINAL_STATUSES:
                self._finish(status)
                return

    async def _countdown_loop(self) -> None:
        remaining = self.expire_in_seconds
        while remaining > 0:
            if self.on_tick:
                self.on_tick(remaining)
            await asyncio.sleep(self.tick_interval)
            remaining -= 1
        if self.on_tick:
            self.on_tick(0)
        self._finish("expired")

    def _on_task_done(self, task: asyncio.Task) -> None:
        """Une boucle morte sur exception termine le suivi (outcome "error"), sans attendre l'échéance."""
        if task.cancelled() or task.exception() is None:
            return
        self.error = task.exception()
        logger.error("crypto.poller.task_failed invoice_id=%s error=%r", self.invoice_id, self.error)
        self._finish("error")

    def _result(self) -> PollResult:
        return PollResult(
            outcome=self._outcome or "cancelled",
            polls=self.polls,
            last_status=self.last_status,
            error=self.error,
        )

    async def run(self) -> PollResult:
        self._done = asyncio.Event()
        if self._outcome is not None:
            return self._result()
        self.tasks = [
            asyncio.create_task(self._status_loop()),
            asyncio.create_task(self._countdown_loop()),
        ]
        for task in self.tasks:
            task.add_done_callback(self._on_task_done)
        try:
            await self._done.wait()
        finally:
            for task in self.tasks:
                task.cancel()
            await asyncio.gather(*self.tasks, return_exceptions=True)
        return self._result()


def http_status_fetcher(client: httpx.AsyncClient) -> FetchStatus:
    """fetch_status basé sur GET /api/coinremitter/payment-status/{invoice_id}."""
    async def _fetch(invoice_id: str) -> Dict[str, Any]:
        resp = await client.get(f"/api/coinremitter/payment-status/{invoice_id}")
        return resp.json()
    return _fetch


async def watch_invoice(invoice_id: str, base_url: str, status_interval: float = 30.0) -> PollResult:
    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        fetch = http_status_fetcher(client)
        first = await fetch(invoice_id)
        if not first.get("success", False):
            return PollResult(outcome="not_found", polls=1, last_status=first)
        if first.get("status") in TERMINAL_STATUSES:
            return PollResult(outcome=first["status"], polls=1, last_status=first)
        poller = PaymentStatusPoller(
            invoice_id,
            fetch,
            expire_in_seconds=int(first.get("seconds_remaining") or 0),
            status_interval=status_interval,
            on_status=lambda d: print(
                f"status={d.get('status')} confirmations={d.get('confirmations')}/{d.get('confirmations_required')}"
                f" attempts={d.get('verification_attempts')}"
            ),
        )
        result = await poller.run()
        result.polls += 1
        return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Suit le statut d'une invoice crypto jusqu'à un état terminal.")
    parser.add_argument("invoice_id")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--interval", type=float, default=30.0, help="secondes entre deux consultations")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    result = asyncio.run(watch_invoice(args.invoice_id, args.base_url, args.interval))
    print(f"outcome={result.outcome} polls={result.polls}")
    return 0 if result.outcome == "confirmed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
