# fieldops_api/services/summary_service.py
"""
Summary cache shared by every screen/job that shows commission figures.

One SummaryService instance is built at startup and handed to its consumers.
It holds the last admin-wide summary list and the last single-engineer
summary, pushes every completed refresh to all subscribers, and mirrors
admin refreshes to the durable engineer-summary store in the background.

Refreshes are not serialized: two overlapping refreshes both run and the one
that finishes last owns the cache.
"""
from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from fieldops_api.common.errors import NetworkFailure, PersistencePartialFailure
from fieldops_api.services.aggregation import Summary, compute_engineer_summary, compute_summaries
from fieldops_api.services.directory import resolve_engineer_name

log = logging.getLogger(__name__)


class Subscription:
    """Handle returned by Observable.subscribe; calling it (or leaving a `with` block) unsubscribes."""

    def __init__(self, observable: "Observable", callback: Callable[[Any], None]):
        self._observable = observable
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._observable._remove(self)

    __call__ = unsubscribe

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unsubscribe()
        return False


class Observable:
    def __init__(self, name: str):
        self.name = name
        self._subs: List[Subscription] = []

    def subscribe(self, callback: Callable[[Any], None]) -> Subscription:
        sub = Subscription(self, callback)
        self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        self._subs = [s for s in self._subs if s is not sub]

    def emit(self, value: Any) -> None:
        # snapshot: callbacks may unsubscribe while we iterate
        for sub in list(self._subs):
            if not sub.active:
                continue
            try:
                sub.callback(value)
            except Exception:
                log.exception("%s listener %r failed", self.name, sub.callback)

    def __len__(self) -> int:
        return len(self._subs)


class SummaryService:
    def __init__(
        self,
        ledger,
        persister=None,
        executor: Optional[Executor] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        retry_attempts: int = 3,
        retry_wait=None,
    ):
        """
        ledger:    anything with fetch_bills / fetch_payments / fetch_engineers
        persister: anything with upsert_engineer_summaries(rows) -> failed ids;
                   defaults to the ledger when it offers that method
        executor:  where durable writes run (one background worker by default)
        """
        self.ledger = ledger
        if persister is None and hasattr(ledger, "upsert_engineer_summaries"):
            persister = ledger
        self.persister = persister
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="summary-persist")
        self.clock = clock
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=8)

        self.admin_updates = Observable("admin")
        self.user_updates = Observable("user")

        self._engineers: List[Summary] = []
        self._user: Optional[Summary] = None
        self._pending: List[Future] = []

    # ---------- subscriptions ----------
    def add_admin_listener(self, callback: Callable[[List[Summary]], None]) -> Subscription:
        return self.admin_updates.subscribe(callback)

    def add_user_listener(self, callback: Callable[[Optional[Summary]], None]) -> Subscription:
        return self.user_updates.subscribe(callback)

    # ---------- reads ----------
    def get_engineers_summary(self) -> List[Summary]:
        return self._engineers

    def get_user_summary(self) -> Optional[Summary]:
        return self._user

    def pending_for(self, engineer_name: str):
        """Last known pending amount for `engineer_name` from the admin cache (None if unknown)."""
        for s in self._engineers:
            if s.engineer_name == engineer_name:
                return s.pending_amount
        return None

    # ---------- refreshes ----------
    def _fetch_ledgers(self):
        try:
            bills = self.ledger.fetch_bills()
            payments = self.ledger.fetch_payments()
        except NetworkFailure as e:
            log.error("ledger fetch failed, keeping previous summaries: %s", e)
            raise
        return bills, payments

    def _fetch_directory(self):
        try:
            return self.ledger.fetch_engineers()
        except NetworkFailure as e:
            log.warning("engineer directory unavailable, summaries left unmatched: %s", e)
            return None

    def refresh_all_engineer_summaries(self) -> List[Summary]:
        bills, payments = self._fetch_ledgers()
        directory = self._fetch_directory()
        now = self.clock()

        summaries = list(compute_summaries(bills, payments, now, directory).values())
        self._engineers = summaries
        self.admin_updates.emit(summaries)

        if self.persister is not None:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(self.executor.submit(self._persist, self._summary_rows(summaries, now)))
        return summaries

    def refresh_user_summary(self, engineer_name: Optional[str]) -> Optional[Summary]:
        if not engineer_name:
            return None
        bills, payments = self._fetch_ledgers()
        summary = compute_engineer_summary(bills, payments, engineer_name, self.clock())
        self._user = summary
        self.user_updates.emit(summary)
        return summary

    def refresh_user_summary_for_email(self, email: Optional[str]) -> Summary:
        """Identity join first; an email with no directory entry yields a zero summary."""
        name = resolve_engineer_name(self.ledger.fetch_engineers(), email)
        if name is None:
            log.info("no engineer found for email %r", email)
            summary = Summary(engineer_name=None)
            self._user = summary
            self.user_updates.emit(summary)
            return summary
        return self.refresh_user_summary(name)

    def clear_user_data(self) -> None:
        self._user = None
        self.user_updates.emit(None)

    # ---------- durable mirror ----------
    @staticmethod
    def _summary_rows(summaries: List[Summary], now: datetime) -> List[Dict[str, Any]]:
        """
        One row per summary. A row keeps its engineer id only when no other
        summary claims the same id (no directory to settle it); otherwise it
        is keyed by name so two spellings never share a stored row.
        """
        claims = Counter(s.engineer_id for s in summaries if s.engineer_id)

        def key(s: Summary) -> str:
            if s.matched is True or (s.engineer_id and claims[s.engineer_id] == 1):
                return s.engineer_id
            return s.engineer_name

        return [
            {
                "engineer_id": key(s),
                "engineer_name": s.engineer_name,
                "month": now.month,
                "year": now.year,
                "monthly_commission": float(s.monthly_commission),
                "monthly_paid": float(s.monthly_payments),
                "pending_amount": float(s.pending_amount),
            }
            for s in summaries
        ]

    def _persist(self, rows: List[Dict[str, Any]]) -> List[str]:
        """Batch upsert, re-sending only failed rows with backoff. Returns ids still failing."""
        pending = list(rows)
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type((PersistencePartialFailure, NetworkFailure)),
                reraise=True,
            ):
                with attempt:
                    failed = set(self.persister.upsert_engineer_summaries(pending))
                    if failed:
                        pending = [r for r in pending if r["engineer_id"] in failed]
                        raise PersistencePartialFailure(sorted(failed))
            return []
        except PersistencePartialFailure as e:
            log.error("engineer summaries left stale after %d attempts: %s", self.retry_attempts, e.failed_ids)
            return e.failed_ids
        except NetworkFailure as e:
            log.error("engineer summary persistence failed: %s", e)
            return [r["engineer_id"] for r in pending]
        except Exception:
            log.exception("engineer summary persistence crashed")
            return [r["engineer_id"] for r in pending]

    def wait_for_persistence(self, timeout: Optional[float] = None) -> None:
        if self._pending:
            wait(self._pending, timeout=timeout)
