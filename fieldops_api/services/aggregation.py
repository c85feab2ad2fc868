# fieldops_api/services/aggregation.py
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from fieldops_api.services.directory import ids_by_name
from fieldops_api.services.ledger import DirectoryEntry, LedgerBill, LedgerPayment

log = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class Summary:
    """
    Per-engineer commission summary. `pending_amount` is always derived from
    the two totals; negative values mean the engineer was overpaid.
    """
    engineer_name: Optional[str]
    total_commission: Decimal = ZERO
    monthly_commission: Decimal = ZERO
    total_payments: Decimal = ZERO
    monthly_payments: Decimal = ZERO
    engineer_id: Optional[str] = None
    # False when the name has no exact directory match
    matched: Optional[bool] = None

    @property
    def pending_amount(self) -> Decimal:
        return self.total_commission - self.total_payments

    def to_dict(self) -> dict:
        return {
            "engineer_id": self.engineer_id,
            "engineer_name": self.engineer_name,
            "matched": self.matched,
            "total_commission": float(self.total_commission),
            "monthly_commission": float(self.monthly_commission),
            "total_payments": float(self.total_payments),
            "monthly_payments": float(self.monthly_payments),
            "pending_amount": float(self.pending_amount),
        }


def month_window(now: datetime) -> Tuple[datetime, datetime]:
    """[first day 00:00, first day of next month) of the calendar month containing `now`."""
    start = datetime(now.year, now.month, 1)
    days = calendar.monthrange(now.year, now.month)[1]
    return start, start + timedelta(days=days)


def _in_window(d: Optional[datetime], window: Tuple[datetime, datetime]) -> bool:
    return d is not None and window[0] <= d < window[1]


def compute_summaries(
    bills: Iterable[LedgerBill],
    payments: Iterable[LedgerPayment],
    now: datetime,
    directory: Optional[Iterable[DirectoryEntry]] = None,
) -> Dict[str, Summary]:
    """
    Admin-wide aggregation keyed by the exact engineer name found on each
    record. Names are not normalized: "Raj Kumar" and "raj kumar" are two
    different engineers here.
    """
    window = month_window(now)
    out: Dict[str, Summary] = {}
    skipped = 0

    for b in bills:
        name = b.engineer_name
        if not name:
            skipped += 1
            continue
        s = out.get(name)
        if s is None:
            s = out[name] = Summary(engineer_name=name)
        if s.engineer_id is None and b.engineer_id:
            s.engineer_id = b.engineer_id
        s.total_commission += b.engineer_commission
        if _in_window(b.date, window):
            s.monthly_commission += b.engineer_commission

    for p in payments:
        name = p.engineer_name
        if not name:
            skipped += 1
            continue
        s = out.get(name)
        if s is None:
            s = out[name] = Summary(engineer_name=name)
        if s.engineer_id is None and p.engineer_id:
            s.engineer_id = p.engineer_id
        s.total_payments += p.amount
        if _in_window(p.date, window):
            s.monthly_payments += p.amount

    if skipped:
        log.debug("aggregation skipped %d ledger records without an engineer name", skipped)

    if directory is not None:
        known = ids_by_name(directory)
        for name, s in out.items():
            if name in known:
                s.matched = True
                s.engineer_id = known[name]
            else:
                # ids carried on the records may belong to a differently spelled directory name
                s.matched = False
                s.engineer_id = name
        unmatched = [n for n, s in out.items() if s.matched is False]
        if unmatched:
            log.info("ledger names without a directory entry: %s", unmatched)

    return out


def compute_engineer_summary(
    bills: Iterable[LedgerBill],
    payments: Iterable[LedgerPayment],
    engineer_name: Optional[str],
    now: datetime,
) -> Summary:
    """Single-engineer mode; no name or no records gives a zero summary."""
    if not engineer_name:
        return Summary(engineer_name=None)
    mine_b = [b for b in bills if b.engineer_name == engineer_name]
    mine_p = [p for p in payments if p.engineer_name == engineer_name]
    return compute_summaries(mine_b, mine_p, now).get(engineer_name) or Summary(engineer_name=engineer_name)
