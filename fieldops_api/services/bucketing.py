# fieldops_api/services/bucketing.py
from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from fieldops_api.services.ledger import LedgerBill, LedgerPayment


class TransactionType(str, enum.Enum):
    COMMISSION = "commission"
    PAYMENT = "payment"


class BucketKind(str, enum.Enum):
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True)
class TransactionItem:
    id: str
    date: datetime
    amount: Decimal
    type: TransactionType
    # commission-only
    bill_number: Optional[str] = None
    customer_name: Optional[str] = None
    service_type: Optional[str] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "type": self.type.value,
        }
        if self.type is TransactionType.COMMISSION:
            d.update(bill_number=self.bill_number, customer_name=self.customer_name,
                     service_type=self.service_type)
        return d


@dataclass
class SectionData:
    title: str
    kind: BucketKind
    data: List[TransactionItem] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")

    @property
    def is_month(self) -> bool:
        return self.kind is BucketKind.MONTH

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "kind": self.kind.value,
            "is_month": self.is_month,
            "total_amount": float(self.total_amount),
            "data": [i.to_dict() for i in self.data],
        }


def commission_items(bills: Iterable[LedgerBill]) -> List[TransactionItem]:
    return [
        TransactionItem(
            id=b.id, date=b.date, amount=b.engineer_commission, type=TransactionType.COMMISSION,
            bill_number=b.bill_number, customer_name=b.customer_name, service_type=b.service_type,
        )
        for b in bills if b.date is not None
    ]


def payment_items(payments: Iterable[LedgerPayment]) -> List[TransactionItem]:
    return [
        TransactionItem(id=p.id, date=p.date, amount=p.amount, type=TransactionType.PAYMENT)
        for p in payments if p.date is not None
    ]


def one_month_before(now: datetime) -> datetime:
    """Same clock time one calendar month back; day clamped to the shorter month."""
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def day_title(d: datetime) -> str:
    return f"{d:%A}, {d.day} {d:%b %Y}"


def month_title(d: datetime) -> str:
    return f"{d:%B %Y}"


def _bucket(item: TransactionItem, cutoff: Optional[datetime]) -> Tuple[BucketKind, str]:
    if cutoff is not None and item.date < cutoff:
        return BucketKind.MONTH, month_title(item.date)
    return BucketKind.DAY, day_title(item.date)


def group_by_date(
    items: Iterable[TransactionItem],
    group_by_month: bool = False,
    now: Optional[datetime] = None,
) -> List[SectionData]:
    """
    Group transactions into display sections.

    With `group_by_month`, anything older than one calendar month before `now`
    collapses into a "<Month> <Year>" section; everything else gets a
    per-day section. Day sections come first, then month sections, each
    newest first. Buckets are recomputed against `now` on every call.
    """
    cutoff = one_month_before(now or datetime.utcnow()) if group_by_month else None

    # duplicate ids collapse, last one wins
    unique: Dict[str, TransactionItem] = {}
    for it in items:
        unique[it.id] = it

    grouped: Dict[Tuple[BucketKind, str], List[TransactionItem]] = {}
    for it in unique.values():
        grouped.setdefault(_bucket(it, cutoff), []).append(it)

    sections: List[SectionData] = []
    for (kind, title), rows in grouped.items():
        rows.sort(key=lambda x: x.date, reverse=True)
        sections.append(SectionData(
            title=title,
            kind=kind,
            data=rows,
            total_amount=sum((r.amount for r in rows), Decimal("0")),
        ))

    sections.sort(key=lambda s: s.data[0].date, reverse=True)
    sections.sort(key=lambda s: s.is_month)  # stable: days first, recency kept
    return sections
