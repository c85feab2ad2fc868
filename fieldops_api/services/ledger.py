# fieldops_api/services/ledger.py
"""
Ledger snapshots handed to the aggregation engine and the bucketer.

Records are built either from REST payloads (``from_json``; accepts the
snake_case keys this API emits and the legacy camelCase keys older clients
send) or straight from ORM rows (``from_model``).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional


def to_decimal(x) -> Decimal:
    """Missing or unparseable money counts as zero."""
    if x is None or x == "":
        return Decimal("0")
    try:
        return Decimal(str(x))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def parse_timestamp(v) -> Optional[datetime]:
    """datetime / date / ISO string → naive UTC datetime (None when absent or garbage)."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        dt = v
    elif isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    else:
        s = str(v).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _first(j: Dict[str, Any], *keys):
    for k in keys:
        v = j.get(k)
        if v is not None and v != "":
            return v
    return None


@dataclass(frozen=True)
class LedgerBill:
    id: str
    engineer_name: Optional[str]
    engineer_commission: Decimal
    date: Optional[datetime]
    engineer_id: Optional[str] = None
    bill_number: Optional[str] = None
    customer_name: Optional[str] = None
    service_type: Optional[str] = None

    @classmethod
    def from_json(cls, j: Dict[str, Any]) -> "LedgerBill":
        return cls(
            id=str(j.get("id")),
            engineer_name=_first(j, "engineer_name", "serviceboyName", "serviceBoyName"),
            engineer_commission=to_decimal(_first(j, "engineer_commission", "engineerCommission")),
            date=parse_timestamp(_first(j, "date", "created_at", "createdAt")),
            engineer_id=_first(j, "engineer_id", "engineerId"),
            bill_number=_first(j, "bill_number", "billNumber"),
            customer_name=_first(j, "customer_name", "customerName"),
            service_type=_first(j, "service_type", "serviceType"),
        )

    @classmethod
    def from_model(cls, b) -> "LedgerBill":
        return cls(
            id=b.id,
            engineer_name=b.engineer_name,
            engineer_commission=to_decimal(b.engineer_commission),
            date=parse_timestamp(b.date or b.created_at),
            engineer_id=b.engineer_id,
            bill_number=b.bill_number,
            customer_name=b.customer_name,
            service_type=b.service_type,
        )


@dataclass(frozen=True)
class LedgerPayment:
    id: str
    engineer_name: Optional[str]
    amount: Decimal
    date: Optional[datetime]
    engineer_id: Optional[str] = None

    @classmethod
    def from_json(cls, j: Dict[str, Any]) -> "LedgerPayment":
        return cls(
            id=str(j.get("id")),
            engineer_name=_first(j, "engineer_name", "engineerName"),
            amount=to_decimal(j.get("amount")),
            date=parse_timestamp(_first(j, "date", "created_at", "createdAt")),
            engineer_id=_first(j, "engineer_id", "engineerId"),
        )

    @classmethod
    def from_model(cls, p) -> "LedgerPayment":
        return cls(
            id=p.id,
            engineer_name=p.engineer_name,
            amount=to_decimal(p.amount),
            date=parse_timestamp(p.date or p.created_at),
            engineer_id=p.engineer_id,
        )


@dataclass(frozen=True)
class DirectoryEntry:
    id: str
    engineer_name: str
    email: str

    @classmethod
    def from_json(cls, j: Dict[str, Any]) -> "DirectoryEntry":
        return cls(
            id=str(j.get("id")),
            engineer_name=_first(j, "engineer_name", "engineerName", "name") or "",
            email=j.get("email") or "",
        )

    @classmethod
    def from_model(cls, e) -> "DirectoryEntry":
        return cls(id=e.id, engineer_name=e.engineer_name, email=e.email or "")


class DatabaseLedger:
    """
    Ledger source reading the tables directly, for server-side refreshes
    (CLI, background jobs). Holds the Flask app so calls made from worker
    threads get their own app context.
    """

    def __init__(self, app):
        self.app = app

    def fetch_bills(self) -> List[LedgerBill]:
        from fieldops_api.models.bill import Bill
        with self.app.app_context():
            return [LedgerBill.from_model(b) for b in Bill.query.order_by(Bill.created_at.desc()).all()]

    def fetch_payments(self) -> List[LedgerPayment]:
        from fieldops_api.models.payment import Payment
        with self.app.app_context():
            return [LedgerPayment.from_model(p) for p in Payment.query.order_by(Payment.date.desc()).all()]

    def fetch_engineers(self) -> List[DirectoryEntry]:
        from fieldops_api.models.engineer import Engineer
        with self.app.app_context():
            return [DirectoryEntry.from_model(e) for e in Engineer.query.all()]

    def upsert_engineer_summaries(self, rows: List[Dict[str, Any]]) -> List[str]:
        from fieldops_api.services.reconciliation import upsert_engineer_summaries
        with self.app.app_context():
            return upsert_engineer_summaries(rows)["failed"]
