# fieldops_api/services/reconciliation.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from fieldops_api.extensions import db
from fieldops_api.models.bill import Bill
from fieldops_api.models.engineer import Engineer
from fieldops_api.models.engineer_summary import EngineerSummary
from fieldops_api.models.payment import Payment
from fieldops_api.services.ledger import to_decimal

log = logging.getLogger(__name__)


def upsert_engineer_summary(
    engineer_id: str,
    engineer_name: str,
    month: int,
    year: int,
    monthly_commission,
    monthly_paid,
    pending_amount,
    commit: bool = True,
) -> Tuple[EngineerSummary, bool]:
    """
    Write the client's figures for (engineer_id, month, year).
    Existing row → the three numbers and updated_at are overwritten.
    Nothing is recomputed from the ledgers here.
    """
    row = EngineerSummary.query.filter_by(engineer_id=engineer_id, month=month, year=year).first()
    created = row is None
    if created:
        row = EngineerSummary(engineer_id=engineer_id, engineer_name=engineer_name, month=month, year=year)
        db.session.add(row)

    row.monthly_commission = to_decimal(monthly_commission)
    row.monthly_paid = to_decimal(monthly_paid)
    row.pending_amount = to_decimal(pending_amount)
    row.updated_at = datetime.utcnow()

    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return row, created


def upsert_engineer_summaries(rows: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Batch upsert. Each row gets its own savepoint so one bad row does not
    roll back the rest. Returns {"saved": [...ids], "failed": [...ids]}.
    """
    saved: List[str] = []
    failed: List[str] = []
    for r in rows:
        eid = str(r.get("engineer_id") or r.get("engineer_name") or "")
        try:
            if not eid or not r.get("month") or not r.get("year"):
                raise ValueError("engineer_id, month and year are required")
            if not 1 <= int(r["month"]) <= 12:
                raise ValueError(f"month out of range: {r['month']}")
            with db.session.begin_nested():
                upsert_engineer_summary(
                    engineer_id=eid,
                    engineer_name=r.get("engineer_name") or eid,
                    month=int(r["month"]),
                    year=int(r["year"]),
                    monthly_commission=r.get("monthly_commission"),
                    monthly_paid=r.get("monthly_paid"),
                    pending_amount=r.get("pending_amount"),
                    commit=False,
                )
            saved.append(eid)
        except (SQLAlchemyError, ValueError, TypeError) as e:
            log.warning("engineer summary upsert failed for %r: %s", eid, e)
            failed.append(eid)
    db.session.commit()
    return {"saved": saved, "failed": failed}


def list_engineer_summaries(engineer_id: Optional[str] = None, month: Optional[int] = None,
                            year: Optional[int] = None) -> List[EngineerSummary]:
    q = EngineerSummary.query
    if engineer_id:
        q = q.filter(EngineerSummary.engineer_id == engineer_id)
    if month:
        q = q.filter(EngineerSummary.month == month)
    if year:
        q = q.filter(EngineerSummary.year == year)
    return q.order_by(EngineerSummary.created_at.desc(), EngineerSummary.id.desc()).all()


def current_month_summaries(engineer_id: Optional[str] = None, today: Optional[date] = None) -> List[EngineerSummary]:
    today = today or date.today()
    return list_engineer_summaries(engineer_id=engineer_id, month=today.month, year=today.year)


def _date_bounds(q, col, start_date: Optional[date], end_date: Optional[date]):
    if start_date:
        q = q.filter(col >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        q = q.filter(col < datetime.combine(end_date + timedelta(days=1), datetime.min.time()))
    return q


def get_engineer_commissions(start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Ground truth straight from the ledgers, one entry per directory engineer.
    Joins on the exact engineer name, same as the client-side engine.
    """
    bq = db.session.query(Bill.engineer_name, func.coalesce(func.sum(Bill.engineer_commission), 0))
    bq = _date_bounds(bq, Bill.date, start_date, end_date).group_by(Bill.engineer_name)
    commission_by_name = {name: to_decimal(total) for name, total in bq.all()}

    pq = db.session.query(Payment.engineer_name, func.coalesce(func.sum(Payment.amount), 0))
    pq = _date_bounds(pq, Payment.date, start_date, end_date).group_by(Payment.engineer_name)
    paid_by_name = {name: to_decimal(total) for name, total in pq.all()}

    out = []
    for eng in Engineer.query.order_by(Engineer.engineer_name.asc()).all():
        total_commission = commission_by_name.get(eng.engineer_name, Decimal("0"))
        total_payments = paid_by_name.get(eng.engineer_name, Decimal("0"))
        out.append({
            "id": eng.id,
            "name": eng.engineer_name,
            "total_commission": float(total_commission),
            "total_payments": float(total_payments),
            "pending_amount": float(total_commission - total_payments),
        })
    return out
