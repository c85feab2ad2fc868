from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal

from flask import Blueprint, request
from sqlalchemy import or_

from fieldops_api.extensions import db
from fieldops_api.common.auth import requires_roles
from fieldops_api.common.http import ok, fail, pick, parse_date, iso
from fieldops_api.models.bill import Bill
from fieldops_api.models.engineer import Engineer
from fieldops_api.models.payment import Payment
from fieldops_api.services.aggregation import month_window
from fieldops_api.services.bucketing import commission_items, group_by_date, payment_items
from fieldops_api.services.ledger import LedgerBill, LedgerPayment

bp = Blueprint("engineers", __name__, url_prefix="/api/v1/engineers")


def _row(e: Engineer):
    return {
        "id": e.id,
        "engineer_name": e.engineer_name,
        "email": e.email,
        "contact_number": e.contact_number,
        "address": e.address,
        "city": e.city,
        "created_at": iso(e.created_at),
    }


@bp.get("")
@requires_roles("admin", "engineer")
def list_engineers():
    rows = Engineer.query.order_by(Engineer.engineer_name.asc()).all()
    return ok([_row(e) for e in rows])


@bp.post("")
@requires_roles("admin")
def create_engineer():
    j = request.get_json(silent=True) or {}
    name = (pick(j, "engineer_name", "engineerName") or "").strip()
    email = (pick(j, "email") or "").strip()
    if not name or not email:
        return fail("engineer_name and email are required", 422)

    e = Engineer(
        engineer_name=name,
        email=email,
        contact_number=pick(j, "contact_number", "contactNumber"),
        address=pick(j, "address"),
        city=pick(j, "city"),
    )
    db.session.add(e)
    db.session.commit()
    return ok(_row(e), 201)


@bp.get("/<path:engineer_name>/transactions")
@requires_roles("admin", "engineer")
def engineer_transactions(engineer_name: str):
    """
    Detail-screen feed: an engineer's commissions or payments grouped into
    day / month sections.
      ?kind=commissions|payments   (default commissions)
      ?group_by_month=1|0          (default 1)
      ?from=YYYY-MM-DD&to=YYYY-MM-DD  inclusive; sections left empty are not returned
    """
    kind = (request.args.get("kind") or "commissions").strip().lower()
    if kind not in ("commissions", "payments"):
        return fail("kind must be 'commissions' or 'payments'", 422)
    by_month = (request.args.get("group_by_month") or "1").lower() in ("1", "true", "yes")
    from_raw, to_raw = request.args.get("from"), request.args.get("to")
    d_from, d_to = parse_date(from_raw), parse_date(to_raw)
    if (from_raw and not d_from) or (to_raw and not d_to):
        return fail("from/to must be YYYY-MM-DD", 422)

    now = datetime.utcnow()
    if kind == "commissions":
        rows = Bill.query.filter(Bill.engineer_name == engineer_name).all()
        items = commission_items(LedgerBill.from_model(b) for b in rows)
    else:
        eng = Engineer.query.filter_by(engineer_name=engineer_name).first()
        cond = Payment.engineer_name == engineer_name
        if eng:
            cond = or_(cond, Payment.engineer_id == eng.id)
        rows = Payment.query.filter(cond).all()
        items = payment_items(LedgerPayment.from_model(p) for p in rows)

    if d_from:
        lo = datetime.combine(d_from, datetime.min.time())
        items = [i for i in items if i.date >= lo]
    if d_to:
        hi = datetime.combine(d_to + timedelta(days=1), datetime.min.time())
        items = [i for i in items if i.date < hi]

    start, end = month_window(now)
    sections = group_by_date(items, group_by_month=by_month, now=now)
    return ok({
        "engineer_name": engineer_name,
        "kind": kind,
        "total": float(sum((i.amount for i in items), Decimal("0"))),
        "current_month_total": float(sum((i.amount for i in items if start <= i.date < end), Decimal("0"))),
        "sections": [s.to_dict() for s in sections],
    })
