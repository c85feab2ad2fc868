from __future__ import annotations
from datetime import datetime, timedelta

from flask import Blueprint, request
from sqlalchemy import or_

from fieldops_api.extensions import db
from fieldops_api.common.auth import requires_roles
from fieldops_api.common.http import ok, fail, pick, parse_date, parse_decimal, as_float, iso
from fieldops_api.common.paging import paginate
from fieldops_api.models.payment import Payment
from fieldops_api.services.aggregation import month_window
from fieldops_api.services.ledger import parse_timestamp

bp = Blueprint("payments", __name__, url_prefix="/api/v1/payments")


def _row(p: Payment):
    return {
        "id": p.id,
        "engineer_id": p.engineer_id,
        "engineer_name": p.engineer_name,
        "amount": as_float(p.amount),
        "date": iso(p.date),
        "created_at": iso(p.created_at),
    }


def _filtered(q):
    eid = request.args.get("engineer_id")
    name = request.args.get("engineer_name")
    if eid:
        q = q.filter(Payment.engineer_id == eid)
    if name:
        q = q.filter(Payment.engineer_name == name)
    return q


@bp.post("")
@requires_roles("admin")
def create_payment():
    """
    Records a payout. The amount is not checked against the engineer's
    pending balance here; that check belongs to the submitting form.
    """
    j = request.get_json(silent=True) or {}
    eid = pick(j, "engineer_id", "engineerId")
    name = (pick(j, "engineer_name", "engineerName") or "").strip()
    amt = parse_decimal(pick(j, "amount"))
    if not eid or not name or amt is None:
        return fail("engineer_id, engineer_name, amount required", 422)

    raw_date = pick(j, "date")
    when = parse_timestamp(raw_date) if raw_date else datetime.utcnow()
    if when is None:
        return fail("date must be ISO-8601", 422)

    p = Payment(engineer_id=str(eid), engineer_name=name, amount=amt, date=when)
    db.session.add(p)
    db.session.commit()
    return ok({"id": p.id}, 201)


@bp.get("")
@requires_roles("admin", "engineer")
def list_payments():
    q = _filtered(Payment.query)
    d_from = parse_date(request.args.get("from"))
    d_to = parse_date(request.args.get("to"))
    if d_from:
        q = q.filter(Payment.date >= datetime.combine(d_from, datetime.min.time()))
    if d_to:
        q = q.filter(Payment.date < datetime.combine(d_to + timedelta(days=1), datetime.min.time()))
    rows, meta = paginate(q.order_by(Payment.date.desc(), Payment.id.desc()))
    return ok([_row(p) for p in rows], **meta)


@bp.get("/engineer/<engineer_id>/<path:engineer_name>")
@requires_roles("admin", "engineer")
def list_engineer_payments(engineer_id: str, engineer_name: str):
    # either identifier matches; legacy rows may carry only one of them reliably
    q = Payment.query.filter(or_(Payment.engineer_id == engineer_id, Payment.engineer_name == engineer_name))
    rows = q.order_by(Payment.date.desc(), Payment.id.desc()).all()
    return ok([_row(p) for p in rows])


@bp.get("/current-month")
@requires_roles("admin", "engineer")
def list_current_month_payments():
    start, end = month_window(datetime.utcnow())
    q = _filtered(Payment.query.filter(Payment.date >= start, Payment.date < end))
    rows = q.order_by(Payment.date.desc(), Payment.id.desc()).all()
    return ok([_row(p) for p in rows])


@bp.delete("/<payment_id>")
@requires_roles("admin")
def delete_payment(payment_id: str):
    p = db.session.get(Payment, payment_id)
    if not p:
        return fail("Payment not found", 404)
    db.session.delete(p); db.session.commit()
    return ok({"deleted": 1})


@bp.delete("")
@requires_roles("admin")
def delete_payments():
    j = request.get_json(silent=True) or {}
    ids = j.get("ids")
    if not ids or not isinstance(ids, list):
        return fail("No payment IDs provided", 400)
    n = Payment.query.filter(Payment.id.in_([str(i) for i in ids])).delete(synchronize_session=False)
    db.session.commit()
    return ok({"deleted": n})
