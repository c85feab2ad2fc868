from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from flask import Blueprint, current_app, request

from fieldops_api.extensions import db
from fieldops_api.common.auth import requires_roles
from fieldops_api.common.http import ok, fail, pick, parse_date, parse_decimal, as_float, iso
from fieldops_api.common.paging import paginate
from fieldops_api.models.bill import Bill
from fieldops_api.models.engineer import Engineer
from fieldops_api.services.ledger import parse_timestamp

bp = Blueprint("bills", __name__, url_prefix="/api/v1/bills")


def default_commission(service_charge: Decimal) -> Decimal:
    """Commission fixed at bill creation: service charge × ENGINEER_COMMISSION_RATE, rounded to whole units."""
    rate = Decimal(str(current_app.config.get("ENGINEER_COMMISSION_RATE", 0.25)))
    return (service_charge * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def _row(b: Bill):
    return {
        "id": b.id,
        "bill_number": b.bill_number,
        "engineer_name": b.engineer_name,
        "engineer_id": b.engineer_id,
        "service_type": b.service_type,
        "customer_name": b.customer_name,
        "contact_number": b.contact_number,
        "address": b.address,
        "payment_method": b.payment_method,
        "status": b.status,
        "service_charge": as_float(b.service_charge),
        "total": as_float(b.total),
        "engineer_commission": as_float(b.engineer_commission),
        "date": iso(b.date),
        "created_at": iso(b.created_at),
    }


@bp.get("")
@requires_roles("admin", "engineer")
def list_bills():
    q = Bill.query
    name = request.args.get("engineer_name")
    if name:
        q = q.filter(Bill.engineer_name == name)
    d_from = parse_date(request.args.get("from"))
    d_to = parse_date(request.args.get("to"))
    if d_from:
        q = q.filter(Bill.date >= datetime.combine(d_from, datetime.min.time()))
    if d_to:
        q = q.filter(Bill.date < datetime.combine(d_to + timedelta(days=1), datetime.min.time()))
    q = q.order_by(Bill.created_at.desc(), Bill.id.desc())
    rows, meta = paginate(q)
    return ok([_row(b) for b in rows], **meta)


@bp.get("/<bill_id>")
@requires_roles("admin", "engineer")
def get_bill(bill_id: str):
    b = db.session.get(Bill, bill_id)
    if not b:
        return fail("Bill not found", 404)
    return ok(_row(b))


@bp.post("")
@requires_roles("admin")
def create_bill():
    j = request.get_json(silent=True) or {}

    name = (pick(j, "engineer_name", "serviceboyName", "serviceBoyName") or "").strip()
    charge = parse_decimal(pick(j, "service_charge", "serviceCharge"))
    if not name or charge is None:
        return fail("engineer_name and service_charge are required", 422)
    if charge < 0:
        return fail("service_charge must be >= 0", 422)

    commission = parse_decimal(pick(j, "engineer_commission", "engineerCommission"))
    if commission is None:
        commission = default_commission(charge)

    raw_date = pick(j, "date")
    when = parse_timestamp(raw_date) if raw_date else datetime.utcnow()
    if when is None:
        return fail("date must be ISO-8601", 422)

    engineer_id = pick(j, "engineer_id", "engineerId")
    if not engineer_id:
        eng = Engineer.query.filter_by(engineer_name=name).first()
        engineer_id = eng.id if eng else None

    b = Bill(
        engineer_name=name,
        engineer_id=engineer_id,
        bill_number=pick(j, "bill_number", "billNumber"),
        service_type=pick(j, "service_type", "serviceType"),
        customer_name=pick(j, "customer_name", "customerName"),
        contact_number=pick(j, "contact_number", "contactNumber"),
        address=pick(j, "address"),
        payment_method=pick(j, "payment_method", "paymentMethod"),
        status=pick(j, "status", default="paid"),
        service_charge=charge,
        total=parse_decimal(pick(j, "total")),
        engineer_commission=commission,
        date=when,
    )
    db.session.add(b)
    db.session.commit()
    return ok({"id": b.id, "engineer_commission": as_float(b.engineer_commission)}, 201)


@bp.delete("/<bill_id>")
@requires_roles("admin")
def delete_bill(bill_id: str):
    b = db.session.get(Bill, bill_id)
    if not b:
        return fail("Bill not found", 404)
    db.session.delete(b); db.session.commit()
    return ok({"deleted": bill_id})
