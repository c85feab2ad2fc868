from __future__ import annotations
from datetime import datetime

from flask import Blueprint, request

from fieldops_api.common.auth import current_email, requires_roles
from fieldops_api.common.http import ok, fail, parse_date
from fieldops_api.models.bill import Bill
from fieldops_api.models.engineer import Engineer
from fieldops_api.models.payment import Payment
from fieldops_api.services.aggregation import compute_engineer_summary
from fieldops_api.services.directory import resolve_engineer_name
from fieldops_api.services.ledger import DirectoryEntry, LedgerBill, LedgerPayment
from fieldops_api.services.reconciliation import get_engineer_commissions

bp = Blueprint("commissions", __name__, url_prefix="/api/v1")


@bp.get("/engineer-commissions")
@requires_roles("admin")
def engineer_commissions():
    """Ground-truth totals recomputed from the bill/payment tables."""
    start_raw, end_raw = request.args.get("start_date"), request.args.get("end_date")
    start, end = parse_date(start_raw), parse_date(end_raw)
    if (start_raw and not start) or (end_raw and not end):
        return fail("start_date/end_date must be YYYY-MM-DD", 422)
    if start and end and end < start:
        return fail("end_date must be >= start_date", 422)
    return ok(get_engineer_commissions(start, end))


@bp.get("/me/commission-summary")
@requires_roles("admin", "engineer")
def my_commission_summary():
    email = current_email()
    directory = [DirectoryEntry.from_model(e) for e in Engineer.query.all()]
    name = resolve_engineer_name(directory, email)

    bills, payments = [], []
    if name:
        bills = [LedgerBill.from_model(b) for b in Bill.query.filter(Bill.engineer_name == name).all()]
        payments = [LedgerPayment.from_model(p) for p in Payment.query.filter(Payment.engineer_name == name).all()]

    summary = compute_engineer_summary(bills, payments, name, datetime.utcnow())
    data = summary.to_dict()
    data["email"] = email
    data["last_updated"] = datetime.utcnow().isoformat()
    return ok(data)
