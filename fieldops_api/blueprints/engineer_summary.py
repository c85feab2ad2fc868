from __future__ import annotations
from datetime import date

from flask import Blueprint, request

from fieldops_api.common.auth import requires_roles
from fieldops_api.common.http import ok, fail, pick, as_float, iso
from fieldops_api.models.engineer_summary import EngineerSummary
from fieldops_api.services.reconciliation import (
    current_month_summaries,
    list_engineer_summaries,
    upsert_engineer_summaries,
    upsert_engineer_summary,
)

bp = Blueprint("engineer_summary", __name__, url_prefix="/api/v1/engineer-summary")


def _row(s: EngineerSummary):
    return {
        "id": s.id,
        "engineer_id": s.engineer_id,
        "engineer_name": s.engineer_name,
        "month": s.month,
        "year": s.year,
        "monthly_commission": as_float(s.monthly_commission),
        "monthly_paid": as_float(s.monthly_paid),
        "pending_amount": as_float(s.pending_amount),
        "created_at": iso(s.created_at),
        "updated_at": iso(s.updated_at),
    }


def _int_arg(name: str):
    v = request.args.get(name)
    if v in (None, ""):
        return None
    return int(v)


def _normalize(j: dict) -> dict:
    """Accept snake_case and the legacy camelCase payload; month/year default to today."""
    today = date.today()
    name = pick(j, "engineer_name", "engineerName")
    return {
        "engineer_id": pick(j, "engineer_id", "engineerId", default=name),
        "engineer_name": name,
        "month": pick(j, "month", default=today.month),
        "year": pick(j, "year", default=today.year),
        "monthly_commission": pick(j, "monthly_commission", "monthlyCommission", default=0),
        "monthly_paid": pick(j, "monthly_paid", "monthlyPaid", default=0),
        "pending_amount": pick(j, "pending_amount", "pendingAmount", default=0),
    }


@bp.post("")
@requires_roles("admin")
def upsert_summary():
    r = _normalize(request.get_json(silent=True) or {})
    if not r["engineer_id"] or not r["engineer_name"]:
        return fail("engineer_id and engineer_name are required", 422)
    try:
        month, year = int(r["month"]), int(r["year"])
    except (TypeError, ValueError):
        return fail("month and year must be integers", 422)
    if not 1 <= month <= 12:
        return fail("month must be between 1 and 12", 422)

    row, created = upsert_engineer_summary(
        engineer_id=str(r["engineer_id"]),
        engineer_name=r["engineer_name"],
        month=month,
        year=year,
        monthly_commission=r["monthly_commission"],
        monthly_paid=r["monthly_paid"],
        pending_amount=r["pending_amount"],
    )
    return ok({"id": row.id, "created": created}, 201 if created else 200)


@bp.post("/batch")
@requires_roles("admin")
def upsert_summary_batch():
    j = request.get_json(silent=True) or {}
    rows = j.get("rows")
    if not isinstance(rows, list):
        return fail("rows must be an array", 422)
    result = upsert_engineer_summaries([_normalize(r or {}) for r in rows])
    return ok(result)


@bp.get("")
@requires_roles("admin", "engineer")
def list_summaries():
    try:
        month, year = _int_arg("month"), _int_arg("year")
    except ValueError:
        return fail("month and year must be integers", 422)
    rows = list_engineer_summaries(engineer_id=request.args.get("engineer_id"), month=month, year=year)
    return ok([_row(s) for s in rows])


@bp.get("/current-month")
@requires_roles("admin", "engineer")
def list_current_month():
    rows = current_month_summaries(engineer_id=request.args.get("engineer_id"))
    return ok([_row(s) for s in rows])
