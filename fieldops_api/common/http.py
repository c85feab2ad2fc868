# fieldops_api/common/http.py
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import jsonify

def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status

def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status

# ---------- request parsing helpers ----------

def pick(j: dict, *keys, default=None):
    """First present, non-empty value among `keys` (snake_case first, legacy camelCase after)."""
    for k in keys:
        v = j.get(k)
        if v is not None and v != "":
            return v
    return default

def parse_date(s) -> Optional[date]:
    if not s: return None
    try: return date.fromisoformat(str(s)[:10])
    except ValueError: return None

def parse_decimal(x) -> Optional[Decimal]:
    if x is None or x == "": return None
    try: return Decimal(str(x))
    except (InvalidOperation, ValueError): return None

def as_float(x):
    try: return float(x) if x is not None else None
    except (TypeError, ValueError): return None

def iso(v):
    return v.isoformat() if v is not None else None
