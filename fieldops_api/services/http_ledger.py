# fieldops_api/services/http_ledger.py
from __future__ import annotations

import logging
import os
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from fieldops_api.common.errors import NetworkFailure
from fieldops_api.services.ledger import DirectoryEntry, LedgerBill, LedgerPayment, to_decimal

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))


def validate_payment_amount(amount, pending) -> Optional[str]:
    """
    Form-level check run before a payment is submitted. Returns an error
    message, or None when the amount is acceptable. The API itself does not
    enforce this, so two concurrent submissions can still overpay.
    """
    if amount is None or amount == "":
        return "Please enter an amount"
    try:
        amt = Decimal(str(amount))
    except ArithmeticError:
        return "Please enter a valid amount"
    if not amt.is_finite() or amt <= 0:
        return "Please enter a valid amount"
    pend = to_decimal(pending)
    if amt > pend:
        return f"Amount cannot exceed pending amount ({pend})"
    return None


class HttpLedgerClient:
    """Ledger source + summary persister speaking to the /api/v1 REST surface."""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = (base_url or os.getenv("FIELDOPS_API_URL", "http://localhost:5000/api/v1")).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    # ---------- transport ----------
    def _request(self, method: str, path: str, resource: str, **kw) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kw)
        except requests.RequestException as e:
            raise NetworkFailure(resource, str(e)) from e
        if not (200 <= resp.status_code < 300):
            raise NetworkFailure(resource, f"HTTP {resp.status_code}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise NetworkFailure(resource, "invalid JSON body") from e
        # envelope {"success": true, "data": ...}; bare arrays from older servers pass through
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # ---------- ledgers ----------
    def fetch_bills(self) -> List[LedgerBill]:
        return [LedgerBill.from_json(j) for j in self._request("GET", "/bills", "bills") or []]

    def fetch_payments(self) -> List[LedgerPayment]:
        return [LedgerPayment.from_json(j) for j in self._request("GET", "/payments", "payments") or []]

    def fetch_engineer_payments(self, engineer_id: str, engineer_name: str) -> List[LedgerPayment]:
        path = f"/payments/engineer/{quote(str(engineer_id), safe='')}/{quote(engineer_name, safe='')}"
        data = self._request("GET", path, "payments") or []
        return [LedgerPayment.from_json(j) for j in data]

    def fetch_engineers(self) -> List[DirectoryEntry]:
        return [DirectoryEntry.from_json(j) for j in self._request("GET", "/engineers", "engineers") or []]

    def create_payment(self, engineer_id: str, engineer_name: str, amount, date: Optional[str] = None) -> str:
        body: Dict[str, Any] = {"engineer_id": engineer_id, "engineer_name": engineer_name, "amount": float(amount)}
        if date:
            body["date"] = date
        return self._request("POST", "/payments", "payments", json=body)["id"]

    def delete_payments(self, ids: List[str]) -> int:
        return self._request("DELETE", "/payments", "payments", json={"ids": list(ids)})["deleted"]

    # ---------- durable summaries ----------
    def upsert_engineer_summaries(self, rows: List[Dict[str, Any]]) -> List[str]:
        """Batch upsert; returns engineer ids the server could not save."""
        data = self._request("POST", "/engineer-summary/batch", "engineer-summary", json={"rows": rows})
        return list((data or {}).get("failed") or [])
