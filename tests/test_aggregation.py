from datetime import datetime
from decimal import Decimal

from fieldops_api.services.aggregation import compute_engineer_summary, compute_summaries, month_window
from fieldops_api.services.ledger import DirectoryEntry, LedgerBill, LedgerPayment

NOW = datetime(2025, 2, 21, 12, 0)


def _bill(i, name, amt, when, eid=None):
    return LedgerBill(id=f"b{i}", engineer_name=name, engineer_commission=Decimal(str(amt)), date=when, engineer_id=eid)


def _pay(i, name, amt, when, eid=None):
    return LedgerPayment(id=f"p{i}", engineer_name=name, amount=Decimal(str(amt)), date=when, engineer_id=eid)


def test_month_window_covers_calendar_month():
    start, end = month_window(NOW)
    assert start == datetime(2025, 2, 1)
    assert end == datetime(2025, 3, 1)
    start, end = month_window(datetime(2024, 12, 31, 23, 59))
    assert (start, end) == (datetime(2024, 12, 1), datetime(2025, 1, 1))


def test_totals_and_current_month_split():
    bills = [
        _bill(1, "Raj Kumar", 250, datetime(2025, 2, 10)),
        _bill(2, "Raj Kumar", 150, datetime(2025, 1, 5)),
        _bill(3, "Raj Kumar", 40, datetime(2025, 2, 1, 0, 0)),   # first instant of the month counts
        _bill(4, "Raj Kumar", 60, datetime(2025, 3, 1, 0, 0)),   # next month does not
    ]
    payments = [
        _pay(1, "Raj Kumar", 300, datetime(2025, 2, 12)),
        _pay(2, "Raj Kumar", 50, datetime(2024, 12, 30)),
    ]
    s = compute_summaries(bills, payments, NOW)["Raj Kumar"]
    assert s.total_commission == Decimal("500")
    assert s.monthly_commission == Decimal("290")
    assert s.total_payments == Decimal("350")
    assert s.monthly_payments == Decimal("300")
    assert s.pending_amount == Decimal("150")


def test_names_are_joined_exactly():
    bills = [
        _bill(1, "Raj Kumar", 100, datetime(2025, 2, 10)),
        _bill(2, "raj kumar", 70, datetime(2025, 2, 10)),
    ]
    out = compute_summaries(bills, [], NOW)
    assert set(out) == {"Raj Kumar", "raj kumar"}
    assert out["raj kumar"].total_commission == Decimal("70")


def test_payment_only_engineer_goes_negative():
    out = compute_summaries([], [_pay(1, "Amit Shah", 120, datetime(2025, 2, 3))], NOW)
    s = out["Amit Shah"]
    assert s.total_commission == Decimal("0")
    assert s.pending_amount == Decimal("-120")


def test_records_without_a_name_are_skipped():
    out = compute_summaries([_bill(1, None, 100, NOW), _bill(2, "", 10, NOW)], [_pay(1, None, 5, NOW)], NOW)
    assert out == {}


def test_directory_tags_matched_and_unmatched():
    bills = [_bill(1, "Raj Kumar", 100, NOW), _bill(2, "Ghost", 10, NOW)]
    directory = [DirectoryEntry(id="eng-1", engineer_name="Raj Kumar", email="raj@fieldops.local")]
    out = compute_summaries(bills, [], NOW, directory)
    assert out["Raj Kumar"].matched is True
    assert out["Raj Kumar"].engineer_id == "eng-1"
    assert out["Ghost"].matched is False
    assert out["Ghost"].engineer_id == "Ghost"


def test_without_directory_matched_is_unknown():
    out = compute_summaries([_bill(1, "Raj Kumar", 100, NOW, eid="x1")], [], NOW)
    assert out["Raj Kumar"].matched is None
    assert out["Raj Kumar"].engineer_id == "x1"


def test_single_engineer_mode():
    bills = [_bill(1, "Raj Kumar", 100, NOW), _bill(2, "Amit Shah", 999, NOW)]
    payments = [_pay(1, "Raj Kumar", 30, NOW)]
    s = compute_engineer_summary(bills, payments, "Raj Kumar", NOW)
    assert s.engineer_name == "Raj Kumar"
    assert s.total_commission == Decimal("100")
    assert s.pending_amount == Decimal("70")


def test_single_engineer_mode_zero_cases():
    none = compute_engineer_summary([_bill(1, "Raj Kumar", 100, NOW)], [], None, NOW)
    assert none.engineer_name is None and none.pending_amount == Decimal("0")

    nobody = compute_engineer_summary([_bill(1, "Raj Kumar", 100, NOW)], [], "Nobody", NOW)
    assert nobody.engineer_name == "Nobody"
    assert nobody.total_commission == Decimal("0")


def test_to_dict_uses_floats():
    s = compute_summaries([_bill(1, "Raj Kumar", "12.50", NOW)], [], NOW)["Raj Kumar"]
    d = s.to_dict()
    assert d["total_commission"] == 12.5
    assert d["pending_amount"] == 12.5
    assert d["engineer_name"] == "Raj Kumar"


def test_undated_records_count_toward_totals_only():
    out = compute_summaries([_bill(1, "Raj Kumar", 80, None)], [_pay(1, "Raj Kumar", 30, None)], NOW)
    s = out["Raj Kumar"]
    assert s.total_commission == Decimal("80") and s.monthly_commission == Decimal("0")
    assert s.total_payments == Decimal("30") and s.monthly_payments == Decimal("0")


def test_bill_and_payment_names_join_exactly():
    out = compute_summaries(
        [_bill(1, "Raj Kumar", 100, NOW)],
        [_pay(1, "raj kumar", 30, NOW)],
        NOW,
    )
    assert out["Raj Kumar"].total_payments == Decimal("0")
    assert out["Raj Kumar"].pending_amount == Decimal("100")
    assert out["raj kumar"].total_commission == Decimal("0")
    assert out["raj kumar"].pending_amount == Decimal("-30")


def test_unmatched_name_drops_the_id_its_records_carry():
    directory = [DirectoryEntry(id="eng-1", engineer_name="Raj Kumar", email="raj@fieldops.local")]
    out = compute_summaries(
        [_bill(1, "Raj Kumar", 100, NOW, eid="eng-1")],
        [_pay(1, "raj kumar", 30, NOW, eid="eng-1")],
        NOW,
        directory,
    )
    assert out["Raj Kumar"].engineer_id == "eng-1"
    assert out["raj kumar"].matched is False
    assert out["raj kumar"].engineer_id == "raj kumar"


def test_recompute_is_idempotent():
    bills = [
        _bill(1, "Raj Kumar", 250, datetime(2025, 2, 10), eid="eng-1"),
        _bill(2, "Ghost", 40, datetime(2025, 1, 3)),
        _bill(3, "Raj Kumar", 60, None),
    ]
    payments = [
        _pay(1, "Raj Kumar", 80, datetime(2025, 2, 12)),
        _pay(2, "raj kumar", 15, datetime(2025, 2, 13), eid="eng-1"),
    ]
    directory = [DirectoryEntry(id="eng-1", engineer_name="Raj Kumar", email="raj@fieldops.local")]

    first = {k: v.to_dict() for k, v in compute_summaries(bills, payments, NOW, directory).items()}
    second = {k: v.to_dict() for k, v in compute_summaries(bills, payments, NOW, directory).items()}
    assert first == second
    assert first["Raj Kumar"]["matched"] is True
    assert first["raj kumar"]["engineer_id"] == "raj kumar"
