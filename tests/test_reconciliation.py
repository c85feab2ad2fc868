import os
from concurrent.futures import Executor, Future
from datetime import date, datetime
from decimal import Decimal

from fieldops_api import create_app
from fieldops_api.extensions import db
from fieldops_api.models.bill import Bill
from fieldops_api.models.engineer import Engineer
from fieldops_api.models.engineer_summary import EngineerSummary
from fieldops_api.models.payment import Payment
from fieldops_api.services.ledger import DatabaseLedger
from fieldops_api.services.summary_service import SummaryService
from fieldops_api.services.reconciliation import (
    current_month_summaries,
    get_engineer_commissions,
    list_engineer_summaries,
    upsert_engineer_summaries,
    upsert_engineer_summary,
)


def _mk_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    return app


def test_upsert_creates_then_overwrites():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        row, created = upsert_engineer_summary("e1", "Raj Kumar", 2, 2025, 250, 50, 200)
        assert created
        assert row.id.startswith("es_") and len(row.id) == 23

        again, created = upsert_engineer_summary("e1", "Raj Kumar", 2, 2025, 300, 100, 180)
        assert not created
        assert again.id == row.id
        assert again.monthly_commission == Decimal("300")
        assert again.pending_amount == Decimal("180")
        assert EngineerSummary.query.count() == 1

        # a different period is a new row
        upsert_engineer_summary("e1", "Raj Kumar", 3, 2025, 0, 0, 180)
        assert EngineerSummary.query.count() == 2


def test_batch_reports_failed_rows():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        result = upsert_engineer_summaries([
            {"engineer_id": "e1", "engineer_name": "Raj Kumar", "month": 2, "year": 2025,
             "monthly_commission": 250, "monthly_paid": 50, "pending_amount": 200},
            {"engineer_id": "e2", "engineer_name": "Amit Shah", "month": None, "year": 2025},
            {"engineer_id": "e3", "engineer_name": "Ravi", "month": 13, "year": 2025},
            {"engineer_name": "No Id", "month": 2, "year": 2025, "pending_amount": 10},
        ])
        assert result["saved"] == ["e1", "No Id"]
        assert result["failed"] == ["e2", "e3"]
        # engineer_id falls back to the name
        assert EngineerSummary.query.filter_by(engineer_id="No Id").count() == 1


def test_list_filters_and_current_month():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        upsert_engineer_summary("e1", "Raj Kumar", 2, 2025, 1, 1, 0)
        upsert_engineer_summary("e2", "Amit Shah", 2, 2025, 1, 1, 0)
        upsert_engineer_summary("e1", "Raj Kumar", 1, 2025, 1, 1, 0)

        assert len(list_engineer_summaries(engineer_id="e1")) == 2
        assert len(list_engineer_summaries(month=2, year=2025)) == 2
        assert [s.engineer_id for s in current_month_summaries("e1", today=date(2025, 1, 15))] == ["e1"]
        assert current_month_summaries(today=date(2024, 6, 1)) == []


def _seed_ledgers():
    raj = Engineer(engineer_name="Raj Kumar", email="raj@fieldops.local")
    amit = Engineer(engineer_name="Amit Shah", email="amit@fieldops.local")
    idle = Engineer(engineer_name="Idle One", email="idle@fieldops.local")
    db.session.add_all([raj, amit, idle]); db.session.commit()
    db.session.add_all([
        Bill(engineer_name="Raj Kumar", service_charge=1000, engineer_commission=250, date=datetime(2025, 1, 31, 23, 0)),
        Bill(engineer_name="Raj Kumar", service_charge=400, engineer_commission=100, date=datetime(2025, 2, 1, 8, 0)),
        Bill(engineer_name="raj kumar", service_charge=400, engineer_commission=999, date=datetime(2025, 2, 1, 8, 0)),
        Bill(engineer_name="Amit Shah", service_charge=200, engineer_commission=50, date=datetime(2025, 3, 5)),
        Payment(engineer_id=raj.id, engineer_name="Raj Kumar", amount=80, date=datetime(2025, 2, 1, 12, 0)),
    ])
    db.session.commit()


def test_engineer_commissions_all_time():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed_ledgers()
        out = {r["name"]: r for r in get_engineer_commissions()}
        assert set(out) == {"Raj Kumar", "Amit Shah", "Idle One"}
        assert out["Raj Kumar"]["total_commission"] == 350.0
        assert out["Raj Kumar"]["total_payments"] == 80.0
        assert out["Raj Kumar"]["pending_amount"] == 270.0
        assert out["Idle One"]["total_commission"] == 0.0


def test_engineer_commissions_inclusive_range():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed_ledgers()
        out = {r["name"]: r for r in get_engineer_commissions(date(2025, 1, 31), date(2025, 2, 1))}
        assert out["Raj Kumar"]["total_commission"] == 350.0
        assert out["Amit Shah"]["total_commission"] == 0.0

        only_feb = {r["name"]: r for r in get_engineer_commissions(start_date=date(2025, 2, 1))}
        assert only_feb["Raj Kumar"]["total_commission"] == 100.0
        assert only_feb["Amit Shah"]["total_commission"] == 50.0


def test_database_ledger_round_trip():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed_ledgers()
    ledger = DatabaseLedger(app)
    assert len(ledger.fetch_bills()) == 4
    assert ledger.fetch_payments()[0].amount == Decimal("80")
    assert {e.engineer_name for e in ledger.fetch_engineers()} == {"Raj Kumar", "Amit Shah", "Idle One"}
    assert ledger.upsert_engineer_summaries([
        {"engineer_id": "e1", "engineer_name": "Raj Kumar", "month": 2, "year": 2025},
    ]) == []


class _InlineExecutor(Executor):
    def submit(self, fn, *args, **kwargs):
        f = Future()
        f.set_result(fn(*args, **kwargs))
        return f


def test_pushed_summaries_agree_with_ground_truth():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed_ledgers()

    service = SummaryService(DatabaseLedger(app), executor=_InlineExecutor(), clock=lambda: datetime(2025, 2, 21))
    service.refresh_all_engineer_summaries()

    with app.app_context():
        truth = {r["id"]: r for r in get_engineer_commissions()}
        raj_id = Engineer.query.filter_by(engineer_name="Raj Kumar").first().id
        pushed = {s.engineer_id: s for s in list_engineer_summaries(month=2, year=2025)}
        assert pushed[raj_id].pending_amount == Decimal(str(truth[raj_id]["pending_amount"]))
        assert pushed[raj_id].monthly_commission == Decimal("100")
        # "raj kumar" has no directory entry, so it is mirrored under its name
        assert "raj kumar" in pushed


def test_refresh_summaries_cli():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _seed_ledgers()
    result = app.test_cli_runner().invoke(args=["refresh-summaries", "--timeout", "5"])
    assert result.exit_code == 0, result.output
    assert "raj kumar: pending 999" in result.output and "(no directory entry)" in result.output
    assert "Refreshed 3 engineer summaries" in result.output
    with app.app_context():
        assert EngineerSummary.query.count() == 3


def test_misspelled_payment_does_not_overwrite_directory_row():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        raj = Engineer(engineer_name="Raj Kumar", email="raj@fieldops.local")
        db.session.add(raj); db.session.commit()
        raj_id = raj.id
        db.session.add_all([
            Bill(engineer_name="Raj Kumar", engineer_id=raj_id, service_charge=400, engineer_commission=100,
                 date=datetime(2025, 2, 10)),
            Payment(engineer_id=raj_id, engineer_name="raj kumar", amount=30, date=datetime(2025, 2, 11)),
        ])
        db.session.commit()

    service = SummaryService(DatabaseLedger(app), executor=_InlineExecutor(), clock=lambda: datetime(2025, 2, 21))
    cached = {s.engineer_name: s for s in service.refresh_all_engineer_summaries()}

    with app.app_context():
        stored = {s.engineer_id: s for s in list_engineer_summaries(month=2, year=2025)}
        assert set(stored) == {raj_id, "raj kumar"}
        assert stored[raj_id].pending_amount == cached["Raj Kumar"].pending_amount == Decimal("100")
        assert stored["raj kumar"].pending_amount == Decimal("-30")
        truth = {r["id"]: r for r in get_engineer_commissions()}
        assert stored[raj_id].pending_amount == Decimal(str(truth[raj_id]["pending_amount"]))
