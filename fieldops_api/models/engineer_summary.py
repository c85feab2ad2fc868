import uuid
from datetime import datetime
from fieldops_api.extensions import db


def new_summary_id() -> str:
    return f"es_{uuid.uuid4().hex[:20]}"


class EngineerSummary(db.Model):
    """
    Durable mirror of a client-computed summary, one row per (engineer, month, year).
    Rows are overwritten whole on every refresh; the numbers are trusted as sent.
    """
    __tablename__ = "engineer_summaries"

    id                 = db.Column(db.String(40), primary_key=True, default=new_summary_id)
    engineer_id        = db.Column(db.String(255), nullable=False, index=True)
    engineer_name      = db.Column(db.String(255), nullable=False)
    month              = db.Column(db.Integer, nullable=False)   # 1..12
    year               = db.Column(db.Integer, nullable=False)
    monthly_commission = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    monthly_paid       = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    pending_amount     = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at         = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at         = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("engineer_id", "month", "year", name="uq_engineer_summary_period"),
        db.Index("ix_engineer_summary_month_year", "month", "year"),
    )
