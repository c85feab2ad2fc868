import uuid
from datetime import datetime
from fieldops_api.extensions import db


class Payment(db.Model):
    __tablename__ = "payments"

    id            = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    engineer_id   = db.Column(db.String(36), nullable=False, index=True)
    engineer_name = db.Column(db.String(255), nullable=False, index=True)
    amount        = db.Column(db.Numeric(12, 2), nullable=False)
    date          = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_at    = db.Column(db.DateTime, default=datetime.utcnow)
