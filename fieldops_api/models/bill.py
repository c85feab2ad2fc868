import uuid
from datetime import datetime
from fieldops_api.extensions import db


class Bill(db.Model):
    __tablename__ = "bills"

    id                  = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    bill_number         = db.Column(db.String(50))
    engineer_name       = db.Column(db.String(255), index=True)   # ledger join key (exact match)
    engineer_id         = db.Column(db.String(36), index=True)    # resolved from the directory at creation
    service_type        = db.Column(db.String(120))
    customer_name       = db.Column(db.String(255))
    contact_number      = db.Column(db.String(30))
    address             = db.Column(db.String(255))
    payment_method      = db.Column(db.String(30))
    status              = db.Column(db.String(30), default="paid")
    service_charge      = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total               = db.Column(db.Numeric(12, 2))
    # fixed at creation, never recomputed
    engineer_commission = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    date                = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    created_at          = db.Column(db.DateTime, default=datetime.utcnow)
