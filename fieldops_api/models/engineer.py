import uuid
from datetime import datetime
from fieldops_api.extensions import db


class Engineer(db.Model):
    """Directory entry: login email → display name used in the ledgers."""
    __tablename__ = "engineers"

    id             = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    engineer_name  = db.Column(db.String(255), nullable=False, index=True)
    email          = db.Column(db.String(255), nullable=False, index=True)
    contact_number = db.Column(db.String(30))
    address        = db.Column(db.String(255))
    city           = db.Column(db.String(120))
    created_at     = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at     = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
