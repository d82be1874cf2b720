from datetime import datetime, timezone

from panel.extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    # Usuario del panel (header X-PANEL-USER); NULL si no se envió
    actor = db.Column(db.String(120), nullable=True)

    action = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(50), nullable=True)
    entity_id = db.Column(db.String(36), nullable=True)

    meta = db.Column(db.JSON, nullable=True)
