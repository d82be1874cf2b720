# panel/models/order.py
import uuid
from datetime import datetime, timezone

from panel.extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# El CRUD de órdenes vive fuera de este servicio; aquí solo se lee/avanza el status.
class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    status = db.Column(db.String(20), nullable=False, default="new")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
