# panel/models/printer.py
import uuid
from datetime import datetime, timezone

from panel.extensions import db

PRINTER_STATUSES = ("available", "busy", "maintenance", "offline")

# Estados administrativos: la impresora no recibe trabajos nuevos
OVERRIDE_STATUSES = frozenset({"maintenance", "offline"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Printer(db.Model):
    __tablename__ = "printers"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    name = db.Column(db.String(120), nullable=False)
    model = db.Column(db.String(120), nullable=True)

    # "PLA, PETG, TPU" | NULL = acepta cualquier material
    material = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="available")  # available|busy|maintenance|offline

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    assignments = db.relationship(
        "PrinterAssignment",
        back_populates="printer",
        lazy=True,
    )

    @property
    def is_overridden(self) -> bool:
        return self.status in OVERRIDE_STATUSES
