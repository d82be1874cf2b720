# panel/models/assignment.py
import uuid

from panel.extensions import db

# Máximo una asignación activa por orden
ACTIVE_ORDER_INDEX = "uq_printer_assignments_active_order"


class PrinterAssignment(db.Model):
    """
    Bitácora de asignaciones orden -> impresora.
    Activa mientras completed_at sea NULL. Nunca se borra.
    """

    __tablename__ = "printer_assignments"
    __table_args__ = (
        db.Index("idx_printer_assignments_printer_active", "printer_id", "completed_at"),
        db.Index(
            ACTIVE_ORDER_INDEX,
            "order_id",
            unique=True,
            postgresql_where=db.text("completed_at IS NULL"),
            sqlite_where=db.text("completed_at IS NULL"),
        ),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Sin FK: el status de la orden lo provee OrderStatusStore, que puede vivir fuera de esta base
    order_id = db.Column(db.Uuid, nullable=False, index=True)
    printer_id = db.Column(db.Uuid, db.ForeignKey("printers.id"), nullable=False)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    printer = db.relationship("Printer", back_populates="assignments")

    @property
    def is_active(self) -> bool:
        return self.completed_at is None
