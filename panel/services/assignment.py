# panel/services/assignment.py
"""
Asignación de órdenes a impresoras (cola de trabajo).

Cada operación es una sola transacción. Toda la coordinación entre
requests concurrentes se hace con locks de fila en la base de datos:

- orden: FOR UPDATE (serializa asignaciones de la misma orden)
- impresora pedida: FOR UPDATE (espera)
- impresora automática: FOR UPDATE SKIP LOCKED (no espera, pasa a la siguiente)

Si algo falla, rollback completo; nada parcial queda escrito.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from panel.extensions import db
from panel.models.assignment import ACTIVE_ORDER_INDEX, PrinterAssignment
from panel.models.printer import Printer
from panel.services.audit import audit_log
from panel.services.errors import (
    AssignmentNotFoundError,
    InvalidEstimatedTimeError,
    OrderAlreadyAssignedError,
    PanelError,
)
from panel.services.order_status import OrderStatusStore, get_order_status_store
from panel.services.printer_selector import count_active_jobs, select_auto, select_preferred
from panel.services.registry import derive_status
from panel.utils.parsing import (
    normalize_estimated_hours,
    parse_optional_printer_id,
    parse_order_id,
)

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    """
    estimated_start / estimated_completion son orientativos: se asume que
    cada trabajo delante en la cola dura lo mismo que éste. No es un SLA.
    """

    assignment_id: uuid.UUID
    order_id: uuid.UUID
    printer_id: uuid.UUID
    printer_name: str
    queue_position: int
    assigned_at: datetime
    estimated_start: datetime
    estimated_completion: datetime


def estimate_window(assigned_at: datetime, queue_position: int, hours: float):
    duration = timedelta(hours=hours)
    start = assigned_at + queue_position * duration
    return start, start + duration


def _is_active_order_violation(e: IntegrityError) -> bool:
    """¿El IntegrityError viene del índice único de asignación activa por orden?"""
    diag = getattr(e.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == ACTIVE_ORDER_INDEX
    # SQLite no expone el nombre: "UNIQUE constraint failed: printer_assignments.order_id"
    message = str(e.orig)
    return "UNIQUE" in message and "printer_assignments.order_id" in message


def _find_active_assignment_id(order_id: uuid.UUID) -> Optional[uuid.UUID]:
    row = (
        db.session.query(PrinterAssignment.id)
        .filter(
            PrinterAssignment.order_id == order_id,
            PrinterAssignment.completed_at.is_(None),
        )
        .first()
    )
    return row[0] if row else None


def auto_assign(
    order_id,
    material: Optional[str] = None,
    estimated_hours=None,
    printer_id=None,
    *,
    orders: Optional[OrderStatusStore] = None,
    actor: Optional[str] = None,
) -> AssignmentResult:
    order_uuid = parse_order_id(order_id)
    preferred_id = parse_optional_printer_id(printer_id)
    hours = normalize_estimated_hours(
        estimated_hours, float(current_app.config.get("DEFAULT_ESTIMATE_HOURS", 4.0))
    )
    material = str(material or "").strip()
    orders = orders or get_order_status_store()

    try:
        order_status = orders.get_status_for_update(order_uuid)

        if _find_active_assignment_id(order_uuid) is not None:
            raise OrderAlreadyAssignedError()

        if preferred_id is not None:
            selected = select_preferred(preferred_id, material)
        else:
            selected = select_auto(material)

        printer = selected.printer
        queue_position = selected.active_jobs
        assigned_at = datetime.now(timezone.utc)

        # Antes de escribir: si la ventana no cabe en un datetime no queda nada persistido
        try:
            estimated_start, estimated_completion = estimate_window(assigned_at, queue_position, hours)
        except OverflowError:
            raise InvalidEstimatedTimeError("estimated time is too large") from None

        assignment = PrinterAssignment(
            id=uuid.uuid4(),
            order_id=order_uuid,
            printer_id=printer.id,
            assigned_at=assigned_at,
        )
        db.session.add(assignment)
        db.session.flush()

        if printer.status != "busy":
            printer.status = "busy"
            printer.updated_at = assigned_at

        # Solo new -> printing; si ya va más adelante no se toca
        if order_status == "new":
            orders.set_status(order_uuid, "printing")

        audit_log(
            actor,
            "PRINTER_ASSIGNED",
            "order",
            order_uuid,
            {
                "assignment_id": str(assignment.id),
                "printer_id": str(printer.id),
                "queue_position": queue_position,
                "estimated_hours": hours,
                "rule": "PREFERRED" if preferred_id is not None else "AUTO",
            },
        )

        result_ids = (assignment.id, printer.id, printer.name)
        db.session.commit()

    except IntegrityError as e:
        db.session.rollback()
        if not _is_active_order_violation(e):
            logger.exception("Auto-assign failed for order %s", order_uuid)
            raise
        # Índice único parcial: otra transacción activó la misma orden
        logger.warning("Order %s already has an active assignment (unique index)", order_uuid)
        raise OrderAlreadyAssignedError() from None
    except PanelError as e:
        db.session.rollback()
        logger.warning("Auto-assign rejected for order %s: %s", order_uuid, e.code)
        raise
    except Exception:
        db.session.rollback()
        logger.exception("Auto-assign failed for order %s", order_uuid)
        raise

    assignment_id, printer_uuid, printer_name = result_ids

    logger.info(
        "Order %s assigned to printer %s (queue position %d)",
        order_uuid, printer_uuid, queue_position,
    )

    return AssignmentResult(
        assignment_id=assignment_id,
        order_id=order_uuid,
        printer_id=printer_uuid,
        printer_name=printer_name,
        queue_position=queue_position,
        assigned_at=assigned_at,
        estimated_start=estimated_start,
        estimated_completion=estimated_completion,
    )


def complete_assignment(order_id, *, actor: Optional[str] = None) -> Printer:
    """
    Cierra la asignación activa más antigua de la orden y recalcula
    el status de la impresora (available si ya no le quedan trabajos).
    """
    order_uuid = parse_order_id(order_id)

    try:
        assignment = (
            db.session.query(PrinterAssignment)
            .filter(
                PrinterAssignment.order_id == order_uuid,
                PrinterAssignment.completed_at.is_(None),
            )
            .order_by(PrinterAssignment.assigned_at.asc())
            .with_for_update()
            .first()
        )
        if not assignment:
            raise AssignmentNotFoundError()

        now = datetime.now(timezone.utc)
        assignment.completed_at = now
        db.session.flush()

        # Lock de impresora ANTES de contar: una asignación concurrente
        # sobre la misma impresora queda incluida en el conteo.
        printer = (
            db.session.query(Printer)
            .filter(Printer.id == assignment.printer_id)
            .with_for_update()
            .one()
        )
        remaining = count_active_jobs(printer.id)

        previous_status = printer.status
        printer.status = derive_status(printer.status, remaining)
        printer.updated_at = now

        audit_log(
            actor,
            "ASSIGNMENT_COMPLETED",
            "order",
            order_uuid,
            {
                "assignment_id": str(assignment.id),
                "printer_id": str(printer.id),
                "remaining_jobs": remaining,
                "from_status": previous_status,
                "to_status": printer.status,
            },
        )

        db.session.commit()

    except PanelError as e:
        db.session.rollback()
        logger.warning("Complete rejected for order %s: %s", order_uuid, e.code)
        raise
    except Exception:
        db.session.rollback()
        logger.exception("Complete assignment failed for order %s", order_uuid)
        raise

    logger.info("Order %s completed on printer %s (%s)", order_uuid, printer.id, printer.status)
    return printer
