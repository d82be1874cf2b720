# panel/services/registry.py
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from flask import current_app

from panel.extensions import db
from panel.models.assignment import PrinterAssignment
from panel.models.printer import Printer, PRINTER_STATUSES, OVERRIDE_STATUSES
from panel.services.audit import audit_log
from panel.services.errors import (
    InvalidPrinterDataError,
    InvalidPrinterStatusError,
    PrinterInUseError,
    PrinterNotFoundError,
)
from panel.services.printer_selector import active_jobs_column, count_active_jobs
from panel.utils.dates import as_utc
from panel.utils.parsing import parse_printer_id, sanitize_optional_string

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "model", "material", "status")


@dataclass
class CurrentJob:
    order_id: uuid.UUID
    assigned_at: datetime
    estimated_completion: datetime


@dataclass
class PrinterWithQueue:
    printer: Printer
    queue_jobs: int
    current_job: Optional[CurrentJob] = None


@contextmanager
def _transaction():
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def normalize_printer_status(raw: Optional[str]) -> str:
    status = (raw or "").strip().lower()
    if not status:
        return "available"
    if status not in PRINTER_STATUSES:
        raise InvalidPrinterStatusError(f"invalid printer status: {raw}")
    return status


def derive_status(current: str, active_jobs: int) -> str:
    """
    busy/available salen de la bitácora; maintenance/offline son
    decisión administrativa y se respetan.
    """
    if current in OVERRIDE_STATUSES:
        return current
    return "busy" if active_jobs > 0 else "available"


def _apply_status(printer: Printer, requested: str) -> None:
    # Pedir available/busy = quitar el override; el valor real lo decide la ocupación
    if requested in OVERRIDE_STATUSES:
        printer.status = requested
    else:
        printer.status = derive_status(requested, count_active_jobs(printer.id))


def _get_for_update(printer_id) -> Printer:
    printer = (
        db.session.query(Printer)
        .filter(Printer.id == parse_printer_id(printer_id))
        .with_for_update()
        .first()
    )
    if not printer:
        raise PrinterNotFoundError()
    return printer


def get_printer(printer_id) -> Printer:
    printer = db.session.get(Printer, parse_printer_id(printer_id))
    if not printer:
        raise PrinterNotFoundError()
    return printer


def list_printers(status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[PrinterWithQueue]:
    """
    Impresoras (más nuevas primero) con su cola:
      - current_job: asignación activa más antigua
      - queue_jobs: activas sin contar la actual
    """
    active_jobs = active_jobs_column()
    q = db.session.query(Printer, active_jobs)

    if status and status.strip():
        q = q.filter(Printer.status == normalize_printer_status(status))

    q = q.order_by(Printer.created_at.desc())
    if limit and limit > 0:
        q = q.limit(limit)
    if offset and offset > 0:
        q = q.offset(offset)

    rows = q.all()

    current_by_printer: Dict[uuid.UUID, PrinterAssignment] = {}
    printer_ids = [p.id for p, _ in rows]
    if printer_ids:
        active_rows = (
            db.session.query(PrinterAssignment)
            .filter(
                PrinterAssignment.printer_id.in_(printer_ids),
                PrinterAssignment.completed_at.is_(None),
            )
            .order_by(PrinterAssignment.assigned_at.asc())
            .all()
        )
        for a in active_rows:
            current_by_printer.setdefault(a.printer_id, a)

    default_hours = float(current_app.config.get("DEFAULT_ESTIMATE_HOURS", 4.0))

    items = []
    for printer, active in rows:
        active = int(active or 0)
        current = current_by_printer.get(printer.id)
        current_job = None
        if current:
            assigned_at = as_utc(current.assigned_at)
            current_job = CurrentJob(
                order_id=current.order_id,
                assigned_at=assigned_at,
                estimated_completion=assigned_at + timedelta(hours=default_hours),
            )
            active -= 1

        items.append(PrinterWithQueue(printer=printer, queue_jobs=max(active, 0), current_job=current_job))

    return items


def create_printer(
    name: Optional[str],
    model: Optional[str] = None,
    material: Optional[str] = None,
    status: Optional[str] = None,
    actor: Optional[str] = None,
) -> Printer:
    name = (name or "").strip()
    if not name:
        raise InvalidPrinterDataError("name is required")

    printer = Printer(
        id=uuid.uuid4(),
        name=name,
        model=sanitize_optional_string(model),
        material=sanitize_optional_string(material),
        status=normalize_printer_status(status),
    )

    with _transaction():
        db.session.add(printer)
        audit_log(actor, "PRINTER_CREATED", "printer", printer.id, {"name": name, "status": printer.status})

    logger.info("Printer %s created (%s)", printer.id, name)
    return printer


def update_printer(printer_id, changes: Dict[str, Any], actor: Optional[str] = None) -> Printer:
    """Actualización parcial: solo se tocan las llaves presentes en `changes`."""
    changes = {k: v for k, v in (changes or {}).items() if k in UPDATABLE_FIELDS}

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise InvalidPrinterDataError("name cannot be empty")
        changes["name"] = name

    requested_status = None
    if "status" in changes:
        requested_status = normalize_printer_status(changes["status"])

    with _transaction():
        printer = _get_for_update(printer_id)

        if "name" in changes:
            printer.name = changes["name"]
        if "model" in changes:
            printer.model = sanitize_optional_string(changes["model"])
        if "material" in changes:
            printer.material = sanitize_optional_string(changes["material"])
        if requested_status is not None:
            _apply_status(printer, requested_status)

        printer.updated_at = datetime.now(timezone.utc)
        audit_log(actor, "PRINTER_UPDATED", "printer", printer.id, {"fields": sorted(changes)})

    return printer


def set_printer_status(printer_id, status: Optional[str], actor: Optional[str] = None) -> Printer:
    requested = normalize_printer_status(status)

    with _transaction():
        printer = _get_for_update(printer_id)
        previous = printer.status
        _apply_status(printer, requested)
        printer.updated_at = datetime.now(timezone.utc)

        audit_log(
            actor,
            "PRINTER_STATUS_CHANGED",
            "printer",
            printer.id,
            {"from": previous, "requested": requested, "to": printer.status},
        )

    logger.info("Printer %s status %s -> %s", printer.id, previous, printer.status)
    return printer


def delete_printer(printer_id, actor: Optional[str] = None) -> None:
    with _transaction():
        printer = _get_for_update(printer_id)

        # La bitácora nunca se borra: impresora con historial no se elimina
        has_history = (
            db.session.query(PrinterAssignment.id)
            .filter(PrinterAssignment.printer_id == printer.id)
            .first()
        )
        if has_history:
            raise PrinterInUseError()

        audit_log(actor, "PRINTER_DELETED", "printer", printer.id, {"name": printer.name})
        db.session.delete(printer)

    logger.info("Printer %s deleted", printer_id)
