# panel/services/printer_selector.py
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from panel.extensions import db
from panel.models.assignment import PrinterAssignment
from panel.models.printer import Printer
from panel.services.errors import (
    NoCompatiblePrinterError,
    PrinterNotFoundError,
    PrinterUnavailableError,
)

logger = logging.getLogger(__name__)


@dataclass
class SelectedPrinter:
    printer: Printer
    active_jobs: int


def material_supported(printer_material: Optional[str], requested: Optional[str]) -> bool:
    """
    - Material pedido vacío -> cualquier impresora sirve
    - Impresora sin material (NULL/vacío) -> acepta cualquiera
    - Si no: coincidencia sin mayúsculas contra la lista "PLA, PETG"
      o como substring del texto completo
    """
    requested = (requested or "").strip().upper()
    if not requested:
        return True

    if printer_material is None or not printer_material.strip():
        return True

    for part in printer_material.split(","):
        if part.strip().upper() == requested:
            return True

    return requested in printer_material.upper()


def active_jobs_column():
    """Subquery correlacionada: asignaciones activas de cada impresora."""
    return (
        db.session.query(db.func.count(PrinterAssignment.id))
        .filter(
            PrinterAssignment.printer_id == Printer.id,
            PrinterAssignment.completed_at.is_(None),
        )
        .correlate(Printer)
        .scalar_subquery()
        .label("active_jobs")
    )


def count_active_jobs(printer_id: uuid.UUID) -> int:
    return (
        db.session.query(db.func.count(PrinterAssignment.id))
        .filter(
            PrinterAssignment.printer_id == printer_id,
            PrinterAssignment.completed_at.is_(None),
        )
        .scalar()
    ) or 0


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filter_by_material(q, material: str):
    # Misma regla que material_supported, pero en SQL
    material = (material or "").strip()
    if not material:
        return q

    return q.filter(
        db.or_(
            Printer.material.is_(None),
            db.func.trim(Printer.material) == "",
            Printer.material.ilike(f"%{_escape_like(material)}%", escape="\\"),
        )
    )


def _first_unlocked_candidate(status: str, material: str) -> Optional[Printer]:
    active_jobs = active_jobs_column()

    q = db.session.query(Printer, active_jobs).filter(Printer.status == status)
    q = _filter_by_material(q, material)

    # PostgreSQL: FOR UPDATE OF printers SKIP LOCKED
    # Si otra transacción ya tiene la impresora, pasamos a la siguiente en el ranking.
    row = (
        q.order_by(active_jobs.asc(), Printer.created_at.asc())
        .with_for_update(of=Printer, skip_locked=True)
        .first()
    )
    return row[0] if row else None


def select_preferred(printer_id: uuid.UUID, material: str = "") -> SelectedPrinter:
    """
    Impresora pedida explícitamente.
    Lock bloqueante: si otra transacción la tiene, esperamos.
    """
    printer = (
        db.session.query(Printer)
        .filter(Printer.id == printer_id)
        .with_for_update()
        .first()
    )
    if not printer:
        raise PrinterNotFoundError()

    if printer.is_overridden:
        raise PrinterUnavailableError(f"printer is {printer.status}")

    if not material_supported(printer.material, material):
        raise NoCompatiblePrinterError(f"printer does not support material {material.strip()!r}")

    # Conteo después del lock: incluye lo que haya confirmado quien lo tenía antes
    return SelectedPrinter(printer=printer, active_jobs=count_active_jobs(printer.id))


def select_auto(material: str = "") -> SelectedPrinter:
    """
    Selección automática en dos fases, ordenadas por
    (trabajos activos ASC, created_at ASC):

    1) impresoras "available" compatibles con el material
    2) si no hay, impresoras "busy" compatibles (se encola detrás)

    Ninguna fase espera locks ajenos (SKIP LOCKED).
    """
    for status in ("available", "busy"):
        printer = _first_unlocked_candidate(status, material)
        if printer is not None:
            active = count_active_jobs(printer.id)
            logger.debug("Auto-selected printer %s (%s, %d active)", printer.id, status, active)
            return SelectedPrinter(printer=printer, active_jobs=active)

    raise NoCompatiblePrinterError()
