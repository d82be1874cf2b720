# panel/services/ledger_export.py
from io import BytesIO
from typing import Optional

import openpyxl
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

from panel.extensions import db
from panel.models.assignment import PrinterAssignment
from panel.models.printer import Printer
from panel.utils.dates import to_local
from panel.utils.parsing import parse_optional_printer_id

HEADERS = [
    "ASIGNACION",
    "ORDEN",
    "IMPRESORA_ID",
    "IMPRESORA",
    "ASIGNADA",
    "COMPLETADA",
    "ACTIVA",
]


def _ledger_query(printer_id=None, active_only: bool = False):
    """
    Fuente de verdad para el export (misma query, mismos filtros).
    """
    q = (
        db.session.query(PrinterAssignment, Printer)
        .join(Printer, Printer.id == PrinterAssignment.printer_id)
    )

    printer_uuid = parse_optional_printer_id(printer_id)
    if printer_uuid is not None:
        q = q.filter(PrinterAssignment.printer_id == printer_uuid)

    if active_only:
        q = q.filter(PrinterAssignment.completed_at.is_(None))

    return q.order_by(PrinterAssignment.assigned_at.desc())


def _excel_dt(dt):
    # Excel no acepta datetimes con tzinfo
    local_dt = to_local(dt)
    return local_dt.replace(tzinfo=None) if local_dt else ""


def build_assignments_workbook(printer_id=None, active_only: bool = False) -> BytesIO:
    rows = _ledger_query(printer_id, active_only).all()

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Asignaciones"

    ws.append(HEADERS)

    # Header style
    for col_idx in range(1, len(HEADERS) + 1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")

    for a, p in rows:
        ws.append([
            str(a.id),
            str(a.order_id),
            str(p.id),
            p.name or "",
            _excel_dt(a.assigned_at),
            _excel_dt(a.completed_at),
            "SI" if a.is_active else "NO",
        ])

    # Auto ancho
    for col_idx in range(1, len(HEADERS) + 1):
        col_letter = get_column_letter(col_idx)
        max_len = 0
        for cell in ws[col_letter]:
            v = "" if cell.value is None else str(cell.value)
            if len(v) > max_len:
                max_len = len(v)
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)

    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio
