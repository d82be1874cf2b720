# panel/blueprints/printers/routes.py
from flask import jsonify, request, send_file

from panel.blueprints.printers import printers_bp
from panel.services import registry
from panel.services.assignment import auto_assign, complete_assignment
from panel.services.errors import InvalidPrinterDataError, PanelError
from panel.services.ledger_export import build_assignments_workbook
from panel.utils.dates import iso_local
from panel.utils.security import api_key_required, current_actor


@printers_bp.errorhandler(PanelError)
def handle_panel_error(e: PanelError):
    return jsonify({"error": e.code, "message": e.message}), e.http_status


def _printer_payload(p) -> dict:
    return {
        "id": str(p.id),
        "name": p.name,
        "model": p.model,
        "material": p.material,
        "status": p.status,
        "created_at": iso_local(p.created_at),
        "updated_at": iso_local(p.updated_at),
    }


def _printer_with_queue_payload(item) -> dict:
    payload = _printer_payload(item.printer)
    payload["queue_jobs"] = item.queue_jobs
    payload["current_job"] = None
    if item.current_job:
        payload["current_job"] = {
            "order_id": str(item.current_job.order_id),
            "assigned_at": iso_local(item.current_job.assigned_at),
            "estimated_completion": iso_local(item.current_job.estimated_completion),
        }
    return payload


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidPrinterDataError("JSON object expected")
    return data


# =========================
# Registro de impresoras
# =========================

@printers_bp.get("")
@api_key_required
def list_printers():
    status = request.args.get("status")
    limit = request.args.get("limit", default=0, type=int) or 100
    offset = request.args.get("offset", default=0, type=int)

    items = registry.list_printers(status=status, limit=limit, offset=offset)
    return jsonify({"printers": [_printer_with_queue_payload(i) for i in items]})


@printers_bp.get("/<string:printer_id>")
@api_key_required
def get_printer(printer_id: str):
    return jsonify(_printer_payload(registry.get_printer(printer_id)))


@printers_bp.post("")
@api_key_required
def create_printer():
    data = _json_body()
    printer = registry.create_printer(
        data.get("name"),
        model=data.get("model"),
        material=data.get("material"),
        status=data.get("status"),
        actor=current_actor(),
    )
    return jsonify(_printer_payload(printer)), 201


@printers_bp.put("/<string:printer_id>")
@api_key_required
def update_printer(printer_id: str):
    data = _json_body()
    printer = registry.update_printer(printer_id, data, actor=current_actor())
    return jsonify(_printer_payload(printer))


@printers_bp.patch("/<string:printer_id>/status")
@api_key_required
def update_printer_status(printer_id: str):
    data = _json_body()
    printer = registry.set_printer_status(printer_id, data.get("status"), actor=current_actor())
    return jsonify(_printer_payload(printer))


@printers_bp.delete("/<string:printer_id>")
@api_key_required
def delete_printer(printer_id: str):
    registry.delete_printer(printer_id, actor=current_actor())
    return jsonify({"ok": True, "message": "printer deleted successfully"})


# =========================
# Cola de trabajo
# =========================

@printers_bp.post("/auto-assign")
@api_key_required
def api_auto_assign():
    """
    Asigna una orden a una impresora.
    Payload:
      { "order_id": "...", "material": "PLA", "estimated_time_hours": 2.5 }
      o fijando impresora:
      { "order_id": "...", "printer_id": "..." }

    estimated_start / estimated_completion son orientativos (cola lineal), no un compromiso.
    """
    data = _json_body()
    result = auto_assign(
        data.get("order_id"),
        material=data.get("material"),
        estimated_hours=data.get("estimated_time_hours"),
        printer_id=data.get("printer_id"),
        actor=current_actor(),
    )

    return jsonify({
        "assignment_id": str(result.assignment_id),
        "order_id": str(result.order_id),
        "printer_id": str(result.printer_id),
        "printer_name": result.printer_name,
        "queue_position": result.queue_position,
        "estimated_start": iso_local(result.estimated_start),
        "estimated_completion": iso_local(result.estimated_completion),
    }), 201


@printers_bp.post("/complete-assignment")
@api_key_required
def api_complete_assignment():
    data = _json_body()
    printer = complete_assignment(data.get("order_id"), actor=current_actor())
    return jsonify(_printer_payload(printer))


@printers_bp.get("/assignments/export")
@api_key_required
def export_assignments():
    """
    Exporta la bitácora de asignaciones a Excel (xlsx):
      - printer_id: solo esa impresora
      - active=1: solo asignaciones activas
    """
    printer_id = request.args.get("printer_id")
    active_only = request.args.get("active") == "1"

    bio = build_assignments_workbook(printer_id=printer_id, active_only=active_only)

    tag = "ACTIVAS" if active_only else "TODAS"
    return send_file(
        bio,
        as_attachment=True,
        download_name=f"asignaciones_{tag}.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
