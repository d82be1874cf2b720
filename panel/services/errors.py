"""
Errores esperados del módulo de impresoras.

Todos son resultados tipados: la transacción se revierte completa y el
llamador decide si reintenta con otros parámetros (otra impresora, sin
filtro de material, etc.).
"""


class PanelError(Exception):
    """Base de los errores de asignación/registro de impresoras."""

    code = "panel_error"
    http_status = 400
    default_message = "Error en la operación"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


# =========================
# Validación
# =========================

class InvalidOrderIdError(PanelError):
    code = "invalid_order_id"
    default_message = "invalid order ID"


class InvalidPrinterIdError(PanelError):
    code = "invalid_printer_id"
    default_message = "invalid printer ID"


class InvalidEstimatedTimeError(PanelError):
    code = "invalid_estimated_time"
    default_message = "estimated time must be a number of hours"


class InvalidPrinterStatusError(PanelError):
    code = "invalid_printer_status"
    default_message = "invalid printer status"


class InvalidPrinterDataError(PanelError):
    code = "invalid_printer_data"
    default_message = "invalid printer data"


# =========================
# No encontrado
# =========================

class OrderNotFoundError(PanelError):
    code = "order_not_found"
    http_status = 404
    default_message = "order not found"


class PrinterNotFoundError(PanelError):
    code = "printer_not_found"
    http_status = 404
    default_message = "printer not found"


class AssignmentNotFoundError(PanelError):
    code = "assignment_not_found"
    http_status = 404
    default_message = "active printer assignment not found"


# =========================
# Conflicto / elegibilidad
# =========================

class OrderAlreadyAssignedError(PanelError):
    code = "order_already_assigned"
    http_status = 409
    default_message = "order already has an active printer assignment"


class PrinterUnavailableError(PanelError):
    code = "printer_unavailable"
    http_status = 409
    default_message = "printer is unavailable"


class NoCompatiblePrinterError(PanelError):
    code = "no_compatible_printer"
    http_status = 409
    default_message = "no compatible printer available"


class PrinterInUseError(PanelError):
    code = "printer_in_use"
    http_status = 409
    default_message = "printer has assignment history and cannot be deleted"
