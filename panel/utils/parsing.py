# panel/utils/parsing.py
import math
import uuid
from typing import Optional

from panel.services.errors import (
    InvalidEstimatedTimeError,
    InvalidOrderIdError,
    InvalidPrinterIdError,
)

# Un año de impresión; más que eso es un dato mal capturado
MAX_ESTIMATED_HOURS = 24 * 365


def _parse_uuid(raw, error_cls) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    text = (str(raw) if raw is not None else "").strip()
    if not text:
        raise error_cls()
    try:
        return uuid.UUID(text)
    except ValueError:
        raise error_cls() from None


def parse_order_id(raw) -> uuid.UUID:
    return _parse_uuid(raw, InvalidOrderIdError)


def parse_printer_id(raw) -> uuid.UUID:
    return _parse_uuid(raw, InvalidPrinterIdError)


def parse_optional_printer_id(raw) -> Optional[uuid.UUID]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    return parse_printer_id(raw)


def normalize_estimated_hours(raw, default: float) -> float:
    """
    Horas estimadas del trabajo.
    - Vacío / None / <= 0 -> default (un estimado faltante nunca bloquea la asignación)
    - No numérico, NaN, infinito o mayor a MAX_ESTIMATED_HOURS -> InvalidEstimatedTimeError
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if isinstance(raw, bool):
        raise InvalidEstimatedTimeError()

    try:
        hours = float(raw)
    except (TypeError, ValueError):
        raise InvalidEstimatedTimeError() from None

    if math.isnan(hours) or math.isinf(hours) or hours > MAX_ESTIMATED_HOURS:
        raise InvalidEstimatedTimeError()
    if hours <= 0:
        return default
    return hours


def sanitize_optional_string(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None
