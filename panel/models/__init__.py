# Importa modelos para que Alembic/SQLAlchemy los detecte
from .order import Order
from .printer import Printer
from .assignment import PrinterAssignment
from .audit import AuditLog
