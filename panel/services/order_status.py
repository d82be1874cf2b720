# panel/services/order_status.py
import uuid
from datetime import datetime, timezone

from panel.extensions import db
from panel.models.order import Order
from panel.services.errors import OrderNotFoundError


class OrderStatusStore:
    """
    Lo único que el motor de asignación necesita del módulo de órdenes:
    leer el status con lock y avanzarlo. Debe operar en la misma
    transacción que la asignación.
    """

    def get_status_for_update(self, order_id: uuid.UUID) -> str:
        raise NotImplementedError

    def set_status(self, order_id: uuid.UUID, new_status: str) -> None:
        raise NotImplementedError


class SqlOrderStatusStore(OrderStatusStore):
    def get_status_for_update(self, order_id: uuid.UUID) -> str:
        # El lock de la orden serializa asignaciones concurrentes de la misma orden
        row = (
            db.session.query(Order.status)
            .filter(Order.id == order_id)
            .with_for_update()
            .first()
        )
        if row is None:
            raise OrderNotFoundError()
        return row[0]

    def set_status(self, order_id: uuid.UUID, new_status: str) -> None:
        updated = (
            db.session.query(Order)
            .filter(Order.id == order_id)
            .update(
                {"status": new_status, "updated_at": datetime.now(timezone.utc)},
                synchronize_session="fetch",
            )
        )
        if not updated:
            raise OrderNotFoundError()


def get_order_status_store() -> OrderStatusStore:
    return SqlOrderStatusStore()
