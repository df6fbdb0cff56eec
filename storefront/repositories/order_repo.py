# storefront/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.order import (
    Order,
    OrderAddress,
    OrderItem,
    OrderStatusHistory,
)
from storefront.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """
    Data access layer for orders and everything an order owns
    (items, addresses, status history).
    """

    model = Order

    # ---- Orders ----

    def latest_order_number(self, session: Session) -> str | None:
        stmt = select(Order.order_number).order_by(Order.created_at.desc()).limit(1)
        return session.exec(stmt).first()

    # ---- Owned records ----

    def list_items(self, session: Session, order_id: uuid.UUID) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return list(session.exec(stmt).all())

    def list_addresses(self, session: Session, order_id: uuid.UUID) -> list[OrderAddress]:
        stmt = select(OrderAddress).where(OrderAddress.order_id == order_id)
        return list(session.exec(stmt).all())

    def list_history(self, session: Session, order_id: uuid.UUID) -> list[OrderStatusHistory]:
        stmt = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at)
        )
        return list(session.exec(stmt).all())

    def add_owned(self, session: Session, records: list) -> list:
        """Insert items / addresses / history entries for an order."""
        return self.insert_many(session, records)
