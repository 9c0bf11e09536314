# app/repositories/order_repo.py
from datetime import datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.order import DeliveryStatusUpdate, Order, OrderItem
from app.repositories.counter_repo import assign_id


class OrderRepository:
    """
    Data access layer for orders, order_items and delivery tracking.

    NOTE:
      - No commits here; order creation and status changes are multi-step
        transactions. The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: int,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.id.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, order_id: int) -> Order | None:
        return session.get(Order, order_id)

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        assign_id(session, order)
        session.add(order)
        session.flush()
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        order.updated_at = datetime.now(timezone.utc)
        session.add(order)
        session.flush()
        return order

    def compare_and_set_status(
        self,
        session: Session,
        order_id: int,
        expected: str,
        new: str,
        **fields,
    ) -> bool:
        """
        UPDATE orders SET status=:new WHERE id=:id AND status=:expected.

        Returns:
            True if this call won the write, False if the row was missing or
            its status had already moved on.
        """
        result = session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=new, updated_at=datetime.now(timezone.utc), **fields)
        )
        return result.rowcount == 1

    # ---- Order items ----

    def list_items_for_order(
        self,
        session: Session,
        order_id: int,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        )
        return list(session.exec(stmt).all())

    def create_items(
        self,
        session: Session,
        items: list[OrderItem],
    ) -> list[OrderItem]:
        for item in items:
            assign_id(session, item)
        session.add_all(items)
        session.flush()
        return items

    # ---- Tracking ----

    def add_status_update(
        self,
        session: Session,
        update_row: DeliveryStatusUpdate,
    ) -> DeliveryStatusUpdate:
        assign_id(session, update_row)
        session.add(update_row)
        session.flush()
        return update_row

    def list_status_updates(self, session: Session, order_id: int) -> list[DeliveryStatusUpdate]:
        stmt = (
            select(DeliveryStatusUpdate)
            .where(DeliveryStatusUpdate.order_id == order_id)
            .order_by(DeliveryStatusUpdate.id)
        )
        return list(session.exec(stmt).all())

    def list_active_status_updates(
        self,
        session: Session,
        user_id: int,
        open_statuses: set[str],
    ) -> list[DeliveryStatusUpdate]:
        """
        Tracking rows of the user's orders that are still on their way.
        """
        stmt = (
            select(DeliveryStatusUpdate)
            .join(Order, Order.id == DeliveryStatusUpdate.order_id)
            .where(
                DeliveryStatusUpdate.user_id == user_id,
                Order.status.in_(open_statuses),
            )
            .order_by(DeliveryStatusUpdate.id.desc())
        )
        return list(session.exec(stmt).all())
