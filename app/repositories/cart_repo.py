# app/repositories/cart_repo.py
from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlmodel import Session, select

from app.models.cart import CartItem
from app.repositories.counter_repo import assign_id


class CartRepository:

    # Get items for a user
    def list_for_user(self, session: Session, user_id: int) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.id)
        )
        return list(session.exec(stmt).all())

    def find_line(
        self,
        session: Session,
        user_id: int,
        meal_id: int,
        curry_option_id: int | None,
        exclude_id: int | None = None,
    ) -> CartItem | None:
        """
        Row for the (user, meal, curry option) pair; NULL option matches NULL.
        """
        if curry_option_id is None:
            option_clause = CartItem.curry_option_id.is_(None)
        else:
            option_clause = CartItem.curry_option_id == curry_option_id

        stmt = select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.meal_id == meal_id,
            option_clause,
        )
        if exclude_id is not None:
            stmt = stmt.where(CartItem.id != exclude_id)
        return session.exec(stmt).first()

    def get_for_user(self, session: Session, user_id: int, item_id: int) -> CartItem | None:
        stmt = select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
        return session.exec(stmt).first()

    def increment_quantity(self, session: Session, item_id: int, amount: int) -> None:
        """
        quantity = quantity + amount, evaluated by the database so two
        concurrent adds both land.
        """
        session.exec(
            update(CartItem)
            .where(CartItem.id == item_id)
            .values(
                quantity=CartItem.quantity + amount,
                updated_at=datetime.now(timezone.utc),
            )
        )
        session.commit()

    # CRUD
    def create(self, session: Session, item: CartItem) -> CartItem:
        assign_id(session, item)
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def update(self, session: Session, item: CartItem) -> CartItem:
        item.updated_at = datetime.now(timezone.utc)
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def delete_for_user(self, session: Session, user_id: int) -> None:
        """
        Remove every row of the user WITHOUT committing, so checkout can
        clear the cart in the same transaction as the order insert.
        """
        session.exec(delete(CartItem).where(CartItem.user_id == user_id))

    def clear_user_cart(self, session: Session, user_id: int) -> None:
        self.delete_for_user(session, user_id)
        session.commit()
