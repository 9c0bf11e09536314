# app/services/cart_service.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.models.cart import CartItem
from app.models.meal import CurryOption, Meal
from app.repositories.cart_repo import CartRepository
from app.repositories.meal_repo import MealRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartItemRead,
    CartSummary,
)

logger = logging.getLogger(__name__)


def price_line(
    meal: Meal | None,
    item: CartItem,
    option: CurryOption | None,
) -> tuple[float, float, float]:
    """
    Current price of a cart line.

    Returns:
        (unit_price, curry_adjustment, line_total)

    The curry adjustment is read from the live option; if the option has
    been deleted the snapshot taken at add-time is used instead.
    """
    unit_price = meal.price if meal is not None else 0.0
    if option is not None:
        adjustment = option.price_adjustment
    else:
        adjustment = item.curry_option_price or 0.0
    line_total = round(item.quantity * (unit_price + adjustment), 2)
    return unit_price, adjustment, line_total


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate meal existence / availability and curry option ownership
      - merge repeated (meal, curry option) adds into one row
      - enforce per-user ownership of cart rows (foreign rows look missing)
      - compute line totals and cart totals at read time
    """

    def __init__(self, cart_repo: CartRepository, meal_repo: MealRepository):
        self.cart_repo = cart_repo
        self.meal_repo = meal_repo

    # ---- internal helpers ----

    def _get_available_meal(self, session: Session, meal_id: int) -> Meal:
        meal = self.meal_repo.get_by_id(session, meal_id)
        if not meal:
            raise NotFound("Meal not found")
        if not meal.is_available:
            raise ValidationError("Meal is currently unavailable")
        return meal

    def _get_option_for_meal(
        self,
        session: Session,
        meal_id: int,
        option_id: int | None,
    ) -> CurryOption | None:
        if option_id is None:
            return None
        option = self.meal_repo.get_option(session, option_id)
        if not option or option.meal_id != meal_id:
            raise ValidationError("Curry option does not belong to this meal")
        return option

    def _get_own_item(self, session: Session, user_id: int, item_id: int) -> CartItem:
        item = self.cart_repo.get_for_user(session, user_id, item_id)
        if not item:
            raise NotFound("Cart item not found")
        return item

    # ---- public operations ----

    def get_cart_summary(
        self,
        session: Session,
        user_id: int,
    ) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with line_total)
          - total_quantity
          - total_price
        """
        items = self.cart_repo.list_for_user(session, user_id)
        meals = self.meal_repo.get_many(session, {it.meal_id for it in items})
        options = self.meal_repo.get_options(
            session, {it.curry_option_id for it in items if it.curry_option_id}
        )

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = 0.0

        for it in items:
            meal = meals.get(it.meal_id)
            option = options.get(it.curry_option_id) if it.curry_option_id else None
            unit_price, adjustment, line_total = price_line(meal, it, option)

            total_qty += it.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    id=it.id,
                    meal_id=it.meal_id,
                    meal_name=meal.name if meal else None,
                    meal_image_url=meal.image_url if meal else None,
                    quantity=it.quantity,
                    unit_price=unit_price,
                    curry_option_id=it.curry_option_id,
                    curry_option_name=option.name if option else it.curry_option_name,
                    curry_option_price=adjustment,
                    notes=it.notes,
                    line_total=line_total,
                    is_available=bool(meal and meal.is_available),
                    created_at=it.created_at,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=round(total_price, 2),
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: int,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a meal (optionally with a curry option) to the user's cart.

        Rules:
          - meal must exist and be available
          - curry option, if given, must belong to the meal
          - same (meal, curry option) pair => quantity is incremented in place
        """
        self._get_available_meal(session, payload.meal_id)
        option = self._get_option_for_meal(session, payload.meal_id, payload.curry_option_id)

        existing = self.cart_repo.find_line(
            session, user_id, payload.meal_id, payload.curry_option_id
        )
        if existing:
            self.cart_repo.increment_quantity(session, existing.id, payload.quantity)
        else:
            item = CartItem(
                user_id=user_id,
                meal_id=payload.meal_id,
                quantity=payload.quantity,
                curry_option_id=option.id if option else None,
                curry_option_name=option.name if option else None,
                curry_option_price=option.price_adjustment if option else None,
                notes=payload.notes,
            )
            try:
                self.cart_repo.create(session, item)
            except IntegrityError:
                # Another request inserted the same line first; merge into it
                session.rollback()
                existing = self.cart_repo.find_line(
                    session, user_id, payload.meal_id, payload.curry_option_id
                )
                if existing is None:
                    raise
                self.cart_repo.increment_quantity(session, existing.id, payload.quantity)

        return self.get_cart_summary(session, user_id)

    def update_item(
        self,
        session: Session,
        user_id: int,
        item_id: int,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Update quantity / notes / curry option of a cart line.

        Switching to a curry option the cart already holds for this meal
        merges the two lines (quantities summed).
        """
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("Nothing to update")

        item = self._get_own_item(session, user_id, item_id)

        if "quantity" in changes:
            if changes["quantity"] is None:
                raise ValidationError("quantity must be at least 1")
            item.quantity = changes["quantity"]
        if "notes" in changes:
            item.notes = changes["notes"]

        if "curry_option_id" in changes and changes["curry_option_id"] != item.curry_option_id:
            option = self._get_option_for_meal(session, item.meal_id, changes["curry_option_id"])
            twin = self.cart_repo.find_line(
                session, user_id, item.meal_id, changes["curry_option_id"], exclude_id=item.id
            )
            if twin:
                twin.quantity += item.quantity
                if item.notes and not twin.notes:
                    twin.notes = item.notes
                session.delete(item)
                self.cart_repo.update(session, twin)
                return self.get_cart_summary(session, user_id)

            item.curry_option_id = option.id if option else None
            item.curry_option_name = option.name if option else None
            item.curry_option_price = option.price_adjustment if option else None

        self.cart_repo.update(session, item)
        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: int,
        item_id: int,
    ) -> CartSummary:
        """
        Remove a line from the cart and return updated summary.
        """
        item = self._get_own_item(session, user_id, item_id)
        self.cart_repo.delete(session, item)
        return self.get_cart_summary(session, user_id)

    def clear_cart(
        self,
        session: Session,
        user_id: int,
    ) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        self.cart_repo.clear_user_cart(session, user_id)
        return CartSummary(items=[], total_quantity=0, total_price=0.0)
