# app/services/order_service.py
import logging
import re
from dataclasses import dataclass, field

from sqlmodel import Session

from app.core.auth import is_staff
from app.core.config import get_settings
from app.core.errors import (
    EmptyCart,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from app.models.address import Address
from app.models.cart import CartItem
from app.models.order import DeliveryStatusUpdate, Order, OrderItem
from app.models.payment import PaymentIntent
from app.models.user import User
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.meal_repo import MealRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    OrderCreate,
    OrderItemRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    PaymentProof,
)
from app.services.cart_service import price_line
from app.services.notification_service import (
    NotificationDispatcher,
    Recipient,
    order_status_message,
)
from app.services.payment_ledger import PaymentLedger

logger = logging.getLogger(__name__)

# Forward-only; terminal states map to an empty set.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "payment_failed", "cancelled"},
    "payment_failed": {"confirmed", "cancelled"},
    "confirmed": {
        "preparing",
        "in_transit",
        "out_for_delivery",
        "nearby",
        "delivered",
        "cancelled",
    },
    "preparing": {"in_transit", "out_for_delivery", "nearby", "delivered", "cancelled"},
    "in_transit": {"out_for_delivery", "nearby", "delivered"},
    "out_for_delivery": {"nearby", "delivered"},
    "nearby": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}

# Statuses that get a tracking row
DELIVERY_STATUSES = {"preparing", "in_transit", "out_for_delivery", "nearby", "delivered"}

# Orders the customer is still waiting on
OPEN_STATUSES = {"confirmed", "preparing", "in_transit", "out_for_delivery", "nearby"}

CUSTOMER_STATUSES = {"confirmed", "cancelled"}

STATUS_CHANNELS: dict[str, tuple[str, ...]] = {
    "confirmed": ("app", "sms", "email"),
    "preparing": ("app",),
    "in_transit": ("app", "sms"),
    "out_for_delivery": ("app", "sms"),
    "nearby": ("app", "sms"),
    "delivered": ("app", "sms", "email"),
    "cancelled": ("app", "email"),
    "payment_failed": ("app", "email"),
}

_PINCODE_RE = re.compile(r"\b(\d{6})\b")


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def format_address(address: Address) -> str:
    parts = [
        address.name,
        address.address_line1,
        address.address_line2,
        address.city,
        f"{address.state} - {address.pincode}",
        f"Phone: {address.phone}",
    ]
    return ", ".join(p for p in parts if p)


@dataclass
class CartQuote:
    address_text: str | None
    address_id: int | None
    subtotal: float
    delivery_charge: float
    items: list[OrderItem] = field(default_factory=list)

    @property
    def total(self) -> float:
        return round(self.subtotal + self.delivery_charge, 2)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create order from cart (price lines, delivery charge, optional payment)
      - Clear cart in the same transaction
      - Drive status transitions through ALLOWED_TRANSITIONS with a
        compare-and-swap write
      - Record delivery tracking rows and notify the customer
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        meal_repo: MealRepository,
        address_repo: AddressRepository,
        location_repo: LocationRepository,
        user_repo: UserRepository,
        notifier: NotificationDispatcher,
        ledger: PaymentLedger,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.meal_repo = meal_repo
        self.address_repo = address_repo
        self.location_repo = location_repo
        self.user_repo = user_repo
        self.notifier = notifier
        self.ledger = ledger

    # -------- User-facing operations --------

    def quote_cart(
        self,
        session: Session,
        user_id: int,
        delivery_address_id: int | None = None,
        delivery_address: str | None = None,
    ) -> CartQuote:
        """
        Price the user's cart exactly as checkout would, without writing.

        Steps:
          1. Resolve delivery address (saved address or free text).
          2. Load cart items; error if empty.
          3. Validate each line against the menu (exists, available).
          4. Price lines from current meal price + curry adjustment.
          5. Delivery charge from the Location of the pincode.
        """
        # 1) Address
        address_text, address_id, pincode = self._resolve_address(
            session, user_id, delivery_address_id, delivery_address
        )

        # 2) Cart
        cart_items: list[CartItem] = self.cart_repo.list_for_user(session, user_id)
        if not cart_items:
            raise EmptyCart()

        # 3) Validate against the menu
        meals = self.meal_repo.get_many(session, {ci.meal_id for ci in cart_items})
        options = self.meal_repo.get_options(
            session, {ci.curry_option_id for ci in cart_items if ci.curry_option_id}
        )

        errors: list[dict[str, str]] = []
        for ci in cart_items:
            meal = meals.get(ci.meal_id)
            if not meal:
                errors.append({"meal_id": str(ci.meal_id), "reason": "Meal not found"})
            elif not meal.is_available:
                errors.append({"meal_id": str(ci.meal_id), "reason": f"{meal.name} is unavailable"})

        if errors:
            raise ValidationError("Cart validation failed", items=errors)

        # 4) Price lines
        quote = CartQuote(address_text, address_id, subtotal=0.0, delivery_charge=0.0)
        for ci in cart_items:
            meal = meals[ci.meal_id]
            option = options.get(ci.curry_option_id) if ci.curry_option_id else None
            unit_price, adjustment, line_total = price_line(meal, ci, option)
            quote.subtotal += line_total
            quote.items.append(
                OrderItem(
                    meal_id=meal.id,
                    meal_name=meal.name,
                    quantity=ci.quantity,
                    unit_price=unit_price,
                    curry_option_id=ci.curry_option_id,
                    curry_option_name=option.name if option else ci.curry_option_name,
                    curry_option_price=adjustment,
                    notes=ci.notes,
                    line_total=line_total,
                )
            )

        quote.subtotal = round(quote.subtotal, 2)
        if quote.subtotal <= 0:
            raise ValidationError("Total order amount must be positive")

        # 5) Delivery charge
        quote.delivery_charge = self._delivery_charge(session, pincode)
        return quote

    def create_order_from_cart(
        self,
        session: Session,
        user: User,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        A payment proof must come from a gateway order opened for this
        cart (create-order with type "cart") and cover the current total;
        it is checked before anything is written. Order, items, the spent
        payment and the emptied cart are committed together.
        """
        quote = self.quote_cart(
            session, user.id, payload.delivery_address_id, payload.delivery_address
        )

        status = "pending"
        payment_fields: dict[str, str] = {}
        intent: PaymentIntent | None = None
        if payload.payment is not None:
            intent = self.ledger.match(
                session, payload.payment, user.id, "cart", amount=quote.total
            )
            status = "confirmed"
            payment_fields = payload.payment.model_dump()

        order = Order(
            user_id=user.id,
            status=status,
            subtotal=quote.subtotal,
            delivery_charge=quote.delivery_charge,
            total_price=quote.total,
            delivery_address=quote.address_text,
            delivery_address_id=quote.address_id,
            payment_method=payload.payment_method,
            **payment_fields,
        )
        order = self.order_repo.create_order(session, order)

        for item in quote.items:
            item.order_id = order.id
        order_items = self.order_repo.create_items(session, quote.items)

        if intent is not None:
            self.ledger.claim(session, intent, payload.payment.razorpay_payment_id, order.id)

        self.cart_repo.delete_for_user(session, user.id)

        session.commit()
        session.refresh(order)
        for item in order_items:
            session.refresh(item)

        logger.info("Order %s created for user %s (%s)", order.id, user.id, status)

        if status == "confirmed":
            self._notify_status(Recipient.from_user(user), order)

        return self._build_order_with_items_dto(order, order_items)

    def list_user_orders(
        self,
        session: Session,
        user_id: int,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        List orders for the given user (without items).
        """
        return self.order_repo.list_for_user(session, user_id, skip, limit)

    def get_user_order(
        self,
        session: Session,
        user_id: int,
        order_id: int,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self._get_visible_order(session, order_id, user_id=user_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def list_tracking(
        self,
        session: Session,
        actor: User,
        order_id: int,
    ) -> list[DeliveryStatusUpdate]:
        order = self._get_visible_order(
            session, order_id, user_id=None if is_staff(actor) else actor.id
        )
        return self.order_repo.list_status_updates(session, order.id)

    def active_delivery_updates(self, session: Session, user_id: int) -> list[DeliveryStatusUpdate]:
        """
        Tracking rows for orders still on their way (polled by the home page).
        """
        return self.order_repo.list_active_status_updates(session, user_id, OPEN_STATUSES)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_all(session, status, skip, limit)

    def get_order_admin(
        self,
        session: Session,
        order_id: int,
    ) -> OrderWithItemsRead:
        order = self._get_visible_order(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Status machine --------

    def advance(
        self,
        session: Session,
        order_id: int,
        payload: OrderStatusUpdate,
        actor: User,
    ) -> Order:
        """
        Move an order to `payload.status` on behalf of `actor`.

        Actor rules:
          - customers: own orders only (others look missing), and only
            'confirmed' (payment proof required) or 'cancelled'
          - manager / admin: any allow-listed transition
        """
        staff = is_staff(actor)
        order = self._get_visible_order(session, order_id, user_id=None if staff else actor.id)

        if not staff:
            if payload.status not in CUSTOMER_STATUSES:
                raise Forbidden("Customers can only confirm or cancel their orders")
            if payload.status == "confirmed" and payload.payment is None:
                raise ValidationError("Payment details are required to confirm an order")

        intent = None
        if payload.status == "confirmed" and payload.payment is not None:
            intent = self._match_order_payment(session, order, payload.status, payload.payment)

        return self._transition(
            session,
            order,
            payload.status,
            payment_fields=payload.payment.model_dump() if intent else None,
            intent=intent,
            message=payload.message if staff else None,
            estimated_time=payload.estimated_time if staff else None,
        )

    def system_advance(
        self,
        session: Session,
        order_id: int,
        new_status: str,
        payment_fields: dict[str, str] | None = None,
        intent: PaymentIntent | None = None,
    ) -> Order:
        """
        Transition triggered by the payment flow / webhook (no actor checks).
        `intent`, when given, is consumed in the same transaction.
        """
        order = self._get_visible_order(session, order_id)
        return self._transition(
            session, order, new_status, payment_fields=payment_fields, intent=intent
        )

    def confirm_with_payment(
        self,
        session: Session,
        order_id: int,
        user: User,
        payment: PaymentProof,
    ) -> Order:
        order = self._get_visible_order(session, order_id, user_id=user.id)
        intent = self._match_order_payment(session, order, "confirmed", payment)
        return self._transition(
            session, order, "confirmed", payment_fields=payment.model_dump(), intent=intent
        )

    def _match_order_payment(
        self,
        session: Session,
        order: Order,
        new_status: str,
        payment: PaymentProof,
    ) -> PaymentIntent:
        """
        The proof must come from the gateway order opened for this very order.
        """
        if not can_transition(order.status, new_status):
            raise InvalidTransition(f"Invalid status transition: {order.status} -> {new_status}")
        intent = self.ledger.match(session, payment, order.user_id, "order", entity_id=order.id)
        if intent is None:
            raise InvalidTransition(f"Order {order.id} is already paid")
        return intent

    def _transition(
        self,
        session: Session,
        order: Order,
        new_status: str,
        payment_fields: dict[str, str] | None = None,
        intent: PaymentIntent | None = None,
        message: str | None = None,
        estimated_time: str | None = None,
    ) -> Order:
        current = order.status
        if not can_transition(current, new_status):
            raise InvalidTransition(f"Invalid status transition: {current} -> {new_status}")

        won = self.order_repo.compare_and_set_status(
            session, order.id, current, new_status, **(payment_fields or {})
        )
        if not won:
            session.rollback()
            raise InvalidTransition(
                f"Order {order.id} is no longer {current}; refresh and try again"
            )

        if intent is not None:
            self.ledger.claim(session, intent, payment_fields["razorpay_payment_id"], order.id)

        title_message = order_status_message(new_status, order.id, order.total_price)
        if new_status in DELIVERY_STATUSES:
            self.order_repo.add_status_update(
                session,
                DeliveryStatusUpdate(
                    order_id=order.id,
                    user_id=order.user_id,
                    status=new_status,
                    message=message or (title_message[1] if title_message else new_status),
                    estimated_time=estimated_time,
                ),
            )

        session.commit()
        session.refresh(order)
        logger.info("Order %s: %s -> %s", order.id, current, new_status)

        owner = self.user_repo.get_by_id(session, order.user_id)
        if owner is not None:
            self._notify_status(Recipient.from_user(owner), order)
        return order

    # -------- Helpers --------

    def _get_visible_order(
        self,
        session: Session,
        order_id: int,
        user_id: int | None = None,
    ) -> Order:
        """
        user_id=None means unrestricted (staff / system).
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFound("Order not found")
        return order

    def _resolve_address(
        self,
        session: Session,
        user_id: int,
        address_id: int | None,
        address_text: str | None,
    ) -> tuple[str | None, int | None, str | None]:
        if address_id is not None:
            address = self.address_repo.get_for_user(session, user_id, address_id)
            if not address:
                raise NotFound("Address not found")
            return format_address(address), address.id, address.pincode

        match = _PINCODE_RE.search(address_text or "")
        return address_text, None, match.group(1) if match else None

    def _delivery_charge(self, session: Session, pincode: str | None) -> float:
        if pincode:
            location = self.location_repo.get_by_pincode(session, pincode)
            if location is not None:
                return location.delivery_fee
        return get_settings().DEFAULT_DELIVERY_CHARGE

    def _notify_status(self, recipient: Recipient, order: Order) -> None:
        title_message = order_status_message(order.status, order.id, order.total_price)
        if title_message is None:
            return
        title, message = title_message
        self.notifier.notify(
            recipient,
            STATUS_CHANNELS.get(order.status, ("app",)),
            title,
            message,
        )

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        return OrderWithItemsRead(
            **order.model_dump(),
            items=[OrderItemRead(**it.model_dump()) for it in items],
        )
