# app/services/subscription_service.py
import logging
from datetime import date

from sqlmodel import Session

from app.core.clock import today_local
from app.core.errors import InvalidTransition, NoRemainingDays, NotFound, ValidationError
from app.models.payment import PaymentIntent
from app.models.subscription import Subscription, SubscriptionPlan
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.subscription_repo import (
    SubscriptionPlanRepository,
    SubscriptionRepository,
)
from app.schemas.order import PaymentProof
from app.schemas.subscription import (
    PlanCreate,
    PlanRead,
    PlansByPreference,
    PlanUpdate,
    SubscriptionCreate,
    SubscriptionModify,
    SubscriptionRead,
    SubscriptionUpdate,
)
from app.services.notification_service import NotificationDispatcher, Recipient
from app.services import subscription_status as state
from app.services.payment_ledger import PaymentLedger

logger = logging.getLogger(__name__)


class SubscriptionService:
    """
    Business logic for subscription plans and enrollments.

    Rules:
      - status / end_date / days_remaining are derived on every read
        (see app.services.subscription_status), never stored
      - modify moves the undelivered days to a new start date
      - cancelled is an explicit flag and overrides the derived status
      - every state change is a conditional update on the values read
    """

    def __init__(
        self,
        plan_repo: SubscriptionPlanRepository,
        repo: SubscriptionRepository,
        address_repo: AddressRepository,
        notifier: NotificationDispatcher,
        ledger: PaymentLedger,
    ):
        self.plan_repo = plan_repo
        self.repo = repo
        self.address_repo = address_repo
        self.notifier = notifier
        self.ledger = ledger

    # -------- Read model --------

    def to_read(self, sub: Subscription, today: date | None = None) -> SubscriptionRead:
        derived = state.compute_subscription_state(
            sub.start_date,
            sub.duration_days,
            today or today_local(),
            sub.cancelled,
        )
        return SubscriptionRead(
            **sub.model_dump(),
            end_date=derived.end_date,
            days_remaining=derived.days_remaining,
            status=derived.status,
        )

    # -------- Plans --------

    def list_plans(self, session: Session, dietary_preference: str | None = None) -> list[SubscriptionPlan]:
        return self.plan_repo.list(session, active_only=True, dietary_preference=dietary_preference)

    def plans_by_preference(self, session: Session) -> PlansByPreference:
        grouped = PlansByPreference()
        for plan in self.plan_repo.list(session, active_only=True):
            bucket = getattr(grouped, plan.dietary_preference, None)
            if bucket is not None:
                bucket.append(PlanRead.model_validate(plan))
        return grouped

    def list_all_plans(self, session: Session) -> list[SubscriptionPlan]:
        return self.plan_repo.list(session, active_only=False)

    def get_plan(self, session: Session, plan_id: int) -> SubscriptionPlan:
        plan = self.plan_repo.get_by_id(session, plan_id)
        if not plan:
            raise NotFound("Subscription plan not found")
        return plan

    def create_plan(self, session: Session, payload: PlanCreate) -> SubscriptionPlan:
        data = payload.model_dump()
        plan = SubscriptionPlan(**data)
        return self.plan_repo.create(session, plan)

    def update_plan(self, session: Session, plan_id: int, payload: PlanUpdate) -> SubscriptionPlan:
        plan = self.get_plan(session, plan_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(plan, key, value)
        return self.plan_repo.update(session, plan)

    def deactivate_plan(self, session: Session, plan_id: int) -> SubscriptionPlan:
        """
        Plans are never hard-deleted: existing subscriptions still point at them.
        """
        plan = self.get_plan(session, plan_id)
        plan.is_active = False
        return self.plan_repo.update(session, plan)

    # -------- Subscriptions --------

    def create(self, session: Session, user: User, payload: SubscriptionCreate) -> SubscriptionRead:
        """
        Enroll the user in a plan.

        - start_date cannot be in the past
        - price = plan.price * person_count (server side)
        - payment proof, when present, must come from a gateway order opened
          for this plan and person count; it is checked before anything is written
        """
        plan = self.get_plan(session, payload.plan_id)
        if not plan.is_active:
            raise ValidationError("Subscription plan is not available")

        today = today_local()
        if payload.start_date < today:
            raise ValidationError("Start date cannot be in the past")

        if payload.delivery_address_id is not None:
            self._check_address(session, user.id, payload.delivery_address_id)

        price = round(plan.price * payload.person_count, 2)
        payment_fields: dict[str, str] = {}
        payment_status = "pending"
        intent = None
        if payload.payment is not None:
            intent = self.ledger.match(
                session, payload.payment, user.id, "plan", entity_id=plan.id, amount=price
            )
            payment_fields = payload.payment.model_dump()
            payment_status = "paid"

        sub = Subscription(
            user_id=user.id,
            plan_id=plan.id,
            plan=plan.name,
            subscription_type=plan.plan_type,
            start_date=payload.start_date,
            duration_days=plan.duration,
            meals_per_month=plan.duration,
            price=price,
            person_count=payload.person_count,
            dietary_preference=plan.dietary_preference,
            payment_method=payload.payment_method,
            time_slot=payload.time_slot or plan.time_slot,
            delivery_address_id=payload.delivery_address_id,
            payment_status=payment_status,
            **payment_fields,
        )
        sub = self.repo.create(session, sub)
        if intent is not None:
            self.ledger.claim(session, intent, payload.payment.razorpay_payment_id, sub.id)
        session.commit()
        session.refresh(sub)

        logger.info("Subscription %s created for user %s (plan %s)", sub.id, user.id, plan.id)

        if payment_status == "paid":
            self.notifier.notify(
                Recipient.from_user(user),
                ("app", "sms", "email"),
                "Subscription confirmed",
                f"Your {sub.plan} subscription starts on {sub.start_date:%d %b %Y}.",
            )
        return self.to_read(sub, today)

    def get_own(self, session: Session, user_id: int, subscription_id: int) -> Subscription:
        sub = self.repo.get_by_id(session, subscription_id)
        if not sub or sub.user_id != user_id:
            raise NotFound("Subscription not found")
        return sub

    def get(self, session: Session, user_id: int, subscription_id: int) -> SubscriptionRead:
        return self.to_read(self.get_own(session, user_id, subscription_id))

    def list_for_user(self, session: Session, user_id: int) -> list[SubscriptionRead]:
        today = today_local()
        return [self.to_read(s, today) for s in self.repo.list_for_user(session, user_id)]

    def list_all(self, session: Session, skip: int = 0, limit: int = 100) -> list[SubscriptionRead]:
        today = today_local()
        return [self.to_read(s, today) for s in self.repo.list_all(session, skip, limit)]

    def update(
        self,
        session: Session,
        user_id: int,
        subscription_id: int,
        payload: SubscriptionUpdate,
    ) -> SubscriptionRead:
        """
        Change delivery details only; the schedule stays as is.
        """
        sub = self.get_own(session, user_id, subscription_id)
        if sub.cancelled:
            raise InvalidTransition("Cancelled subscriptions cannot be changed")

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("delivery_address_id") is not None:
            self._check_address(session, user_id, changes["delivery_address_id"])

        for key, value in changes.items():
            if value is not None:
                setattr(sub, key, value)
        self.repo.update(session, sub)
        session.commit()
        session.refresh(sub)
        return self.to_read(sub)

    def modify(
        self,
        session: Session,
        user_id: int,
        subscription_id: int,
        payload: SubscriptionModify,
    ) -> SubscriptionRead:
        """
        Reschedule the undelivered days to start on `resume_date`.

          delivered = max(0, today - start_date + 1)
          remaining = duration_days - delivered
          remaining <= 0          -> NoRemainingDays
          start_date    := resume_date
          duration_days := remaining
          => end_date = resume_date + remaining - 1
        """
        sub = self.get_own(session, user_id, subscription_id)
        if sub.cancelled:
            raise InvalidTransition("Cancelled subscriptions cannot be modified")

        today = today_local()
        if payload.resume_date < today:
            raise ValidationError("Resume date cannot be in the past")

        remaining = state.remaining_days(sub.start_date, sub.duration_days, today)
        if remaining <= 0:
            raise NoRemainingDays()

        if payload.delivery_address_id is not None:
            self._check_address(session, user_id, payload.delivery_address_id)

        values: dict = {"start_date": payload.resume_date, "duration_days": remaining}
        if payload.resume_date > today:
            # Paused until resume_date; the sweep announces the restart
            values["notified_status"] = None
        for key in ("time_slot", "delivery_address_id", "person_count"):
            value = getattr(payload, key)
            if value is not None:
                values[key] = value

        won = self.repo.reschedule(
            session, sub.id, sub.start_date, sub.duration_days, values
        )
        if not won:
            session.rollback()
            raise InvalidTransition("Subscription changed concurrently; refresh and try again")
        session.commit()
        session.refresh(sub)

        logger.info(
            "Subscription %s rescheduled: %s remaining days from %s",
            sub.id,
            remaining,
            payload.resume_date,
        )
        return self.to_read(sub, today)

    def cancel(self, session: Session, user_id: int, subscription_id: int) -> SubscriptionRead:
        sub = self.get_own(session, user_id, subscription_id)
        today = today_local()
        current = state.compute_subscription_state(
            sub.start_date, sub.duration_days, today, sub.cancelled
        ).status
        if current in (state.CANCELLED, state.COMPLETED):
            raise InvalidTransition(f"Cannot cancel a {current} subscription")

        if not self.repo.mark_cancelled(session, sub.id):
            session.rollback()
            raise InvalidTransition("Subscription is already cancelled")
        session.commit()
        session.refresh(sub)
        logger.info("Subscription %s cancelled by user %s", sub.id, user_id)
        return self.to_read(sub, today)

    # -------- Payment hooks --------

    def mark_paid(
        self,
        session: Session,
        subscription_id: int,
        payment: PaymentProof,
    ) -> Subscription:
        """
        Record a verified payment. The same proof again is a no-op.
        """
        sub = self._get(session, subscription_id)
        intent = self.ledger.match(session, payment, sub.user_id, "subscription", entity_id=sub.id)
        if intent is None:
            return sub
        return self._settle(session, sub, intent, payment.model_dump())

    def renew(
        self,
        session: Session,
        subscription_id: int,
        payment: PaymentProof,
    ) -> Subscription:
        """
        Apply a paid renewal. Each renewal payment extends the plan once;
        replaying the same proof leaves the schedule untouched.
        """
        sub = self._get(session, subscription_id)
        intent = self.ledger.match(
            session, payment, sub.user_id, "subscription_renewal", entity_id=sub.id
        )
        if intent is None:
            return sub
        return self._extend(session, sub, intent, payment.model_dump())

    def apply_capture(
        self,
        session: Session,
        intent: PaymentIntent,
        payment_fields: dict[str, str],
    ) -> Subscription:
        """
        Payment captured by the gateway (authenticated webhook) for an
        intent that has not been used yet.
        """
        sub = self._get(session, intent.entity_id)
        if intent.purpose == "subscription_renewal":
            return self._extend(session, sub, intent, payment_fields)
        return self._settle(session, sub, intent, payment_fields)

    def _settle(
        self,
        session: Session,
        sub: Subscription,
        intent: PaymentIntent,
        payment_fields: dict[str, str],
    ) -> Subscription:
        self.repo.mark_paid(session, sub.id, **payment_fields)
        self.ledger.claim(session, intent, payment_fields["razorpay_payment_id"], sub.id)
        session.commit()
        session.refresh(sub)
        return sub

    def _extend(
        self,
        session: Session,
        sub: Subscription,
        intent: PaymentIntent,
        payment_fields: dict[str, str],
    ) -> Subscription:
        """
        Another full plan length:
          - window still running or not started: extend duration_days
          - window already over: start a fresh window today
        """
        if sub.cancelled:
            raise InvalidTransition("Cancelled subscriptions cannot be renewed")

        today = today_local()
        if state.end_date_for(sub.start_date, sub.duration_days) >= today:
            schedule = {"duration_days": sub.duration_days + sub.meals_per_month}
        else:
            schedule = {"start_date": today, "duration_days": sub.meals_per_month}

        won = self.repo.reschedule(
            session,
            sub.id,
            sub.start_date,
            sub.duration_days,
            {
                **schedule,
                "payment_status": "paid",
                "notified_status": None,
                **payment_fields,
            },
        )
        if not won:
            session.rollback()
            raise InvalidTransition("Subscription changed concurrently; refresh and try again")
        self.ledger.claim(session, intent, payment_fields["razorpay_payment_id"], sub.id)
        session.commit()
        session.refresh(sub)
        logger.info("Subscription %s renewed until %s", sub.id, state.end_date_for(sub.start_date, sub.duration_days))
        return sub

    # -------- Helpers --------

    def _get(self, session: Session, subscription_id: int) -> Subscription:
        sub = self.repo.get_by_id(session, subscription_id)
        if not sub:
            raise NotFound("Subscription not found")
        return sub

    def _check_address(self, session: Session, user_id: int, address_id: int) -> None:
        if not self.address_repo.get_for_user(session, user_id, address_id):
            raise NotFound("Address not found")
