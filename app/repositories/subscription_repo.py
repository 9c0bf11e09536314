# app/repositories/subscription_repo.py
from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.subscription import Subscription, SubscriptionPlan
from app.repositories.counter_repo import assign_id


class SubscriptionPlanRepository:

    def list(
        self,
        session: Session,
        active_only: bool = True,
        dietary_preference: str | None = None,
    ) -> list[SubscriptionPlan]:
        stmt = select(SubscriptionPlan)
        if active_only:
            stmt = stmt.where(SubscriptionPlan.is_active == True)  # noqa: E712
        if dietary_preference:
            stmt = stmt.where(SubscriptionPlan.dietary_preference == dietary_preference)
        stmt = stmt.order_by(SubscriptionPlan.price, SubscriptionPlan.id)
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, plan_id: int) -> SubscriptionPlan | None:
        return session.get(SubscriptionPlan, plan_id)

    def create(self, session: Session, plan: SubscriptionPlan) -> SubscriptionPlan:
        assign_id(session, plan)
        session.add(plan)
        session.commit()
        session.refresh(plan)
        return plan

    def update(self, session: Session, plan: SubscriptionPlan) -> SubscriptionPlan:
        plan.updated_at = datetime.now(timezone.utc)
        session.add(plan)
        session.commit()
        session.refresh(plan)
        return plan


class SubscriptionRepository:
    """
    Data access layer for subscriptions.

    Every state change is a conditional UPDATE keyed on the values the
    caller read, so concurrent writers cannot both win.
    NOTE: no commits here, the service owns the transaction.
    """

    def get_by_id(self, session: Session, subscription_id: int) -> Subscription | None:
        return session.get(Subscription, subscription_id)

    def list_for_user(self, session: Session, user_id: int) -> list[Subscription]:
        stmt = (
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.id.desc())
        )
        return list(session.exec(stmt).all())

    def list_all(self, session: Session, skip: int = 0, limit: int = 100) -> list[Subscription]:
        stmt = select(Subscription).order_by(Subscription.id.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_not_cancelled(self, session: Session) -> list[Subscription]:
        stmt = (
            select(Subscription)
            .where(Subscription.cancelled == False)  # noqa: E712
            .order_by(Subscription.id)
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, subscription: Subscription) -> Subscription:
        assign_id(session, subscription)
        session.add(subscription)
        session.flush()
        return subscription

    def update(self, session: Session, subscription: Subscription) -> Subscription:
        subscription.updated_at = datetime.now(timezone.utc)
        session.add(subscription)
        session.flush()
        return subscription

    def _conditional_update(self, session: Session, subscription_id: int, where: list, values: dict) -> bool:
        result = session.exec(
            update(Subscription)
            .where(Subscription.id == subscription_id, *where)
            .values(updated_at=datetime.now(timezone.utc), **values)
        )
        return result.rowcount == 1

    def reschedule(
        self,
        session: Session,
        subscription_id: int,
        expected_start: date,
        expected_duration: int,
        values: dict,
    ) -> bool:
        return self._conditional_update(
            session,
            subscription_id,
            [
                Subscription.start_date == expected_start,
                Subscription.duration_days == expected_duration,
                Subscription.cancelled == False,  # noqa: E712
            ],
            values,
        )

    def mark_cancelled(self, session: Session, subscription_id: int) -> bool:
        return self._conditional_update(
            session,
            subscription_id,
            [Subscription.cancelled == False],  # noqa: E712
            {"cancelled": True},
        )

    def mark_paid(self, session: Session, subscription_id: int, **payment_fields) -> bool:
        return self._conditional_update(
            session,
            subscription_id,
            [Subscription.payment_status != "paid"],
            {"payment_status": "paid", **payment_fields},
        )

    def set_notified_status(
        self,
        session: Session,
        subscription_id: int,
        expected: str | None,
        new: str,
    ) -> bool:
        """
        Record which derived status the customer was last told about.
        Only one sweep run can claim a given change.
        """
        if expected is None:
            clause = Subscription.notified_status.is_(None)
        else:
            clause = Subscription.notified_status == expected
        return self._conditional_update(
            session, subscription_id, [clause], {"notified_status": new}
        )
