# app/repositories/meal_repo.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import delete, func
from sqlmodel import Session, select

from app.models.cart import CartItem
from app.models.meal import CurryOption, Meal
from app.repositories.counter_repo import assign_id


class MealRepository:
    """
    Data access layer for meals and their curry options.
    """

    # ---- Meals ----

    def list(
        self,
        session: Session,
        category: str | None = None,
        dietary: str | None = None,
        search: str | None = None,
        available_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Meal]:
        stmt = select(Meal)

        if category:
            stmt = stmt.where(Meal.category == category)
        if available_only:
            stmt = stmt.where(Meal.is_available == True)  # noqa: E712
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(func.lower(Meal.name).like(pattern))

        stmt = stmt.order_by(Meal.id)
        meals = list(session.exec(stmt).all())

        # dietary_preferences is a JSON list; filter in Python so the query
        # stays portable across SQLite and Postgres
        if dietary:
            meals = [m for m in meals if dietary in (m.dietary_preferences or [])]

        return meals[skip : skip + limit]

    def get_by_id(self, session: Session, meal_id: int) -> Meal | None:
        return session.get(Meal, meal_id)

    def get_many(self, session: Session, meal_ids: set[int]) -> dict[int, Meal]:
        if not meal_ids:
            return {}
        stmt = select(Meal).where(Meal.id.in_(meal_ids))
        return {m.id: m for m in session.exec(stmt).all()}

    def create(self, session: Session, meal: Meal) -> Meal:
        assign_id(session, meal)
        session.add(meal)
        session.commit()
        session.refresh(meal)
        return meal

    def update(self, session: Session, meal: Meal) -> Meal:
        meal.updated_at = datetime.now(timezone.utc)
        session.add(meal)
        session.commit()
        session.refresh(meal)
        return meal

    def delete(self, session: Session, meal: Meal) -> None:
        session.exec(delete(CartItem).where(CartItem.meal_id == meal.id))
        for option in self.list_options_for_meal(session, meal.id):
            session.delete(option)
        session.delete(meal)
        session.commit()

    # ---- Curry options ----

    def list_options(self, session: Session) -> list[CurryOption]:
        stmt = select(CurryOption).order_by(CurryOption.meal_id, CurryOption.id)
        return list(session.exec(stmt).all())

    def list_options_for_meal(self, session: Session, meal_id: int) -> list[CurryOption]:
        stmt = (
            select(CurryOption)
            .where(CurryOption.meal_id == meal_id)
            .order_by(CurryOption.id)
        )
        return list(session.exec(stmt).all())

    def get_option(self, session: Session, option_id: int) -> CurryOption | None:
        return session.get(CurryOption, option_id)

    def get_options(self, session: Session, option_ids: set[int]) -> dict[int, CurryOption]:
        if not option_ids:
            return {}
        stmt = select(CurryOption).where(CurryOption.id.in_(option_ids))
        return {o.id: o for o in session.exec(stmt).all()}

    def create_option(self, session: Session, option: CurryOption) -> CurryOption:
        assign_id(session, option)
        session.add(option)
        session.commit()
        session.refresh(option)
        return option

    def update_option(self, session: Session, option: CurryOption) -> CurryOption:
        session.add(option)
        session.commit()
        session.refresh(option)
        return option

    def delete_option(self, session: Session, option: CurryOption) -> None:
        session.delete(option)
        session.commit()
