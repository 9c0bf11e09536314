# app/routers/meals.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.repositories.address_repo import AddressRepository, LocationRepository
from app.repositories.meal_repo import MealRepository
from app.schemas.address import LocationRead
from app.schemas.meal import CurryOptionRead, MealRead, MealWithOptionsRead
from app.services.address_service import AddressService
from app.services.meal_service import MealService

router = APIRouter(tags=["Meals"])

service = MealService(MealRepository())
address_service = AddressService(AddressRepository(), LocationRepository())


# -------- Public endpoints --------


@router.get("/meals", response_model=list[MealRead])
def list_meals(
    category: str | None = None,
    dietary: str | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 100,
    session: Session = Depends(get_session),
):
    """
    Public menu (available meals only).

    Filters:
      - category
      - dietary: veg | veg_with_egg | nonveg ...
      - search: case-insensitive name match
    """
    return service.list_meals(
        session,
        category=category,
        dietary=dietary,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.get("/meals/{meal_id}", response_model=MealWithOptionsRead)
def get_meal(meal_id: int, session: Session = Depends(get_session)):
    return service.get_meal_with_options(session, meal_id)


@router.get("/meals/{meal_id}/curry-options", response_model=list[CurryOptionRead])
def list_meal_curry_options(meal_id: int, session: Session = Depends(get_session)):
    return service.list_options_for_meal(session, meal_id)


@router.get("/curry-options", response_model=list[CurryOptionRead])
def list_curry_options(session: Session = Depends(get_session)):
    return service.list_all_options(session)


@router.get("/locations", response_model=list[LocationRead])
def list_locations(session: Session = Depends(get_session)):
    """
    Serviceable pincodes with their delivery fee.
    """
    return address_service.list_locations(session)
