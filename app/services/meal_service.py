# app/services/meal_service.py
import logging

from sqlmodel import Session

from app.core.errors import NotFound, ValidationError
from app.core.storage_utils import remove_by_url, upload_meal_image
from app.models.meal import CurryOption, Meal
from app.repositories.meal_repo import MealRepository
from app.schemas.meal import (
    CurryOptionCreate,
    CurryOptionRead,
    CurryOptionUpdate,
    MealCreate,
    MealUpdate,
    MealWithOptionsRead,
)

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class MealService:
    """
    Business logic for the meal catalogue.

    Responsibilities:
      - meal CRUD (admin / manager)
      - curry options per meal
      - image upload/replace orchestration with Supabase Storage
    """

    def __init__(self, repo: MealRepository):
        self.repo = repo

    # ----- Helpers -----

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise ValidationError("Unsupported image type. Allowed: JPEG, PNG, WEBP.")
        if not file_bytes:
            raise ValidationError("Image file is empty")
        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise ValidationError("Image too large (max 5MB).")
        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    def get_meal(self, session: Session, meal_id: int) -> Meal:
        meal = self.repo.get_by_id(session, meal_id)
        if not meal:
            raise NotFound("Meal not found")
        return meal

    # ----- Public catalogue -----

    def list_meals(
        self,
        session: Session,
        category: str | None = None,
        dietary: str | None = None,
        search: str | None = None,
        include_unavailable: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Meal]:
        return self.repo.list(
            session,
            category=category,
            dietary=dietary,
            search=search,
            available_only=not include_unavailable,
            skip=skip,
            limit=limit,
        )

    def get_meal_with_options(self, session: Session, meal_id: int) -> MealWithOptionsRead:
        meal = self.get_meal(session, meal_id)
        options = self.repo.list_options_for_meal(session, meal.id)
        return MealWithOptionsRead(
            **meal.model_dump(),
            curry_options=[CurryOptionRead.model_validate(o) for o in options],
        )

    def list_options_for_meal(self, session: Session, meal_id: int) -> list[CurryOption]:
        self.get_meal(session, meal_id)
        return self.repo.list_options_for_meal(session, meal_id)

    def list_all_options(self, session: Session) -> list[CurryOption]:
        return self.repo.list_options(session)

    # ----- Admin: meals -----

    def create_meal(self, session: Session, payload: MealCreate) -> Meal:
        return self.repo.create(session, Meal(**payload.model_dump()))

    def update_meal(self, session: Session, meal_id: int, payload: MealUpdate) -> Meal:
        meal = self.get_meal(session, meal_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(meal, key, value)
        return self.repo.update(session, meal)

    def delete_meal(self, session: Session, meal_id: int) -> None:
        """
        Delete a meal with its curry options, and clean up Storage.
        Cart lines for the meal go with it.
        """
        meal = self.get_meal(session, meal_id)
        image_url = meal.image_url
        self.repo.delete(session, meal)
        if image_url:
            self._delete_image_quietly(image_url)

    def set_image(
        self,
        session: Session,
        meal_id: int,
        content_type: str,
        file_bytes: bytes,
    ) -> Meal:
        """
        Upload or replace the image of a meal.

        - Validates content-type and size.
        - Uploads to meals/meal_<id>/<uuid>.<ext>.
        - Deletes the previous image from Storage (best effort).
        """
        meal = self.get_meal(session, meal_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        old_url = meal.image_url
        meal.image_url = upload_meal_image(meal.id, file_bytes, ext, content_type)
        meal = self.repo.update(session, meal)

        if old_url:
            self._delete_image_quietly(old_url)
        return meal

    @staticmethod
    def _delete_image_quietly(url: str) -> None:
        try:
            remove_by_url(url)
        except Exception:
            logger.warning("Could not delete stored image %s", url, exc_info=True)

    # ----- Admin: curry options -----

    def create_option(self, session: Session, payload: CurryOptionCreate) -> CurryOption:
        self.get_meal(session, payload.meal_id)
        return self.repo.create_option(session, CurryOption(**payload.model_dump()))

    def update_option(
        self,
        session: Session,
        option_id: int,
        payload: CurryOptionUpdate,
    ) -> CurryOption:
        option = self.repo.get_option(session, option_id)
        if not option:
            raise NotFound("Curry option not found")
        for key, value in payload.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(option, key, value)
        return self.repo.update_option(session, option)

    def delete_option(self, session: Session, option_id: int) -> None:
        option = self.repo.get_option(session, option_id)
        if not option:
            raise NotFound("Curry option not found")
        self.repo.delete_option(session, option)
