# app/core/storage_utils.py
"""
Meal image storage on a public Supabase bucket.

Objects live under `meals/meal_<id>/<random>.<ext>`; the meal row keeps
the public URL, which is also how a replaced image is found again.
"""
import logging
import uuid
from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/storage/v1/object/public/"


@lru_cache
def storage_client() -> Client:
    # Service role key: server side only
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError("Image storage is not configured (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY)")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def _bucket():
    return storage_client().storage.from_(get_settings().SUPABASE_BUCKET)


def meal_image_path(meal_id: int, ext: str) -> str:
    return f"meals/meal_{meal_id}/{uuid.uuid4().hex}.{ext}"


def upload_meal_image(meal_id: int, data: bytes, ext: str, content_type: str) -> str:
    """Store the bytes and hand back the public URL."""
    path = meal_image_path(meal_id, ext)
    bucket = _bucket()
    bucket.upload(path, data, {"upsert": "true", "content-type": content_type})
    logger.info("Uploaded image for meal %s to %s", meal_id, path)
    return bucket.get_public_url(path)


def object_path(public_url: str) -> str | None:
    """Bucket-relative path of a public URL; None for URLs outside the bucket."""
    prefix = f"{PUBLIC_PREFIX}{get_settings().SUPABASE_BUCKET}/"
    _, found, path = public_url.partition(prefix)
    return path if found and path else None


def remove_by_url(public_url: str) -> None:
    path = object_path(public_url)
    if path is None:
        return
    _bucket().remove([path])
