import logging
import re
import uuid
from typing import Iterable, Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from config.environment import settings
from errors import ValidationError

logger = logging.getLogger(__name__)

# Configure Cloudinary
cloudinary.config(
    cloud_name=settings.cloudinary_cloud_name,
    api_key=settings.cloudinary_api_key,
    api_secret=settings.cloudinary_api_secret,
    secure=True
)

PRODUCTS_FOLDER = "productos"
COLLECTIONS_FOLDER = "colecciones"

_VERSION_SEGMENT = re.compile(r"^v\d+$")


def ensure_image(file: UploadFile):
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError(
            "Only image files are allowed",
            errors={"images": [f"'{file.filename}' is not an image"]},
        )


def unique_public_id(base: Optional[str]) -> str:
    return f"{base or 'product'}-{uuid.uuid4().hex[:12]}"


def upload_image(file: UploadFile, folder: str = PRODUCTS_FOLDER, name: Optional[str] = None) -> str:
    """
    Upload an image to Cloudinary and return its HTTPS URL.
    Cloudinary caps the size and picks quality/format on delivery.
    """
    ensure_image(file)
    result = cloudinary.uploader.upload(
        file.file,
        folder=f"{settings.cloudinary_folder}/{folder}",
        public_id=unique_public_id(name),
        resource_type="image",
        transformation=[
            {"width": 1200, "height": 1200, "crop": "limit"},
            {"quality": "auto:good"},
            {"fetch_format": "auto"}
        ]
    )
    return result.get("secure_url")


def public_id_from_url(image_url: str) -> Optional[str]:
    """
    ``https://res.cloudinary.com/<cloud>/image/upload/v123/alahas/productos/abc.jpg``
    -> ``alahas/productos/abc``
    """
    if "cloudinary.com" not in image_url:
        return None
    parts = image_url.split("/")
    if "upload" not in parts:
        return None
    rest = parts[parts.index("upload") + 1:]
    if rest and _VERSION_SEGMENT.match(rest[0]):
        rest = rest[1:]
    if not rest:
        return None
    path = "/".join(rest)
    return re.sub(r"\.[^/.]+$", "", path)


def delete_image(image_url: str) -> bool:
    """Best-effort removal from Cloudinary. Never raises."""
    public_id = public_id_from_url(image_url)
    if public_id is None:
        logger.warning("Not a Cloudinary URL, skipping delete: %s", image_url)
        return False
    try:
        cloudinary.uploader.destroy(public_id)
    except Exception:
        logger.exception("Failed to delete image %s", public_id)
        return False
    logger.info("Deleted image %s", public_id)
    return True


def delete_images(image_urls: Iterable[str]) -> int:
    return sum(1 for url in image_urls if delete_image(url))
