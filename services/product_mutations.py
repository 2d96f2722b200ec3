"""
Admin writes for products.

Each public function is one unit of work on the given session: every
statement runs in the session's transaction and is committed once at the
end, or rolled back as a whole.
"""

import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import CatalogError, ConstraintViolation, MutationFailed, NotFound, ValidationError
from models.category import CategoryModel
from models.material import MaterialModel
from models.product import ProductModel, product_materials, product_tags
from models.product_image import ProductImageModel
from models.tag import TagModel
from serializers.product import ImageInput, ProductCreate, ProductUpdate
from services.product_query import get_product_by_id

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    "slug", "name", "category_id", "description", "featured",
    "stock", "low_stock_threshold", "wa_template", "is_active",
)


@contextmanager
def transaction(db: Session, action: str):
    """Commit on success; roll back and translate database errors otherwise."""
    try:
        yield
        db.commit()
    except CatalogError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error while trying to %s: %s", action, exc.orig)
        raise ConstraintViolation(f"Could not {action}: it conflicts with existing data") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s", action)
        raise MutationFailed(f"Could not {action}", cause=exc) from exc
    except Exception:
        db.rollback()
        raise


def _dedupe(ids: Iterable[int]) -> List[int]:
    seen = []
    for value in ids:
        if value not in seen:
            seen.append(value)
    return seen


def _check_references(db: Session, category_id=None, material_ids=None, tag_ids=None):
    errors = {}
    if category_id is not None and db.get(CategoryModel, category_id) is None:
        errors["category_id"] = [f"Category {category_id} does not exist"]
    for field, model, ids in (("material_ids", MaterialModel, material_ids), ("tag_ids", TagModel, tag_ids)):
        if not ids:
            continue
        found = set(db.execute(select(model.id).where(model.id.in_(ids))).scalars())
        missing = [i for i in ids if i not in found]
        if missing:
            errors[field] = [f"Unknown ids: {missing}"]
    if errors:
        raise ValidationError("Invalid data", errors=errors)


def _slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(ProductModel.id).where(ProductModel.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(ProductModel.id != exclude_id)
    return db.execute(stmt).first() is not None


def _replace_links(db: Session, table, column: str, product_id: int, ids: Sequence[int]):
    db.execute(delete(table).where(table.c.product_id == product_id))
    if ids:
        db.execute(insert(table), [{"product_id": product_id, column: i} for i in ids])


def _primary_index(images: Sequence[ImageInput]) -> int:
    for index, image in enumerate(images):
        if image.is_primary:
            return index
    return 0


def _append_images(db: Session, product_id: int, images: Sequence[ImageInput], start_order: int, allow_primary: bool):
    primary = _primary_index(images) if allow_primary else -1
    for index, image in enumerate(images):
        db.add(ProductImageModel(
            product_id=product_id,
            image_url=image.url,
            display_order=start_order + index,
            is_primary=index == primary,
            alt_text=image.alt_text,
        ))
    db.flush()


def _ensure_primary(db: Session, product_id: int):
    """Promote the first image in gallery order when no image is primary."""
    images = db.execute(
        select(ProductImageModel)
        .where(ProductImageModel.product_id == product_id)
        .order_by(ProductImageModel.display_order, ProductImageModel.id)
    ).scalars().all()
    if images and not any(image.is_primary for image in images):
        images[0].is_primary = True
        db.flush()


def _has_primary(db: Session, product_id: int) -> bool:
    stmt = select(ProductImageModel.id).where(
        ProductImageModel.product_id == product_id, ProductImageModel.is_primary == True
    )
    return db.execute(stmt).first() is not None


def _next_display_order(db: Session, product_id: int) -> int:
    current = db.execute(
        select(func.coalesce(func.max(ProductImageModel.display_order), 0))
        .where(ProductImageModel.product_id == product_id)
    ).scalar_one()
    return current + 1


def create_product(db: Session, data: ProductCreate, images: Sequence[ImageInput] = ()) -> ProductModel:
    """
    Insert product -> images -> material links -> tag links, then commit.
    Images keep the submitted order; exactly one ends up primary.
    """
    material_ids = _dedupe(data.material_ids)
    tag_ids = _dedupe(data.tag_ids)

    with transaction(db, "create product"):
        _check_references(db, data.category_id, material_ids, tag_ids)
        if _slug_taken(db, data.slug):
            raise ConstraintViolation(f"Slug '{data.slug}' is already in use")

        product = ProductModel(**data.model_dump(include=set(PRODUCT_FIELDS)))
        db.add(product)
        db.flush()

        _append_images(db, product.id, images, start_order=1, allow_primary=True)
        _replace_links(db, product_materials, "material_id", product.id, material_ids)
        _replace_links(db, product_tags, "tag_id", product.id, tag_ids)
        product_id = product.id

    logger.info("Created product %s (%s) with %d image(s)", product_id, data.slug, len(images))
    return get_product_by_id(db, product_id)


def update_product(
    db: Session,
    product_id: int,
    data: ProductUpdate,
    new_images: Sequence[ImageInput] = (),
    deleted_images: Sequence[str] = (),
) -> ProductModel:
    """
    Apply only the supplied fields. ``material_ids``/``tag_ids``, when given,
    replace the whole association set.
    """
    changes = data.model_dump(exclude_unset=True)
    material_ids = changes.pop("material_ids", None)
    tag_ids = changes.pop("tag_ids", None)
    # explicit nulls on required columns mean "leave as is"
    changes = {
        key: value for key, value in changes.items()
        if value is not None or key in ("description", "wa_template")
    }

    with transaction(db, "update product"):
        product = db.get(ProductModel, product_id)
        if product is None:
            raise NotFound(f"Product with id {product_id} not found")

        if material_ids is not None:
            material_ids = _dedupe(material_ids)
        if tag_ids is not None:
            tag_ids = _dedupe(tag_ids)
        _check_references(db, changes.get("category_id"), material_ids, tag_ids)
        if "slug" in changes and _slug_taken(db, changes["slug"], exclude_id=product_id):
            raise ConstraintViolation(f"Slug '{changes['slug']}' is already in use")

        for key, value in changes.items():
            setattr(product, key, value)
        db.flush()

        if material_ids is not None:
            _replace_links(db, product_materials, "material_id", product_id, material_ids)
        if tag_ids is not None:
            _replace_links(db, product_tags, "tag_id", product_id, tag_ids)

        if deleted_images:
            db.execute(
                delete(ProductImageModel).where(
                    ProductImageModel.product_id == product_id,
                    ProductImageModel.image_url.in_(list(deleted_images)),
                )
            )
            _ensure_primary(db, product_id)

        if new_images:
            _append_images(
                db, product_id, new_images,
                start_order=_next_display_order(db, product_id),
                allow_primary=not _has_primary(db, product_id),
            )
        _ensure_primary(db, product_id)

    logger.info("Updated product %s (fields=%s)", product_id, sorted(changes))
    return get_product_by_id(db, product_id)


def add_product_images(db: Session, product_id: int, images: Sequence[ImageInput]) -> ProductModel:
    with transaction(db, "add product images"):
        if db.get(ProductModel, product_id) is None:
            raise NotFound(f"Product with id {product_id} not found")
        _append_images(
            db, product_id, images,
            start_order=_next_display_order(db, product_id),
            allow_primary=not _has_primary(db, product_id),
        )
    return get_product_by_id(db, product_id)


def delete_product_image(db: Session, product_id: int, image_id: int) -> str:
    """Remove one gallery image; returns its URL so storage can be purged."""
    with transaction(db, "delete product image"):
        image = db.get(ProductImageModel, image_id)
        if image is None or image.product_id != product_id:
            raise NotFound(f"Image {image_id} not found for product {product_id}")
        image_url = image.image_url
        db.delete(image)
        db.flush()
        _ensure_primary(db, product_id)
    return image_url


def set_product_active(db: Session, product_id: int, is_active: bool) -> ProductModel:
    """Soft delete (``is_active=False``) or restore a product."""
    with transaction(db, "change product status"):
        product = db.get(ProductModel, product_id)
        if product is None:
            raise NotFound(f"Product with id {product_id} not found")
        product.is_active = is_active
    return get_product_by_id(db, product_id)


def delete_product(db: Session, product_id: int) -> List[str]:
    """
    Hard delete: images, then association rows, then the product itself.
    Returns the image URLs that were attached.
    """
    with transaction(db, "delete product"):
        if db.get(ProductModel, product_id) is None:
            raise NotFound(f"Product with id {product_id} not found")
        image_urls = list(db.execute(
            select(ProductImageModel.image_url).where(ProductImageModel.product_id == product_id)
        ).scalars())
        db.execute(delete(ProductImageModel).where(ProductImageModel.product_id == product_id))
        db.execute(delete(product_materials).where(product_materials.c.product_id == product_id))
        db.execute(delete(product_tags).where(product_tags.c.product_id == product_id))
        db.execute(delete(ProductModel).where(ProductModel.id == product_id))

    logger.info("Deleted product %s and %d image(s)", product_id, len(image_urls))
    return image_urls
