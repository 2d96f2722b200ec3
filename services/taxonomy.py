"""
CRUD shared by categories, materials and tags.

The three tables have the same shape (name + unique slug); they differ only
in what may reference them, which is what blocks a delete.
"""

import logging
from typing import List, Optional, Type

from pydantic import BaseModel as Schema
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ConstraintViolation, MutationFailed, NotFound, QueryFailed
from models.category import CategoryModel
from models.collection import CollectionModel
from models.material import MaterialModel
from models.product import ProductModel, product_materials, product_tags
from models.tag import TagModel

logger = logging.getLogger(__name__)

LABELS = {
    CategoryModel: "category",
    MaterialModel: "material",
    TagModel: "tag",
}


def _label(model) -> str:
    return LABELS[model]


def list_items(db: Session, model: Type) -> List:
    try:
        return list(db.execute(select(model).order_by(model.name.asc())).scalars())
    except SQLAlchemyError as exc:
        logger.exception("Listing %s failed", model.__tablename__)
        raise QueryFailed(f"Error fetching {model.__tablename__}") from exc


def get_by_slug(db: Session, model: Type, slug: str):
    try:
        item = db.execute(select(model).where(model.slug == slug)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Looking up %s %s failed", _label(model), slug)
        raise QueryFailed(f"Error fetching {_label(model)}") from exc
    if item is None:
        raise NotFound(f"{_label(model).capitalize()} '{slug}' not found")
    return item


def get_by_id(db: Session, model: Type, item_id: int):
    try:
        item = db.get(model, item_id)
    except SQLAlchemyError as exc:
        logger.exception("Looking up %s %s failed", _label(model), item_id)
        raise QueryFailed(f"Error fetching {_label(model)}") from exc
    if item is None:
        raise NotFound(f"{_label(model).capitalize()} with id {item_id} not found")
    return item


def _ensure_slug_free(db: Session, model: Type, slug: str, exclude_id: Optional[int] = None):
    stmt = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise ConstraintViolation(f"A {_label(model)} with slug '{slug}' already exists")


def _commit(db: Session, model: Type, action: str):
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConstraintViolation(f"Could not {action} {_label(model)}: it conflicts with existing data") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s %s", action, _label(model))
        raise MutationFailed(f"Could not {action} {_label(model)}", cause=exc) from exc


def create_item(db: Session, model: Type, data: Schema):
    _ensure_slug_free(db, model, data.slug)
    item = model(**data.model_dump())
    db.add(item)
    _commit(db, model, "create")
    db.refresh(item)
    logger.info("Created %s %s (%s)", _label(model), item.id, item.slug)
    return item


def update_item(db: Session, model: Type, item_id: int, data: Schema):
    item = get_by_id(db, model, item_id)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    if "slug" in changes:
        _ensure_slug_free(db, model, changes["slug"], exclude_id=item_id)
    for key, value in changes.items():
        setattr(item, key, value)
    _commit(db, model, "update")
    db.refresh(item)
    return item


def count_dependents(db: Session, model: Type, item_id: int) -> dict:
    """``{"product": n, ...}`` for everything that still references the row."""
    if model is CategoryModel:
        products = db.execute(
            select(func.count()).select_from(ProductModel).where(ProductModel.category_id == item_id)
        ).scalar_one()
        collections = db.execute(
            select(func.count()).select_from(CollectionModel).where(CollectionModel.category_id == item_id)
        ).scalar_one()
        return {"product": products, "collection": collections}

    table, column = {
        MaterialModel: (product_materials, "material_id"),
        TagModel: (product_tags, "tag_id"),
    }[model]
    links = db.execute(
        select(func.count()).select_from(table).where(table.c[column] == item_id)
    ).scalar_one()
    return {"product": links}


def delete_item(db: Session, model: Type, item_id: int):
    """Delete a category/material/tag; refuses while anything references it."""
    item = get_by_id(db, model, item_id)
    for kind, count in count_dependents(db, model, item_id).items():
        if count > 0:
            raise ConstraintViolation(
                f"Cannot delete {_label(model)} '{item.slug}': it has {count} {kind}(s) associated",
                dependents=count,
            )
    db.delete(item)
    _commit(db, model, "delete")
    logger.info("Deleted %s %s", _label(model), item_id)
