import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from errors import MutationFailed, NotFound, QueryFailed, ValidationError
from models.category import CategoryModel
from models.collection import CollectionModel
from serializers.collection import CollectionCreate, CollectionOrder, CollectionUpdate

logger = logging.getLogger(__name__)


def _query():
    return select(CollectionModel).options(joinedload(CollectionModel.category))


def list_collections(db: Session, active_only: bool = True) -> List[CollectionModel]:
    """Home page tiles (active, by display_order) or the full admin list."""
    stmt = _query()
    if active_only:
        stmt = stmt.where(CollectionModel.is_active == True).order_by(
            CollectionModel.display_order.asc(), CollectionModel.id.asc()
        )
    else:
        stmt = stmt.order_by(CollectionModel.display_order.asc(), CollectionModel.created_at.desc())
    try:
        return list(db.execute(stmt).scalars())
    except SQLAlchemyError as exc:
        logger.exception("Listing collections failed")
        raise QueryFailed("Error fetching collections") from exc


def get_collection(db: Session, collection_id: int) -> CollectionModel:
    try:
        collection = db.execute(_query().where(CollectionModel.id == collection_id)).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Looking up collection %s failed", collection_id)
        raise QueryFailed("Error fetching collection") from exc
    if collection is None:
        raise NotFound(f"Collection with id {collection_id} not found")
    return collection


def _check_category(db: Session, category_id: Optional[int]):
    if category_id is not None and db.get(CategoryModel, category_id) is None:
        raise ValidationError("Invalid data", errors={"category_id": [f"Category {category_id} does not exist"]})


def _commit(db: Session, action: str):
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s collection", action)
        raise MutationFailed(f"Could not {action} collection", cause=exc) from exc


def create_collection(db: Session, data: CollectionCreate, image_url: str) -> CollectionModel:
    _check_category(db, data.category_id)
    collection = CollectionModel(**data.model_dump(), image_url=image_url)
    db.add(collection)
    _commit(db, "create")
    logger.info("Created collection %s", collection.id)
    return get_collection(db, collection.id)


def update_collection(
    db: Session, collection_id: int, data: CollectionUpdate, image_url: Optional[str] = None
) -> CollectionModel:
    collection = get_collection(db, collection_id)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None or k == "description"}
    _check_category(db, changes.get("category_id"))
    for key, value in changes.items():
        setattr(collection, key, value)
    if image_url:
        collection.image_url = image_url
    _commit(db, "update")
    return get_collection(db, collection_id)


def reorder_collections(db: Session, orders: Sequence[CollectionOrder]):
    """Apply every display_order in one transaction."""
    try:
        for order in orders:
            collection = db.get(CollectionModel, order.id)
            if collection is None:
                raise NotFound(f"Collection with id {order.id} not found")
            collection.display_order = order.display_order
        db.commit()
    except NotFound:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Reordering collections failed")
        raise MutationFailed("Could not reorder collections", cause=exc) from exc


def delete_collection(db: Session, collection_id: int) -> str:
    """Returns the image URL of the removed collection."""
    collection = get_collection(db, collection_id)
    image_url = collection.image_url
    db.delete(collection)
    _commit(db, "delete")
    logger.info("Deleted collection %s", collection_id)
    return image_url
