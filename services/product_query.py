"""
Product listing query composition.

Every filter becomes one SQLAlchemy boolean clause with bound parameters;
the row query and the count query are built from the same clause list so
the two always agree on what "matching" means.
"""

import logging
import time
from typing import List, Optional, Tuple

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, joinedload, selectinload

from errors import QueryFailed
from models.category import CategoryModel
from models.material import MaterialModel
from models.product import ProductModel
from models.tag import TagModel
from services.filters import (
    ProductFilters,
    SORT_NAME_ASC,
    SORT_NAME_DESC,
    SORT_RECENT,
    SORT_RELEVANCE,
)

logger = logging.getLogger(__name__)

# Largest OFFSET the databases accept (signed 64-bit)
MAX_OFFSET = 2 ** 63 - 1

ORDERINGS = {
    SORT_RELEVANCE: (ProductModel.featured.desc(), ProductModel.created_at.desc(), ProductModel.id.desc()),
    SORT_NAME_ASC: (ProductModel.name.asc(), ProductModel.id.asc()),
    SORT_NAME_DESC: (ProductModel.name.desc(), ProductModel.id.desc()),
    SORT_RECENT: (ProductModel.created_at.desc(), ProductModel.id.desc()),
}


def build_predicates(filters: ProductFilters) -> list:
    """Ordered WHERE clauses for ``filters``; joined with AND by the caller."""
    predicates = []

    if not filters.include_inactive:
        predicates.append(ProductModel.is_active == True)

    if filters.featured is not None:
        predicates.append(ProductModel.featured == filters.featured)

    if filters.categories:
        predicates.append(CategoryModel.slug.in_(filters.categories))

    # any-of: one matching material/tag is enough
    if filters.materials:
        predicates.append(ProductModel.materials.any(MaterialModel.slug.in_(filters.materials)))

    if filters.tags:
        predicates.append(ProductModel.tags.any(TagModel.slug.in_(filters.tags)))

    if filters.q:
        needle = filters.q.lower()
        predicates.append(
            or_(
                func.lower(ProductModel.name).contains(needle, autoescape=True),
                func.lower(ProductModel.description).contains(needle, autoescape=True),
            )
        )

    return predicates


def compose_row_query(filters: ProductFilters):
    return (
        select(ProductModel)
        .join(ProductModel.category)
        .where(*build_predicates(filters))
        .order_by(*ORDERINGS[filters.sort])
        .limit(filters.limit)
        .offset(filters.offset)
        .options(
            contains_eager(ProductModel.category),
            selectinload(ProductModel.images),
            selectinload(ProductModel.materials),
            selectinload(ProductModel.tags),
        )
    )


def compose_count_query(filters: ProductFilters):
    return (
        select(func.count(distinct(ProductModel.id)))
        .select_from(ProductModel)
        .join(ProductModel.category)
        .where(*build_predicates(filters))
    )


def list_products(db: Session, filters: ProductFilters) -> Tuple[List[ProductModel], int]:
    """Run the row and count queries, returning ``(products, total)``."""
    start = time.perf_counter()
    try:
        total = db.execute(compose_count_query(filters)).scalar_one()
        if filters.offset > MAX_OFFSET or filters.offset >= total:
            products = []
        else:
            products = list(db.execute(compose_row_query(filters)).scalars().all())
    except SQLAlchemyError as exc:
        logger.exception("Product listing failed for %s", filters)
        raise QueryFailed("Error fetching products") from exc

    logger.debug(
        "Listed %d/%d products in %.1f ms (%s)",
        len(products), total, (time.perf_counter() - start) * 1000, filters,
    )
    return products, total


def _detail_query():
    return select(ProductModel).options(
        joinedload(ProductModel.category),
        selectinload(ProductModel.images),
        selectinload(ProductModel.materials),
        selectinload(ProductModel.tags),
    )


def get_product_by_slug(db: Session, slug: str) -> Optional[ProductModel]:
    """Active product with the given slug, or None."""
    stmt = _detail_query().where(ProductModel.slug == slug, ProductModel.is_active == True)
    try:
        return db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Product lookup failed for slug=%s", slug)
        raise QueryFailed("Error fetching product") from exc


def get_product_by_id(db: Session, product_id: int) -> Optional[ProductModel]:
    """Product by id regardless of ``is_active`` (admin screens)."""
    stmt = _detail_query().where(ProductModel.id == product_id).execution_options(populate_existing=True)
    try:
        return db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Product lookup failed for id=%s", product_id)
        raise QueryFailed("Error fetching product") from exc
