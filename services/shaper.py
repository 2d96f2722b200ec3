from typing import Iterable, List, Optional

from models.product import ProductModel
from serializers.product import ProductDetail, ProductImageSchema, ProductListItem
from serializers.taxonomy import CategorySchema, MaterialSchema, TagSchema, TaxonomyRef

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"


def stock_status(stock: int, threshold: int) -> str:
    """Out of stock wins over low stock; low stock is ``stock <= threshold``."""
    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= threshold:
        return LOW_STOCK
    return IN_STOCK


def primary_image_url(images: Iterable) -> Optional[str]:
    primaries = [image for image in images if image.is_primary]
    if not primaries:
        return None
    return min(primaries, key=lambda image: (image.display_order, image.id or 0)).image_url


def _unique_by_slug(items: Iterable) -> list:
    seen = {}
    for item in items:
        seen.setdefault(item.slug, item)
    return sorted(seen.values(), key=lambda item: (item.name, item.slug))


def _gallery(images: Iterable) -> list:
    return sorted(images, key=lambda image: (image.display_order, not image.is_primary, image.id or 0))


def to_list_item(product: ProductModel) -> ProductListItem:
    return ProductListItem(
        id=product.id,
        slug=product.slug,
        name=product.name,
        category=product.category.name,
        category_slug=product.category.slug,
        description=product.description,
        featured=product.featured,
        stock=product.stock,
        is_active=product.is_active,
        is_out_of_stock=product.stock <= 0,
        stock_status=stock_status(product.stock, product.low_stock_threshold),
        image_url=primary_image_url(product.images),
        materials=[TaxonomyRef(name=m.name, slug=m.slug) for m in _unique_by_slug(product.materials)],
        tags=[TaxonomyRef(name=t.name, slug=t.slug) for t in _unique_by_slug(product.tags)],
    )


def to_list_items(products: Iterable[ProductModel]) -> List[ProductListItem]:
    return [to_list_item(product) for product in products]


def to_detail(product: ProductModel) -> ProductDetail:
    status = stock_status(product.stock, product.low_stock_threshold)
    return ProductDetail(
        id=product.id,
        slug=product.slug,
        name=product.name,
        category_id=product.category_id,
        description=product.description,
        featured=product.featured,
        stock=product.stock,
        low_stock_threshold=product.low_stock_threshold,
        wa_template=product.wa_template,
        is_active=product.is_active,
        created_at=product.created_at,
        updated_at=product.updated_at,
        category=CategorySchema.model_validate(product.category),
        images=[ProductImageSchema.model_validate(image) for image in _gallery(product.images)],
        materials=[MaterialSchema.model_validate(m) for m in _unique_by_slug(product.materials)],
        tags=[TagSchema.model_validate(t) for t in _unique_by_slug(product.tags)],
        is_out_of_stock=status == OUT_OF_STOCK,
        is_low_stock=status == LOW_STOCK,
        stock_status=status,
    )
