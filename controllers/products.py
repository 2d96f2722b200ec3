import json
import logging
from fastapi import APIRouter, Depends, status, Query, UploadFile, File, Form
from sqlalchemy.orm import Session
from typing import List, Optional
from config.environment import settings
from models.user import UserModel
from serializers.common import Envelope, MessageResponse, PaginatedEnvelope, parse_model
from serializers.product import ImageInput, ProductCreate, ProductUpdate, ProductDetail, ProductListItem
from database import get_db
from dependencies.require_admin import require_admin
from errors import MutationFailed, NotFound, ValidationError
from services import uploads
from services.filters import parse_filters
from services.pagination import paginate
from services.product_query import list_products, get_product_by_slug, get_product_by_id
from services.product_mutations import (
    create_product as create_product_record,
    update_product as update_product_record,
    add_product_images,
    delete_product_image,
    set_product_active,
    delete_product as delete_product_record,
)
from services.shaper import to_detail, to_list_items

logger = logging.getLogger(__name__)

router = APIRouter()

# Free-text fields may legitimately be sent empty
TEXT_FIELDS = {"description", "wa_template"}


def _form_payload(**fields) -> dict:
    """Drop form fields that were not sent (or sent blank, for non-text fields)."""
    payload = {}
    for key, value in fields.items():
        if value is None:
            continue
        if value == "" and key not in TEXT_FIELDS:
            continue
        payload[key] = value
    return payload


def _json_list(raw: Optional[str], field: str) -> Optional[list]:
    """Decode a JSON-encoded array sent as a multipart field."""
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid data", errors={field: ["must be a JSON array"]}) from None
    if not isinstance(value, list):
        raise ValidationError("Invalid data", errors={field: ["must be a JSON array"]})
    return value


def _upload_all(files: List[UploadFile], slug: str, alt_text: str) -> List[ImageInput]:
    """
    Upload every file in order. If one upload fails the ones already
    stored are removed again so nothing is left orphaned.
    """
    if len(files) > settings.max_product_images:
        raise ValidationError(
            "Too many images",
            errors={"images": [f"at most {settings.max_product_images} images per request"]},
        )
    for file in files:
        uploads.ensure_image(file)

    images: List[ImageInput] = []
    try:
        for index, file in enumerate(files):
            url = uploads.upload_image(file, uploads.PRODUCTS_FOLDER, name=slug)
            images.append(ImageInput(url=url, is_primary=index == 0, alt_text=alt_text))
    except Exception as exc:
        logger.exception("Image upload failed for product %s", slug)
        uploads.delete_images(image.url for image in images)
        raise MutationFailed("Failed to upload image", cause=exc) from exc
    return images


# GET all products (public - no auth required) - Only active products
@router.get('/products', response_model=PaginatedEnvelope[ProductListItem])
def get_products(
    db: Session = Depends(get_db),
    categoria: Optional[List[str]] = Query(None, description="Category slug(s)"),
    material: Optional[List[str]] = Query(None, description="Material slug(s), any of"),
    tag: Optional[List[str]] = Query(None, description="Tag slug(s), any of"),
    q: Optional[str] = Query(None, description="Search in name and description"),
    featured: Optional[str] = Query(None, description="'true' or 'false'"),
    sort: Optional[str] = Query(None, description="relevance | name-asc | name-desc | recent"),
    page: Optional[str] = Query(None, description="Page number, starting at 1"),
    limit: Optional[str] = Query(None, description="Page size")
):
    """
    Get ACTIVE products with optional filtering, sorting and pagination.

    - **categoria**, **material**, **tag**: repeatable slug filters
    - **q**: case-insensitive search in name and description
    - **featured**: only featured (`true`) or only non-featured (`false`)
    - **sort**: relevance (featured first, then newest), name-asc, name-desc, recent
    - **page** / **limit**: pagination; pages past the end are empty

    Returns the page of products plus pagination metadata.
    """
    filters = parse_filters(
        categoria=categoria, material=material, tag=tag, q=q,
        featured=featured, sort=sort, page=page, limit=limit,
    )
    products, total = list_products(db, filters)
    return {
        "ok": True,
        "data": to_list_items(products),
        "pagination": paginate(filters.page, filters.limit, total),
    }


# GET single product by slug (public endpoint) - Only active products
@router.get('/products/{slug}', response_model=Envelope[ProductDetail])
def get_product(slug: str, db: Session = Depends(get_db)):
    """
    Get a single ACTIVE product by slug, with its gallery, materials and tags.
    """
    product = get_product_by_slug(db, slug)

    if not product:
        raise NotFound(f"Product '{slug}' not found")

    return {"ok": True, "data": to_detail(product)}


# GET all products including inactive (admin only)
@router.get('/admin/products', response_model=PaginatedEnvelope[ProductListItem])
def get_all_products_admin(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin),
    show_inactive: bool = Query(True, description="Include inactive products"),
    categoria: Optional[List[str]] = Query(None),
    material: Optional[List[str]] = Query(None),
    tag: Optional[List[str]] = Query(None),
    q: Optional[str] = Query(None),
    featured: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None)
):
    """
    Get all products (including inactive) - Admin only.

    Accepts the same filters as the public listing.
    """
    filters = parse_filters(
        categoria=categoria, material=material, tag=tag, q=q,
        featured=featured, sort=sort, page=page, limit=limit,
        include_inactive=show_inactive,
    )
    products, total = list_products(db, filters)
    return {
        "ok": True,
        "data": to_list_items(products),
        "pagination": paginate(filters.page, filters.limit, total),
    }


# GET any product by ID (including inactive) - admin only
@router.get('/admin/products/{product_id}', response_model=Envelope[ProductDetail])
def get_any_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    product = get_product_by_id(db, product_id)

    if not product:
        raise NotFound(f"Product with id {product_id} not found")

    return {"ok": True, "data": to_detail(product)}


# POST create product with images (admin only)
@router.post('/admin/products', response_model=Envelope[ProductDetail], status_code=status.HTTP_201_CREATED)
def create_product(
    slug: Optional[str] = Form(None, description="URL slug, normalized to lowercase-hyphenated"),
    name: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    low_stock_threshold: Optional[str] = Form(None),
    wa_template: Optional[str] = Form(None),
    is_active: Optional[str] = Form(None),
    material_ids: Optional[str] = Form(None, description="JSON array of material ids"),
    tag_ids: Optional[str] = Form(None, description="JSON array of tag ids"),
    images: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Create a new product from a multipart form.

    - scalar fields as form fields
    - **material_ids** / **tag_ids**: JSON-encoded arrays
    - **images**: up to the configured number of files; the first one is the primary image

    The product, its images and its links are stored atomically.
    """
    payload = _form_payload(
        slug=slug, name=name, category_id=category_id, description=description,
        featured=featured, stock=stock, low_stock_threshold=low_stock_threshold,
        wa_template=wa_template, is_active=is_active,
    )
    for field, raw in (("material_ids", material_ids), ("tag_ids", tag_ids)):
        value = _json_list(raw, field)
        if value is not None:
            payload[field] = value
    data = parse_model(ProductCreate, payload)

    uploaded = _upload_all(images, data.slug, data.name)
    try:
        product = create_product_record(db, data, uploaded)
    except Exception:
        uploads.delete_images(image.url for image in uploaded)
        raise

    return {"ok": True, "data": to_detail(product)}


# PUT update product (admin only)
@router.put('/admin/products/{product_id}', response_model=Envelope[ProductDetail])
def update_product(
    product_id: int,
    slug: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    featured: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    low_stock_threshold: Optional[str] = Form(None),
    wa_template: Optional[str] = Form(None),
    is_active: Optional[str] = Form(None),
    material_ids: Optional[str] = Form(None, description="JSON array; replaces the current set"),
    tag_ids: Optional[str] = Form(None, description="JSON array; replaces the current set"),
    deleted_images: Optional[str] = Form(None, description="JSON array of image URLs to remove"),
    images: List[UploadFile] = File(default=[]),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Update a product.

    Only provided fields are updated. **material_ids** / **tag_ids** replace
    the existing sets, **deleted_images** removes gallery images by URL and
    new **images** are appended to the gallery.
    """
    payload = _form_payload(
        slug=slug, name=name, category_id=category_id, description=description,
        featured=featured, stock=stock, low_stock_threshold=low_stock_threshold,
        wa_template=wa_template, is_active=is_active,
    )
    for field, raw in (("material_ids", material_ids), ("tag_ids", tag_ids)):
        value = _json_list(raw, field)
        if value is not None:
            payload[field] = value
    data = parse_model(ProductUpdate, payload)
    removed = [url for url in (_json_list(deleted_images, "deleted_images") or []) if isinstance(url, str)]

    current = get_product_by_id(db, product_id)
    if not current:
        raise NotFound(f"Product with id {product_id} not found")

    # only purge files that really belong to this product
    current_urls = {image.image_url for image in current.images}
    removed = [url for url in removed if url in current_urls]

    uploaded = _upload_all(images, data.slug or current.slug, data.name or current.name)
    try:
        product = update_product_record(db, product_id, data, new_images=uploaded, deleted_images=removed)
    except Exception:
        uploads.delete_images(image.url for image in uploaded)
        raise

    uploads.delete_images(removed)
    return {"ok": True, "data": to_detail(product)}


# ACTIVATE/DEACTIVATE product (admin only)
@router.put('/admin/products/{product_id}/toggle-active', response_model=Envelope[ProductDetail])
def toggle_product_active(
    product_id: int,
    is_active: bool = Query(..., description="Set product active status"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Soft delete (is_active=false) or restore a product - Admin only.
    """
    product = set_product_active(db, product_id, is_active)
    return {"ok": True, "data": to_detail(product)}


# POST more images for an existing product (admin only)
@router.post('/admin/products/{product_id}/images', response_model=Envelope[ProductDetail], status_code=status.HTTP_201_CREATED)
def upload_product_images(
    product_id: int,
    images: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Append images to a product's gallery. The first one becomes primary
    only if the product has no primary image yet.
    """
    product = get_product_by_id(db, product_id)
    if not product:
        raise NotFound(f"Product with id {product_id} not found")

    uploaded = _upload_all(images, product.slug, product.name)
    try:
        product = add_product_images(db, product_id, uploaded)
    except Exception:
        uploads.delete_images(image.url for image in uploaded)
        raise

    return {"ok": True, "data": to_detail(product)}


# DELETE one gallery image (admin only)
@router.delete('/admin/products/{product_id}/images/{image_id}', response_model=MessageResponse)
def remove_product_image(
    product_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    image_url = delete_product_image(db, product_id, image_id)
    uploads.delete_image(image_url)
    return {"ok": True, "message": f"Image {image_id} deleted"}


# DELETE product - HARD DELETE (admin only)
@router.delete('/admin/products/{product_id}', response_model=MessageResponse)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    DELETE a product permanently (hard delete).

    Removes its images, material and tag links, then the product row.
    Stored image files are purged afterwards on a best-effort basis.
    """
    image_urls = delete_product_record(db, product_id)
    uploads.delete_images(image_urls)

    return {"ok": True, "message": f"Product with id {product_id} has been permanently deleted"}
