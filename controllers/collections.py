import logging
from fastapi import APIRouter, Depends, status, UploadFile, File, Form
from sqlalchemy.orm import Session
from typing import List, Optional
from models.user import UserModel
from serializers.common import Envelope, MessageResponse, parse_model
from serializers.collection import CollectionCreate, CollectionOrder, CollectionSchema, CollectionUpdate
from database import get_db
from dependencies.require_admin import require_admin
from errors import MutationFailed, ValidationError
from services import uploads
from services import collections as collection_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _upload_collection_image(image: UploadFile) -> str:
    uploads.ensure_image(image)
    try:
        return uploads.upload_image(image, uploads.COLLECTIONS_FOLDER, name="collection")
    except Exception as exc:
        logger.exception("Collection image upload failed")
        raise MutationFailed("Failed to upload image", cause=exc) from exc


# GET active collections (public) - Home page tiles
@router.get('/collections', response_model=Envelope[List[CollectionSchema]])
def get_collections(db: Session = Depends(get_db)):
    """
    Active collections ordered by display_order. Each tile links to the
    product list filtered by **category_slug**.
    """
    return {"ok": True, "data": collection_service.list_collections(db, active_only=True)}


@router.get('/collections/{collection_id}', response_model=Envelope[CollectionSchema])
def get_collection(collection_id: int, db: Session = Depends(get_db)):
    return {"ok": True, "data": collection_service.get_collection(db, collection_id)}


# GET all collections (admin only)
@router.get('/admin/collections', response_model=Envelope[List[CollectionSchema]])
def get_all_collections_admin(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    return {"ok": True, "data": collection_service.list_collections(db, active_only=False)}


# POST create collection with its image (admin only)
@router.post('/admin/collections', response_model=Envelope[CollectionSchema], status_code=status.HTTP_201_CREATED)
def create_collection(
    category_id: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    display_order: Optional[str] = Form(None),
    is_active: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Create a collection. **image** is required.
    """
    payload = {
        key: value for key, value in {
            "category_id": category_id, "title": title, "description": description,
            "display_order": display_order, "is_active": is_active,
        }.items()
        if value is not None and (value != "" or key == "description")
    }
    data = parse_model(CollectionCreate, payload)
    if image is None:
        raise ValidationError("Image is required", errors={"image": ["is required"]})

    image_url = _upload_collection_image(image)
    try:
        collection = collection_service.create_collection(db, data, image_url)
    except Exception:
        uploads.delete_image(image_url)
        raise
    return {"ok": True, "data": collection}


# PATCH reorder collections (admin only)
@router.patch('/admin/collections/reorder', response_model=MessageResponse)
def reorder_collections(
    payload: List[CollectionOrder],
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Body: `[{"id": 1, "display_order": 0}, ...]`, applied in one transaction.
    """
    collection_service.reorder_collections(db, payload)
    return {"ok": True, "message": "Order updated"}


# PUT update collection (admin only)
@router.put('/admin/collections/{collection_id}', response_model=Envelope[CollectionSchema])
def update_collection(
    collection_id: int,
    payload: CollectionUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    """
    Partial update; only provided fields change.
    """
    return {"ok": True, "data": collection_service.update_collection(db, collection_id, payload)}


# PUT replace collection image (admin only)
@router.put('/admin/collections/{collection_id}/image', response_model=Envelope[CollectionSchema])
def replace_collection_image(
    collection_id: int,
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    previous = collection_service.get_collection(db, collection_id).image_url
    image_url = _upload_collection_image(image)
    try:
        collection = collection_service.update_collection(db, collection_id, CollectionUpdate(), image_url=image_url)
    except Exception:
        uploads.delete_image(image_url)
        raise
    uploads.delete_image(previous)
    return {"ok": True, "data": collection}


# DELETE collection and its image (admin only)
@router.delete('/admin/collections/{collection_id}', response_model=MessageResponse)
def delete_collection(
    collection_id: int,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(require_admin)
):
    image_url = collection_service.delete_collection(db, collection_id)
    uploads.delete_image(image_url)
    return {"ok": True, "message": f"Collection {collection_id} deleted"}
