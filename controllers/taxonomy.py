from typing import List, Type

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel as Schema
from sqlalchemy.orm import Session

from database import get_db
from dependencies.require_admin import require_admin
from models.category import CategoryModel
from models.material import MaterialModel
from models.tag import TagModel
from models.user import UserModel
from serializers.common import Envelope, MessageResponse
from serializers.taxonomy import (
    CategoryCreate, CategoryUpdate, CategorySchema,
    MaterialCreate, MaterialUpdate, MaterialSchema,
    TagCreate, TagUpdate, TagSchema,
)
from services import taxonomy


def build_router(model: Type, path: str, label: str, create_schema: Type[Schema],
                 update_schema: Type[Schema], response_schema: Type[Schema]) -> APIRouter:
    """
    Public read routes plus admin CRUD for one name/slug table.

    ``path`` is the plural URL segment, e.g. ``categories``.
    """
    router = APIRouter()

    @router.get(f'/{path}', response_model=Envelope[List[response_schema]], name=f"list_{path}")
    def list_all(db: Session = Depends(get_db)):
        return {"ok": True, "data": taxonomy.list_items(db, model)}

    @router.get(f'/{path}/{{slug}}', response_model=Envelope[response_schema], name=f"get_{label}")
    def get_one(slug: str, db: Session = Depends(get_db)):
        return {"ok": True, "data": taxonomy.get_by_slug(db, model, slug)}

    @router.post(f'/admin/{path}', response_model=Envelope[response_schema],
                 status_code=status.HTTP_201_CREATED, name=f"create_{label}")
    def create(
        payload: create_schema,
        db: Session = Depends(get_db),
        current_user: UserModel = Depends(require_admin)
    ):
        return {"ok": True, "data": taxonomy.create_item(db, model, payload)}

    @router.put(f'/admin/{path}/{{item_id}}', response_model=Envelope[response_schema], name=f"update_{label}")
    def update(
        item_id: int,
        payload: update_schema,
        db: Session = Depends(get_db),
        current_user: UserModel = Depends(require_admin)
    ):
        return {"ok": True, "data": taxonomy.update_item(db, model, item_id, payload)}

    @router.delete(f'/admin/{path}/{{item_id}}', response_model=MessageResponse, name=f"delete_{label}")
    def delete(
        item_id: int,
        db: Session = Depends(get_db),
        current_user: UserModel = Depends(require_admin)
    ):
        """Fails with 409 while products (or collections) still reference it."""
        taxonomy.delete_item(db, model, item_id)
        return {"ok": True, "message": f"{label.capitalize()} {item_id} deleted"}

    return router


categories_router = build_router(CategoryModel, "categories", "category", CategoryCreate, CategoryUpdate, CategorySchema)
materials_router = build_router(MaterialModel, "materials", "material", MaterialCreate, MaterialUpdate, MaterialSchema)
tags_router = build_router(TagModel, "tags", "tag", TagCreate, TagUpdate, TagSchema)
