from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class CollectionCreate(BaseModel):
    """Collection fields sent alongside the uploaded image"""
    category_id: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: int = Field(0, ge=0)
    is_active: bool = True


class CollectionUpdate(BaseModel):
    category_id: Optional[int] = Field(None, gt=0)
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CollectionOrder(BaseModel):
    id: int = Field(..., gt=0)
    display_order: int = Field(..., ge=0)


class CollectionSchema(BaseModel):
    id: int
    category_id: int
    title: str
    description: Optional[str] = None
    image_url: str
    display_order: int
    is_active: bool
    category_name: Optional[str] = None
    category_slug: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
