from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime
from .taxonomy import SlugInput, SLUG_PATTERN, TaxonomyRef, CategorySchema, MaterialSchema, TagSchema


class ImageInput(BaseModel):
    """An already-uploaded image waiting to be attached to a product"""
    url: str = Field(..., min_length=1, max_length=500)
    is_primary: bool = False
    alt_text: Optional[str] = Field(None, max_length=255)


class ProductCreate(SlugInput):
    """Schema for creating a new product"""
    slug: str = Field(..., min_length=1, max_length=150, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=255, description="Name of the product")
    category_id: int = Field(..., gt=0)
    description: Optional[str] = None
    featured: bool = False
    stock: int = Field(0, ge=0)
    low_stock_threshold: int = Field(5, ge=0)
    wa_template: Optional[str] = None
    is_active: bool = True
    material_ids: List[int] = Field(default_factory=list)
    tag_ids: List[int] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "slug": "collar-aurora",
                "name": "Collar Aurora",
                "category_id": 1,
                "description": "Collar de plata con dije de cuarzo",
                "featured": True,
                "stock": 4,
                "wa_template": "Hola, me interesa {name}",
                "material_ids": [1],
                "tag_ids": [2, 3],
            }
        }
    )


class ProductUpdate(SlugInput):
    """Schema for updating a product (all fields optional, only provided ones are applied)"""
    slug: Optional[str] = Field(None, min_length=1, max_length=150, pattern=SLUG_PATTERN)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category_id: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    featured: Optional[bool] = None
    stock: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    wa_template: Optional[str] = None
    is_active: Optional[bool] = None
    material_ids: Optional[List[int]] = None
    tag_ids: Optional[List[int]] = None


class ProductImageSchema(BaseModel):
    id: int
    image_url: str
    display_order: int
    is_primary: bool
    alt_text: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProductListItem(BaseModel):
    """Grid card: denormalized, ready to render"""
    id: int
    slug: str
    name: str
    category: str
    category_slug: str
    description: Optional[str] = None
    featured: bool
    stock: int
    is_active: bool
    is_out_of_stock: bool
    stock_status: str
    image_url: Optional[str] = None
    materials: List[TaxonomyRef]
    tags: List[TaxonomyRef]


class ProductDetail(BaseModel):
    """Single product page, including the full gallery"""
    id: int
    slug: str
    name: str
    category_id: int
    description: Optional[str] = None
    featured: bool
    stock: int
    low_stock_threshold: int
    wa_template: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    category: CategorySchema
    images: List[ProductImageSchema]
    materials: List[MaterialSchema]
    tags: List[TagSchema]
    is_out_of_stock: bool
    is_low_stock: bool
    stock_status: str
