import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_WHITESPACE = re.compile(r"\s+")
SLUG_PATTERN = r"^[a-z0-9-]+$"


def normalize_slug(value: str) -> str:
    """Lowercase and hyphenate a slug: ``"Collar Aurora"`` -> ``"collar-aurora"``."""
    return _WHITESPACE.sub("-", value.strip().lower())


class SlugInput(BaseModel):
    """Normalizes ``slug`` before the pattern check runs"""

    @field_validator("slug", mode="before", check_fields=False)
    @classmethod
    def normalize_slug_field(cls, value):
        if isinstance(value, str):
            return normalize_slug(value)
        return value


class TaxonomyRef(BaseModel):
    """Name/slug pair embedded in product list items"""
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class CategoryCreate(SlugInput):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None


class CategoryUpdate(SlugInput):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None


class CategorySchema(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MaterialCreate(CategoryCreate):
    pass


class MaterialUpdate(CategoryUpdate):
    pass


class MaterialSchema(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TagCreate(SlugInput):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN)


class TagUpdate(SlugInput):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)


class TagSchema(BaseModel):
    id: int
    name: str
    slug: str

    model_config = ConfigDict(from_attributes=True)
