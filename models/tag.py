from sqlalchemy import Column, Integer, String
from .base import BaseModel


class TagModel(BaseModel):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)

    def __repr__(self):
        return f"<Tag(id={self.id}, slug='{self.slug}')>"
