from sqlalchemy import Column, Integer, String, Text
from .base import BaseModel


class MaterialModel(BaseModel):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Material(id={self.id}, slug='{self.slug}')>"
