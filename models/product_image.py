from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class ProductImageModel(BaseModel):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    alt_text = Column(String(255), nullable=True)

    product = relationship('ProductModel', back_populates='images')

    def __repr__(self):
        return f"<ProductImage(product_id={self.product_id}, order={self.display_order}, primary={self.is_primary})>"
