from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Table, Text
from sqlalchemy.orm import relationship
from models.base import Base, BaseModel
from models.material import MaterialModel
from models.tag import TagModel
from models.product_image import ProductImageModel

# Join tables; a (product, material) or (product, tag) pair can exist only once
product_materials = Table(
    "product_materials",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("material_id", Integer, ForeignKey("materials.id", ondelete="RESTRICT"), primary_key=True),
)

product_tags = Table(
    "product_tags",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="RESTRICT"), primary_key=True),
)


class ProductModel(BaseModel):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    slug = Column(String(150), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    category_id = Column(Integer, ForeignKey('categories.id', ondelete='RESTRICT'), nullable=False, index=True)
    description = Column(Text, nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    stock = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=5)
    wa_template = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    category = relationship('CategoryModel')
    images = relationship(
        ProductImageModel,
        back_populates='product',
        cascade='all, delete-orphan',
        order_by=[ProductImageModel.display_order, ProductImageModel.is_primary.desc()],
    )
    materials = relationship(MaterialModel, secondary=product_materials, order_by=MaterialModel.name)
    tags = relationship(TagModel, secondary=product_tags, order_by=TagModel.name)

    def __repr__(self):
        return f"<Product(id={self.id}, slug='{self.slug}', stock={self.stock})>"
