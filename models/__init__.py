# Import every model so Base.metadata knows all tables
from .base import Base
from .category import CategoryModel
from .material import MaterialModel
from .tag import TagModel
from .product import ProductModel, product_materials, product_tags
from .product_image import ProductImageModel
from .collection import CollectionModel
from .user import UserModel, UserRole
