from sqlalchemy import Column, Enum, Integer, Numeric, String

from mediamarket.db.base import Base
from mediamarket.models.enums import ProductFormat, ProductType, enum_values


class Product(Base):
    """Catalog entry; owned by the catalog, read-only for the core."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False)
    type = Column(Enum(ProductType, native_enum=False, values_callable=enum_values), nullable=False)
    year = Column(Integer, nullable=False)
    format = Column(Enum(ProductFormat, native_enum=False, values_callable=enum_values), nullable=False)
    cost = Column(Numeric(12, 2), nullable=False)
    path = Column(String, nullable=False)  # мастер-файл на диске
