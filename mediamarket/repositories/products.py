from sqlalchemy.orm import Session

from mediamarket.models.product import Product
from mediamarket.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    entity_name = "Product"

    def __init__(self, db: Session):
        super().__init__(Product, db)

    def get_many(self, product_ids: list[int]) -> dict[int, Product]:
        rows = self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        return {p.id: p for p in rows}
