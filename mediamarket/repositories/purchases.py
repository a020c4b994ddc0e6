from sqlalchemy.orm import Session

from mediamarket.models.enums import PurchaseType
from mediamarket.models.purchase import Purchase
from mediamarket.repositories.base import BaseRepository


class PurchaseRepository(BaseRepository[Purchase]):
    entity_name = "Purchase"

    def __init__(self, db: Session):
        super().__init__(Purchase, db)

    def get_by_id(self, purchase_id: int) -> Purchase:
        return self.get(purchase_id)

    def find_by_buyer_and_product(self, buyer_id: int, product_id: int) -> Purchase | None:
        return (
            self.db.query(Purchase)
            .filter(Purchase.buyer_id == buyer_id, Purchase.product_id == product_id)
            .order_by(Purchase.created_at)
            .first()
        )

    def has_purchased(self, buyer_id: int, product_id: int) -> bool:
        return self.find_by_buyer_and_product(buyer_id, product_id) is not None

    def list_by_filters(
        self,
        buyer_id: int | None = None,
        product_id: int | None = None,
        type: PurchaseType | None = None,
        recipient_email: str | None = None,
    ) -> list[Purchase]:
        """Newest first; unset filters are ignored."""
        query = self.db.query(Purchase)
        if buyer_id is not None:
            query = query.filter(Purchase.buyer_id == buyer_id)
        if product_id is not None:
            query = query.filter(Purchase.product_id == product_id)
        if type is not None:
            query = query.filter(Purchase.type == type)
        if recipient_email is not None:
            query = query.filter(Purchase.recipient_email == recipient_email)
        return query.order_by(Purchase.created_at.desc(), Purchase.id.desc()).all()
