from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String

from mediamarket.db.base import Base
from mediamarket.models.enums import PurchaseType, enum_values


class Purchase(Base):
    """Append-only purchase record. recipient_email is set iff type == GIFT."""

    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    type = Column(Enum(PurchaseType, native_enum=False, values_callable=enum_values), nullable=False)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    recipient_email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def is_gift(self) -> bool:
        return self.type == PurchaseType.GIFT
