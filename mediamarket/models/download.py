from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from mediamarket.db.base import Base


class DownloadLink(Base):
    """
    One row per purchased product. A bundle is several rows sharing download_url;
    usage flags and expiry are always updated on all of them together.
    """

    __tablename__ = "download_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_id = Column(Integer, ForeignKey("purchases.id"), nullable=False, index=True)
    download_url = Column(String, nullable=False, index=True, default=lambda: str(uuid4()))
    used_buyer = Column(Boolean, nullable=False, default=False)
    used_recipient = Column(Boolean, nullable=True)  # None если покупка не подарок
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_bundle = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
