from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from mediamarket.db.base import Base


class TokenLedger(Base):
    __tablename__ = "token_ledger"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(Integer, nullable=False, index=True)
    # download_url покупки; для TOP_UP — None
    reference = Column(String, nullable=True, index=True)
    operation = Column(String, nullable=False)  # PURCHASE, TOP_UP
    amount = Column(Numeric(12, 2), nullable=False)  # signed: debit < 0
    balance_after = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
