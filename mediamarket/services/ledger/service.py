import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mediamarket.core.errors import BadRequest, HttpError, InternalServerError
from mediamarket.models.enums import LedgerOperation
from mediamarket.models.token_ledger import TokenLedger
from mediamarket.models.user import User
from mediamarket.repositories.ledger import LedgerRepository

logger = logging.getLogger(__name__)


class LedgerService:
    """Token balance on User. Callers of debit() own the surrounding transaction."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)

    def get_balance(self, user_id: int) -> Decimal:
        return self.ledger.get_balance(user_id)

    def debit(self, user_id: int, amount: Decimal, reference: str | None = None) -> TokenLedger:
        """
        Lock the user row, check funds, write the new balance and a ledger row.
        Does not commit. Raises BadRequest when the balance is insufficient.
        """
        locked = self.ledger.lock_user(user_id)
        current = Decimal(locked.tokens or 0)
        if amount > current:
            raise BadRequest(
                "Insufficient tokens for this purchase.",
                detail={"required": str(amount), "available": str(current)},
            )
        new_balance = current - amount
        self.ledger.set_balance(locked, new_balance)
        return self.ledger.add_entry(
            user_id=user_id,
            operation=LedgerOperation.PURCHASE.value,
            amount=-amount,
            balance_after=new_balance,
            reference=reference,
        )

    def top_up(self, user_id: int, amount: Decimal) -> Decimal:
        """Admin recharge. Commits on its own."""
        amount = Decimal(str(amount))
        if amount <= 0:
            raise BadRequest("Top-up amount must be positive.")
        try:
            locked: User = self.ledger.lock_user(user_id)
            new_balance = Decimal(locked.tokens or 0) + amount
            self.ledger.set_balance(locked, new_balance)
            self.ledger.add_entry(
                user_id=user_id,
                operation=LedgerOperation.TOP_UP.value,
                amount=amount,
                balance_after=new_balance,
            )
            self.db.commit()
        except HttpError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("ledger_top_up_failed", extra={"user_id": user_id})
            raise InternalServerError("Failed to update user tokens.") from e
        logger.info("ledger_top_up", extra={"user_id": user_id, "balance": str(new_balance)})
        return new_balance

    def history(self, user_id: int) -> list[TokenLedger]:
        return self.ledger.list_entries(user_id)
