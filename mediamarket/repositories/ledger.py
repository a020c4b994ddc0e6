from decimal import Decimal

from sqlalchemy.orm import Session

from mediamarket.core.errors import NotFound
from mediamarket.models.token_ledger import TokenLedger
from mediamarket.models.user import User


class LedgerRepository:
    """Token balances live on User; every change leaves a TokenLedger row."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> User:
        user = self.find_user(user_id)
        if user is None:
            raise NotFound(f"User not found with ID {user_id}.")
        return user

    def find_user(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def find_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).one_or_none()

    def lock_user(self, user_id: int) -> User:
        """SELECT ... FOR UPDATE on the user row; serializes concurrent debits."""
        user = (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .one_or_none()
        )
        if user is None:
            raise NotFound(f"User not found with ID {user_id}.")
        return user

    def get_balance(self, user_id: int) -> Decimal:
        return Decimal(self.get_user(user_id).tokens or 0)

    def set_balance(self, user: User, new_value: Decimal) -> None:
        user.tokens = new_value
        self.db.add(user)
        self.db.flush()

    def add_entry(
        self,
        user_id: int,
        operation: str,
        amount: Decimal,
        balance_after: Decimal,
        reference: str | None = None,
    ) -> TokenLedger:
        entry = TokenLedger(
            user_id=user_id,
            reference=reference,
            operation=operation,
            amount=amount,
            balance_after=balance_after,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_entries(self, user_id: int) -> list[TokenLedger]:
        return (
            self.db.query(TokenLedger)
            .filter(TokenLedger.user_id == user_id)
            .order_by(TokenLedger.created_at)
            .all()
        )
