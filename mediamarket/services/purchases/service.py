"""
PurchaseService — покупка продуктов за токены.

Ответственности:
- Определение типа покупки (standard / gift / additional download) и цены
- Атомарно: списание токенов + записи Purchase + DownloadLink (одна транзакция)
- Детали покупки и история покупок пользователя
"""
import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mediamarket.core.errors import BadRequest, HttpError, InternalServerError
from mediamarket.models.enums import PurchaseType
from mediamarket.models.product import Product
from mediamarket.models.purchase import Purchase
from mediamarket.repositories.ledger import LedgerRepository
from mediamarket.repositories.products import ProductRepository
from mediamarket.repositories.purchases import PurchaseRepository
from mediamarket.schemas.purchases import (
    HistoryEntry,
    ProductOut,
    ProductSummary,
    PurchaseDetails,
    PurchaseLine,
    PurchaseResult,
    UserOut,
)
from mediamarket.services.downloads.service import DownloadService
from mediamarket.services.ledger.service import LedgerService
from mediamarket.services.purchases.pricing import (
    Gift,
    PurchaseKind,
    decide_kind,
    price,
    purchase_type,
)

logger = logging.getLogger(__name__)


class PurchaseService:
    def __init__(self, db: Session):
        self.db = db
        self.products = ProductRepository(db)
        self.purchases = PurchaseRepository(db)
        self.users = LedgerRepository(db)
        self.ledger = LedgerService(db)
        self.downloads = DownloadService(db)

    # ------------------------------------------------------------------
    # Purchase creation
    # ------------------------------------------------------------------

    def create_purchase(
        self,
        buyer_id: int,
        product_ids: list[int],
        recipient_email: str | None = None,
    ) -> PurchaseResult:
        """
        Buy one product or a bundle. All validation happens before any write;
        the debit, purchase rows and link rows are committed together or not at all.
        """
        if not product_ids:
            raise BadRequest("At least one product is required.")
        if len(set(product_ids)) != len(product_ids):
            raise BadRequest("Duplicate products in purchase request.")

        products = self._resolve_products(product_ids)
        recipient_id, email = self._resolve_recipient(recipient_email)

        plan: list[tuple[Product, PurchaseKind, Decimal]] = []
        for product in products:
            kind = decide_kind(
                already_purchased=self.purchases.has_purchased(buyer_id, product.id),
                recipient_id=recipient_id,
                recipient_email=email,
            )
            plan.append((product, kind, price(kind, product.cost)))
        total_cost = sum((cost for _, _, cost in plan), Decimal("0"))

        try:
            # lock + funds check first: insufficient balance aborts before any row is written
            entry = self.ledger.debit(buyer_id, total_cost)
            created: list[Purchase] = []
            for product, kind, _ in plan:
                created.append(self.purchases.create({
                    "buyer_id": buyer_id,
                    "product_id": product.id,
                    "type": purchase_type(kind),
                    "recipient_id": kind.recipient_id if isinstance(kind, Gift) else None,
                    "recipient_email": kind.recipient_email if isinstance(kind, Gift) else None,
                }))
            links = self.downloads.create_links(created)
            download_url = links[0].download_url
            entry.reference = download_url
            balance_after = Decimal(entry.balance_after)
            self.db.commit()
        except HttpError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("purchase_failed", extra={"buyer_id": buyer_id})
            raise InternalServerError("Error creating purchase.") from e

        logger.info(
            "purchase_created",
            extra={
                "buyer_id": buyer_id,
                "download_url": download_url,
                "items": len(created),
                "total_cost": str(total_cost),
                "balance": str(balance_after),
            },
        )
        return PurchaseResult(
            purchases=[
                PurchaseLine(
                    purchase_id=p.id,
                    product_id=p.product_id,
                    type=p.type,
                    cost=cost,
                    recipient_email=p.recipient_email,
                )
                for p, (_, _, cost) in zip(created, plan)
            ],
            total_cost=total_cost,
            download_url=download_url,
            is_bundle=len(created) > 1,
            balance_after=balance_after,
        )

    def _resolve_products(self, product_ids: list[int]) -> list[Product]:
        found = self.products.get_many(product_ids)
        missing = [pid for pid in product_ids if pid not in found]
        if missing:
            raise BadRequest(
                "Product not found.",
                detail={"missing_product_ids": missing},
            )
        return [found[pid] for pid in product_ids]

    def _resolve_recipient(self, recipient_email: str | None) -> tuple[int | None, str | None]:
        if recipient_email is None:
            return None, None
        email = recipient_email.strip()
        if not email:
            return None, None
        recipient = self.users.find_user_by_email(email)
        if recipient is None:
            raise BadRequest("Recipient must be a registered user.")
        return recipient.id, email

    # ------------------------------------------------------------------
    # Details & history
    # ------------------------------------------------------------------

    def get_details(self, purchase_id: int) -> PurchaseDetails:
        p = self.purchases.get_by_id(purchase_id)
        product = self.products.get(p.product_id)
        buyer = self.users.get_user(p.buyer_id)
        recipient = self._find_user(p.recipient_id)
        return PurchaseDetails(
            purchase_id=p.id,
            type=p.type,
            product=ProductOut.model_validate(product),
            buyer=UserOut.model_validate(buyer),
            recipient=UserOut.model_validate(recipient) if recipient else None,
            created_at=p.created_at,
        )

    def get_user_history(
        self,
        user_id: int,
        purchase_type: PurchaseType | None = None,
    ) -> list[HistoryEntry]:
        rows = self.purchases.list_by_filters(buyer_id=user_id, type=purchase_type)
        products = self.products.get_many(list({p.product_id for p in rows}))
        history: list[HistoryEntry] = []
        for p in rows:
            product = products.get(p.product_id)
            if product is None:
                # продукт удалён из каталога — в истории не показываем
                logger.warning(
                    "purchase_history_product_missing",
                    extra={"purchase_id": p.id, "product_id": p.product_id},
                )
                continue
            recipient = self._find_user(p.recipient_id)
            history.append(HistoryEntry(
                purchase_id=p.id,
                type=p.type,
                product=ProductSummary.model_validate(product),
                recipient=UserOut.model_validate(recipient) if recipient else None,
                created_at=p.created_at,
            ))
        return history

    def _find_user(self, user_id: int | None):
        if user_id is None:
            return None
        return self.users.find_user(user_id)


def group_history_by_type(entries: list[HistoryEntry]) -> dict[PurchaseType, list[HistoryEntry]]:
    """Group history entries for report builders; every type key is present."""
    grouped: dict[PurchaseType, list[HistoryEntry]] = defaultdict(list)
    for t in PurchaseType:
        grouped[t] = []
    for entry in entries:
        grouped[entry.type].append(entry)
    return dict(grouped)
