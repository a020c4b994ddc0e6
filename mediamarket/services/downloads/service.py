import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mediamarket.core.config import settings
from mediamarket.core.errors import HttpError, InternalServerError
from mediamarket.models.download import DownloadLink
from mediamarket.models.purchase import Purchase
from mediamarket.repositories.downloads import DownloadRepository
from mediamarket.repositories.purchases import PurchaseRepository
from mediamarket.schemas.downloads import DownloadLinkOut, LinkWithPurchase

logger = logging.getLogger(__name__)


def default_expiry(now: datetime | None = None) -> datetime | None:
    """Expiry for a freshly minted link; None when the TTL is disabled (0)."""
    ttl = settings.download_link_ttl_hours
    if not ttl or ttl <= 0:
        return None
    return (now or datetime.now(timezone.utc)) + timedelta(hours=ttl)


class DownloadService:
    def __init__(self, db: Session):
        self.db = db
        self.downloads = DownloadRepository(db)
        self.purchases = PurchaseRepository(db)

    def create_links(self, purchases: list[Purchase]) -> list[DownloadLink]:
        """
        One link row per purchase, all sharing one download_url.
        The first row mints the URL, the others reuse it. No commit here:
        runs inside the purchase transaction.
        """
        if not purchases:
            return []
        is_bundle = len(purchases) > 1
        expires_at = default_expiry()
        links: list[DownloadLink] = []
        shared_url: str | None = None
        for purchase in purchases:
            data = {
                "purchase_id": purchase.id,
                "used_buyer": False,
                "used_recipient": False if purchase.is_gift() else None,
                "expires_at": expires_at,
                "is_bundle": is_bundle,
            }
            if shared_url is not None:
                data["download_url"] = shared_url
            link = self.downloads.create(data)
            if shared_url is None:
                shared_url = link.download_url
            links.append(link)
        return links

    def list_for_user(self, user_id: int) -> list[LinkWithPurchase]:
        purchases = self.purchases.list_by_filters(buyer_id=user_id)
        by_id = {p.id: p for p in purchases}
        links = self.downloads.list_for_purchases(list(by_id))
        return [
            LinkWithPurchase(
                link=DownloadLinkOut.model_validate(link),
                purchase_id=link.purchase_id,
                product_id=by_id[link.purchase_id].product_id,
                purchase_type=by_id[link.purchase_id].type,
            )
            for link in links
        ]

    def list_for_purchase(self, purchase_id: int) -> list[DownloadLinkOut]:
        self.purchases.get_by_id(purchase_id)
        return [DownloadLinkOut.model_validate(d) for d in self.downloads.list_for_purchase(purchase_id)]

    def set_expiration(self, link_id: int, expires_at: datetime | None) -> list[DownloadLinkOut]:
        """
        Set or clear expiry. Bundle rows share one URL, so the new value
        is applied to every row of that URL.
        """
        link = self.downloads.get(link_id)
        try:
            self.downloads.set_expiration_by_url(link.download_url, expires_at)
            self.db.commit()
        except HttpError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("download_set_expiration_failed", extra={"link_id": link_id})
            raise InternalServerError(f"Error setting expiration for download {link_id}.") from e
        logger.info(
            "download_expiration_set",
            extra={"link_id": link_id, "download_url": link.download_url},
        )
        return [DownloadLinkOut.model_validate(d) for d in self.downloads.get_all_by_url(link.download_url)]
