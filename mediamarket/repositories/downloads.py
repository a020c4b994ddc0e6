from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from mediamarket.models.download import DownloadLink
from mediamarket.repositories.base import BaseRepository


class DownloadRepository(BaseRepository[DownloadLink]):
    entity_name = "Download"

    def __init__(self, db: Session):
        super().__init__(DownloadLink, db)

    def get_all_by_url(self, download_url: str, *, for_update: bool = False) -> list[DownloadLink]:
        """All rows of a link: 1 for a single item, N for a bundle."""
        query = (
            self.db.query(DownloadLink)
            .filter(DownloadLink.download_url == download_url)
            .order_by(DownloadLink.id)
        )
        if for_update:
            query = query.with_for_update()
        return query.all()

    def list_for_purchase(self, purchase_id: int) -> list[DownloadLink]:
        return (
            self.db.query(DownloadLink)
            .filter(DownloadLink.purchase_id == purchase_id)
            .order_by(DownloadLink.id)
            .all()
        )

    def list_for_purchases(self, purchase_ids: list[int]) -> list[DownloadLink]:
        if not purchase_ids:
            return []
        return (
            self.db.query(DownloadLink)
            .filter(DownloadLink.purchase_id.in_(purchase_ids))
            .order_by(DownloadLink.id)
            .all()
        )

    def update_url(self, link_id: int, download_url: str) -> None:
        self.db.execute(
            update(DownloadLink)
            .where(DownloadLink.id == link_id)
            .values(download_url=download_url)
        )
        self.db.flush()

    def set_used_buyer(self, download_url: str) -> int:
        """Flip used_buyer on every row sharing the URL. Returns the number of flipped rows."""
        result = self.db.execute(
            update(DownloadLink)
            .where(DownloadLink.download_url == download_url, DownloadLink.used_buyer.is_(False))
            .values(used_buyer=True)
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount

    def set_used_recipient(self, download_url: str) -> int:
        result = self.db.execute(
            update(DownloadLink)
            .where(DownloadLink.download_url == download_url, DownloadLink.used_recipient.is_(False))
            .values(used_recipient=True)
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        return result.rowcount

    def set_expiration_by_url(self, download_url: str, expires_at: datetime | None) -> None:
        self.db.execute(
            update(DownloadLink)
            .where(DownloadLink.download_url == download_url)
            .values(expires_at=expires_at)
            .execution_options(synchronize_session="fetch")
        )
        self.db.flush()
