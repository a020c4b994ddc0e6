"""
Execution: FulfillmentService.fulfill(download_url, requester_id, requested_format) -> Deliverable.

RESOLVE -> AUTHORIZE -> (SINGLE | BUNDLE) TRANSFORM -> COMMIT-USAGE -> RETURN.
Transforms run with no transaction open; only the usage commit is transactional.
A deliverable is returned only if its usage was durably recorded.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mediamarket.core.errors import BadRequest, HttpError, InternalServerError
from mediamarket.fulfillment.access import decide_role, resolve_link
from mediamarket.fulfillment.audit import record_download
from mediamarket.fulfillment.bundle import BundlePackager
from mediamarket.fulfillment.models import Deliverable, DownloadRole, LinkResolution
from mediamarket.fulfillment.tempfiles import TempArtifacts
from mediamarket.fulfillment.transform import MediaTransformEngine, coerce_format
from mediamarket.models.enums import ProductFormat
from mediamarket.repositories.downloads import DownloadRepository
from mediamarket.repositories.purchases import PurchaseRepository

logger = logging.getLogger(__name__)


class FulfillmentService:
    def __init__(
        self,
        db: Session,
        engine: MediaTransformEngine | None = None,
        packager: BundlePackager | None = None,
    ):
        self.db = db
        self.downloads = DownloadRepository(db)
        self.purchases = PurchaseRepository(db)
        self.engine = engine or MediaTransformEngine()
        self.packager = packager or BundlePackager(self.engine, tmp_dir=self.engine.tmp_dir)

    def fulfill(
        self,
        download_url: str,
        requester_id: int,
        requested_format: ProductFormat | str | None = None,
    ) -> Deliverable:
        requested = coerce_format(requested_format)
        resolution = resolve_link(self.db, download_url, requester_id)
        # закрываем read-транзакцию до долгих внешних преобразований
        self.db.rollback()

        with TempArtifacts() as artifacts:
            deliverable = self._produce(resolution, requested)
            artifacts.register(deliverable.file_path)
            self._commit_usage(resolution, requester_id)
            artifacts.release(deliverable.file_path)

        record_download(resolution, requester_id, deliverable)
        return deliverable

    def _produce(self, resolution: LinkResolution, requested: ProductFormat | None) -> Deliverable:
        if resolution.is_bundle:
            return self.packager.package(resolution.items, requested)
        item = resolution.items[0]
        return self.engine.transform(item.master_path, item.format, requested)

    def _commit_usage(self, resolution: LinkResolution, requester_id: int) -> None:
        """
        Flip the usage flag on every row of the URL in one transaction.
        Rows are re-read under lock: a concurrent request that consumed the
        same use in the meantime makes this one fail as "already used".
        """
        url = resolution.download_url
        try:
            rows = self.downloads.get_all_by_url(url, for_update=True)
            if not rows:
                raise InternalServerError("Download link disappeared during processing.")
            purchase = self.purchases.get_by_id(rows[0].purchase_id)
            _, _, role = decide_role(
                purchase,
                rows,
                requester_id,
                purchase.recipient_email if resolution.is_recipient else None,
            )
            if role != resolution.role:
                raise BadRequest("Download link already used.")

            if role == DownloadRole.BUYER:
                updated = self.downloads.set_used_buyer(url)
            else:
                updated = self.downloads.set_used_recipient(url)
            if updated != len(rows):
                raise InternalServerError("Failed to register download usage on all bundle items.")
            self.db.commit()
        except HttpError:
            self.db.rollback()
            logger.warning(
                "download_usage_commit_rejected",
                extra={"download_url": url, "requester_id": requester_id},
            )
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(
                "download_usage_commit_failed",
                extra={"download_url": url, "requester_id": requester_id},
            )
            raise InternalServerError("Failed to register download usage.") from e
