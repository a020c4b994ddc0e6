"""
Decision: resolve_link(db, download_url, requester_id) -> LinkResolution.
Only reads. Order of checks: link exists -> not expired -> products resolve ->
requester is buyer/recipient -> requester's usage not consumed yet.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from mediamarket.core.errors import BadRequest, Forbidden, NotFound
from mediamarket.fulfillment.models import DownloadRole, LinkResolution, ResolvedItem
from mediamarket.models.download import DownloadLink
from mediamarket.models.purchase import Purchase
from mediamarket.repositories.downloads import DownloadRepository
from mediamarket.repositories.ledger import LedgerRepository
from mediamarket.repositories.products import ProductRepository
from mediamarket.repositories.purchases import PurchaseRepository

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite отдаёт naive datetime — считаем его UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(link: DownloadLink, now: datetime | None = None) -> bool:
    if link.expires_at is None:
        return False
    return (now or datetime.now(timezone.utc)) > _as_utc(link.expires_at)


def decide_role(
    purchase: Purchase,
    links: list[DownloadLink],
    requester_id: int,
    requester_email: str | None,
) -> tuple[bool, bool, DownloadRole]:
    """
    Returns (is_buyer, is_recipient, role). A requester who is both buyer and
    recipient consumes the buyer use first, then the recipient use.
    """
    is_buyer = purchase.buyer_id == requester_id
    is_recipient = (
        purchase.is_gift()
        and requester_email is not None
        and purchase.recipient_email is not None
        and requester_email == purchase.recipient_email
    )
    if not (is_buyer or is_recipient):
        raise Forbidden("You are not allowed to download this item.")

    used_buyer = any(link.used_buyer for link in links)
    used_recipient = any(bool(link.used_recipient) for link in links)
    if is_buyer and not used_buyer:
        return is_buyer, is_recipient, DownloadRole.BUYER
    if is_recipient and not used_recipient:
        return is_buyer, is_recipient, DownloadRole.RECIPIENT
    raise BadRequest("Download link already used.")


def resolve_link(db: Session, download_url: str, requester_id: int) -> LinkResolution:
    links = DownloadRepository(db).get_all_by_url(download_url)
    if not links:
        raise NotFound("Download link not found.")

    # expiry is shared by all rows of a bundle
    if is_expired(links[0]):
        raise BadRequest("Download link has expired.")

    purchases = PurchaseRepository(db)
    products = ProductRepository(db)
    linked: list[Purchase] = []
    items: list[ResolvedItem] = []
    for link in links:
        purchase = purchases.find(link.purchase_id)
        product = products.find(purchase.product_id) if purchase else None
        if purchase is None or product is None:
            logger.warning(
                "download_link_dangling",
                extra={"download_url": download_url, "link_id": link.id},
            )
            raise NotFound("Purchase or product not found.")
        linked.append(purchase)
        items.append(ResolvedItem(
            purchase_id=purchase.id,
            product_id=product.id,
            title=product.title,
            master_path=product.path,
            format=product.format,
        ))

    requester = LedgerRepository(db).find_user(requester_id)
    requester_email = requester.email if requester else None
    is_buyer, is_recipient, role = decide_role(linked[0], links, requester_id, requester_email)

    return LinkResolution(
        download_url=download_url,
        items=items,
        is_bundle=len(links) > 1 or bool(links[0].is_bundle),
        is_buyer=is_buyer,
        is_recipient=is_recipient,
        role=role,
        expires_at=links[0].expires_at,
    )
