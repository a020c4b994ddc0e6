"""
Тесты resolve_link: существование, срок действия, авторизация, использование.
"""
from datetime import datetime, timedelta, timezone

import pytest

from mediamarket.core.errors import BadRequest, Forbidden, NotFound
from mediamarket.fulfillment.access import resolve_link
from mediamarket.fulfillment.models import DownloadRole
from mediamarket.models.download import DownloadLink
from mediamarket.repositories.downloads import DownloadRepository
from mediamarket.services.purchases.service import PurchaseService


def _buy(db, buyer, products, recipient_email=None):
    return PurchaseService(db).create_purchase(buyer.id, [p.id for p in products], recipient_email)


def _expire(db, url):
    DownloadRepository(db).set_expiration_by_url(url, datetime.now(timezone.utc) - timedelta(minutes=1))
    db.commit()


class TestResolveLink:
    def test_unknown_url(self, db):
        with pytest.raises(NotFound):
            resolve_link(db, "missing", 1)

    def test_buyer_resolves_single_item(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product])

        res = resolve_link(db, result.download_url, buyer.id)

        assert res.is_buyer and not res.is_recipient
        assert res.role == DownloadRole.BUYER
        assert not res.is_bundle
        assert [i.product_id for i in res.items] == [product.id]
        assert res.items[0].master_path == product.path

    def test_bundle_resolves_all_items(self, db, factory):
        buyer = factory.user(tokens="10")
        a = factory.image_product(cost="2")
        b = factory.video_product(cost="2")
        result = _buy(db, buyer, [a, b])

        res = resolve_link(db, result.download_url, buyer.id)

        assert res.is_bundle
        assert [i.product_id for i in res.items] == [a.id, b.id]

    def test_expired_link_fails_even_if_unused(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product])
        _expire(db, result.download_url)

        with pytest.raises(BadRequest) as exc:
            resolve_link(db, result.download_url, buyer.id)
        assert "expired" in exc.value.message

    def test_stranger_is_forbidden(self, db, factory):
        buyer = factory.user(tokens="10")
        stranger = factory.user()
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product])

        with pytest.raises(Forbidden):
            resolve_link(db, result.download_url, stranger.id)

    def test_recipient_of_gift_allowed(self, db, factory):
        buyer = factory.user(tokens="10")
        friend = factory.user(email="friend@example.com")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product], friend.email)

        res = resolve_link(db, result.download_url, friend.id)

        assert res.is_recipient and not res.is_buyer
        assert res.role == DownloadRole.RECIPIENT

    def test_used_buyer_rejected(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product])
        DownloadRepository(db).set_used_buyer(result.download_url)
        db.commit()

        with pytest.raises(BadRequest) as exc:
            resolve_link(db, result.download_url, buyer.id)
        assert "already used" in exc.value.message

    def test_missing_product_is_not_found(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product])
        db.delete(product)
        db.commit()

        with pytest.raises(NotFound):
            resolve_link(db, result.download_url, buyer.id)

    def test_self_gift_consumes_buyer_then_recipient(self, db, factory):
        buyer = factory.user(email="me@example.com", tokens="10")
        product = factory.image_product(cost="2")
        result = _buy(db, buyer, [product], buyer.email)

        assert resolve_link(db, result.download_url, buyer.id).role == DownloadRole.BUYER
        DownloadRepository(db).set_used_buyer(result.download_url)
        db.commit()
        assert resolve_link(db, result.download_url, buyer.id).role == DownloadRole.RECIPIENT
        assert db.query(DownloadLink).one().used_recipient is False
