"""Tests for PurchaseService — pricing by type, atomic debit, bundles, history."""
from decimal import Decimal

import pytest

from mediamarket.core.errors import BadRequest, NotFound
from mediamarket.models.download import DownloadLink
from mediamarket.models.enums import LedgerOperation, PurchaseType
from mediamarket.models.purchase import Purchase
from mediamarket.models.token_ledger import TokenLedger
from mediamarket.services.purchases.service import PurchaseService, group_history_by_type


def _balance(db, user):
    db.refresh(user)
    return Decimal(user.tokens)


class TestCreatePurchase:
    def test_standard_purchase_debits_cost(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="7")

        result = PurchaseService(db).create_purchase(buyer.id, [product.id])

        assert result.total_cost == Decimal("7")
        assert result.balance_after == Decimal("3")
        assert not result.is_bundle
        assert [line.type for line in result.purchases] == [PurchaseType.STANDARD]
        assert _balance(db, buyer) == Decimal("3")
        assert db.query(Purchase).count() == 1
        links = db.query(DownloadLink).all()
        assert len(links) == 1
        assert links[0].download_url == result.download_url
        assert links[0].used_buyer is False
        assert links[0].used_recipient is None

    def test_insufficient_tokens_leaves_balance_untouched(self, db, factory):
        buyer = factory.user(tokens="10")
        first = factory.image_product(cost="7")
        second = factory.image_product(cost="5")
        svc = PurchaseService(db)
        svc.create_purchase(buyer.id, [first.id])

        with pytest.raises(BadRequest) as exc:
            svc.create_purchase(buyer.id, [second.id])

        assert "Insufficient tokens" in exc.value.message
        assert _balance(db, buyer) == Decimal("3")
        assert db.query(Purchase).count() == 1
        assert db.query(DownloadLink).count() == 1

    def test_bundle_shares_one_url(self, db, factory):
        buyer = factory.user(tokens="20")
        a = factory.image_product(cost="4")
        b = factory.image_product(cost="6")

        result = PurchaseService(db).create_purchase(buyer.id, [a.id, b.id])

        assert result.total_cost == Decimal("10")
        assert result.is_bundle
        assert db.query(Purchase).count() == 2
        links = db.query(DownloadLink).all()
        assert len(links) == 2
        assert {link.download_url for link in links} == {result.download_url}
        assert all(link.is_bundle for link in links)
        assert _balance(db, buyer) == Decimal("10")

    def test_gift_costs_surcharge_and_records_recipient(self, db, factory):
        buyer = factory.user(tokens="10")
        friend = factory.user(email="friend@example.com")
        product = factory.image_product(cost="4")

        result = PurchaseService(db).create_purchase(buyer.id, [product.id], "  friend@example.com ")

        assert result.total_cost == Decimal("4.5")
        line = result.purchases[0]
        assert line.type == PurchaseType.GIFT
        assert line.recipient_email == "friend@example.com"
        purchase = db.query(Purchase).one()
        assert purchase.recipient_id == friend.id
        link = db.query(DownloadLink).one()
        assert link.used_recipient is False
        assert _balance(db, buyer) == Decimal("5.5")

    def test_gift_to_unregistered_email_changes_nothing(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="4")

        with pytest.raises(BadRequest):
            PurchaseService(db).create_purchase(buyer.id, [product.id], "nobody@example.com")

        assert db.query(Purchase).count() == 0
        assert db.query(DownloadLink).count() == 0
        assert db.query(TokenLedger).count() == 0
        assert _balance(db, buyer) == Decimal("10")

    def test_repeat_purchase_is_additional_download_with_fresh_link(self, db, factory):
        buyer = factory.user(tokens="20")
        product = factory.image_product(cost="9")
        svc = PurchaseService(db)
        first = svc.create_purchase(buyer.id, [product.id])

        second = svc.create_purchase(buyer.id, [product.id])

        assert second.purchases[0].type == PurchaseType.ADDITIONAL_DOWNLOAD
        assert second.total_cost == Decimal("1")
        assert second.download_url != first.download_url
        assert _balance(db, buyer) == Decimal("10")

    def test_unknown_product_rejected(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="1")

        with pytest.raises(BadRequest) as exc:
            PurchaseService(db).create_purchase(buyer.id, [product.id, 999])

        assert exc.value.detail == {"missing_product_ids": [999]}
        assert db.query(Purchase).count() == 0

    def test_empty_and_duplicate_product_lists_rejected(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="1")
        svc = PurchaseService(db)

        with pytest.raises(BadRequest):
            svc.create_purchase(buyer.id, [])
        with pytest.raises(BadRequest):
            svc.create_purchase(buyer.id, [product.id, product.id])

    def test_unknown_buyer_is_not_found(self, db, factory):
        product = factory.image_product(cost="1")

        with pytest.raises(NotFound):
            PurchaseService(db).create_purchase(12345, [product.id])

        assert db.query(Purchase).count() == 0

    def test_ledger_entry_written(self, db, factory):
        buyer = factory.user(tokens="10")
        product = factory.image_product(cost="7")

        result = PurchaseService(db).create_purchase(buyer.id, [product.id])

        entry = db.query(TokenLedger).one()
        assert entry.operation == LedgerOperation.PURCHASE.value
        assert Decimal(entry.amount) == Decimal("-7")
        assert Decimal(entry.balance_after) == Decimal("3")
        assert entry.reference == result.download_url


class TestDetailsAndHistory:
    def test_details_include_recipient(self, db, factory):
        buyer = factory.user(tokens="10")
        friend = factory.user(email="friend@example.com", first_name="Ada")
        product = factory.image_product(cost="2")
        result = PurchaseService(db).create_purchase(buyer.id, [product.id], friend.email)

        details = PurchaseService(db).get_details(result.purchases[0].purchase_id)

        assert details.type == PurchaseType.GIFT
        assert details.buyer.id == buyer.id
        assert details.recipient.first_name == "Ada"
        assert details.product.path == product.path

    def test_details_unknown_purchase(self, db):
        with pytest.raises(NotFound):
            PurchaseService(db).get_details(42)

    def test_history_filter_and_grouping(self, db, factory):
        buyer = factory.user(tokens="50")
        friend = factory.user(email="friend@example.com")
        a = factory.image_product(cost="3", title="A")
        b = factory.image_product(cost="3", title="B")
        svc = PurchaseService(db)
        svc.create_purchase(buyer.id, [a.id])
        svc.create_purchase(buyer.id, [b.id], friend.email)
        svc.create_purchase(buyer.id, [a.id])

        history = svc.get_user_history(buyer.id)
        gifts = svc.get_user_history(buyer.id, PurchaseType.GIFT)
        grouped = group_history_by_type(history)

        assert len(history) == 3
        assert history[0].type == PurchaseType.ADDITIONAL_DOWNLOAD
        assert not hasattr(history[0].product, "path")
        assert [g.product.title for g in gifts] == ["B"]
        assert gifts[0].recipient.email == "friend@example.com"
        assert len(grouped[PurchaseType.STANDARD]) == 1
        assert len(grouped[PurchaseType.GIFT]) == 1
        assert len(grouped[PurchaseType.ADDITIONAL_DOWNLOAD]) == 1
