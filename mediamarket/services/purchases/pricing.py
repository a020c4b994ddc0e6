"""
Purchase kinds and pricing. Pure logic, no I/O.

Decision order for one product:
- already bought by the buyer and no recipient -> AdditionalDownload (flat price)
- recipient given -> Gift (product cost + surcharge)
- otherwise -> Standard (product cost)
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mediamarket.core.config import settings
from mediamarket.models.enums import PurchaseType


@dataclass(frozen=True)
class Standard:
    pass


@dataclass(frozen=True)
class Gift:
    recipient_id: int
    recipient_email: str


@dataclass(frozen=True)
class AdditionalDownload:
    pass


PurchaseKind = Standard | Gift | AdditionalDownload


def _tokens(value: float | int | Decimal) -> Decimal:
    return Decimal(str(value))


def gift_surcharge() -> Decimal:
    return _tokens(settings.gift_surcharge_tokens)


def additional_download_cost() -> Decimal:
    return _tokens(settings.additional_download_cost_tokens)


def decide_kind(
    already_purchased: bool,
    recipient_id: int | None = None,
    recipient_email: str | None = None,
) -> PurchaseKind:
    if already_purchased and not recipient_email:
        return AdditionalDownload()
    if recipient_email:
        if recipient_id is None:
            raise ValueError("gift requires a resolved recipient account")
        return Gift(recipient_id=recipient_id, recipient_email=recipient_email)
    return Standard()


def price(kind: PurchaseKind, product_cost: Decimal) -> Decimal:
    cost = _tokens(product_cost)
    if isinstance(kind, Standard):
        return cost
    if isinstance(kind, Gift):
        return cost + gift_surcharge()
    if isinstance(kind, AdditionalDownload):
        return additional_download_cost()
    raise TypeError(f"unknown purchase kind: {kind!r}")


def purchase_type(kind: PurchaseKind) -> PurchaseType:
    if isinstance(kind, Standard):
        return PurchaseType.STANDARD
    if isinstance(kind, Gift):
        return PurchaseType.GIFT
    if isinstance(kind, AdditionalDownload):
        return PurchaseType.ADDITIONAL_DOWNLOAD
    raise TypeError(f"unknown purchase kind: {kind!r}")
