from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from mediamarket.models.enums import ProductFormat, ProductType, PurchaseType


class ProductSummary(BaseModel):
    """Product as shown to buyers: no master path."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    type: ProductType
    year: int
    format: ProductFormat
    cost: Decimal


class ProductOut(ProductSummary):
    path: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None


class PurchaseLine(BaseModel):
    purchase_id: int
    product_id: int
    type: PurchaseType
    cost: Decimal
    recipient_email: str | None = None


class PurchaseResult(BaseModel):
    """Result of create_purchase: one line per product + the shared download URL."""

    model_config = ConfigDict(frozen=True)

    purchases: list[PurchaseLine]
    total_cost: Decimal
    download_url: str
    is_bundle: bool
    balance_after: Decimal


class PurchaseDetails(BaseModel):
    purchase_id: int
    type: PurchaseType
    product: ProductOut
    buyer: UserOut
    recipient: UserOut | None = None
    created_at: datetime


class HistoryEntry(BaseModel):
    purchase_id: int
    type: PurchaseType
    product: ProductSummary
    recipient: UserOut | None = None
    created_at: datetime
