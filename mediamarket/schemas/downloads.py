from datetime import datetime

from pydantic import BaseModel, ConfigDict

from mediamarket.models.enums import PurchaseType


class DownloadLinkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    purchase_id: int
    download_url: str
    used_buyer: bool
    used_recipient: bool | None = None
    expires_at: datetime | None = None
    is_bundle: bool
    created_at: datetime


class LinkWithPurchase(BaseModel):
    link: DownloadLinkOut
    purchase_id: int
    product_id: int
    purchase_type: PurchaseType
