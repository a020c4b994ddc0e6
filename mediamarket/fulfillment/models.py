"""
DTO fulfillment: ResolvedItem, LinkResolution (вход delivery), Deliverable (выход для HTTP-слоя).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from mediamarket.models.enums import ProductFormat


class DownloadRole(str, Enum):
    BUYER = "buyer"
    RECIPIENT = "recipient"


class ResolvedItem(BaseModel):
    """One product behind a link row, with its master file."""

    purchase_id: int
    product_id: int
    title: str
    master_path: str
    format: ProductFormat

    model_config = {"frozen": True}


class LinkResolution(BaseModel):
    """Результат resolve_link: что отдавать и от чьего имени списывать использование."""

    download_url: str
    items: list[ResolvedItem] = Field(..., min_length=1)
    is_bundle: bool
    is_buyer: bool
    is_recipient: bool
    role: DownloadRole = Field(
        ...,
        description="Which usage flag the fulfillment consumes",
    )
    expires_at: datetime | None = None

    model_config = {"frozen": True}


class Deliverable(BaseModel):
    """
    Temp file handed to the HTTP layer. The caller streams it and then
    deletes file_path.
    """

    file_path: str
    file_name: str
    content_type: str

    model_config = {"frozen": True}
