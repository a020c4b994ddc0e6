"""
Выдача покупок: проверка ссылки (access) и исполнение (delivery) разделены;
контракт между ними — LinkResolution.
"""
from mediamarket.fulfillment.access import resolve_link
from mediamarket.fulfillment.bundle import BundlePackager
from mediamarket.fulfillment.delivery import FulfillmentService
from mediamarket.fulfillment.models import (
    Deliverable,
    DownloadRole,
    LinkResolution,
    ResolvedItem,
)
from mediamarket.fulfillment.tempfiles import (
    TempArtifacts,
    preview_stale_artifacts,
    sweep_stale_artifacts,
)
from mediamarket.fulfillment.transform import MediaTransformEngine

__all__ = [
    "BundlePackager",
    "Deliverable",
    "DownloadRole",
    "FulfillmentService",
    "LinkResolution",
    "MediaTransformEngine",
    "ResolvedItem",
    "TempArtifacts",
    "preview_stale_artifacts",
    "resolve_link",
    "sweep_stale_artifacts",
]
