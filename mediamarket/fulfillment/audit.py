"""
Аудит скачиваний: record_download вызывается только после того, как использование ссылки зафиксировано.
"""
from __future__ import annotations

import logging

from mediamarket.fulfillment.models import Deliverable, LinkResolution

logger = logging.getLogger(__name__)


def record_download(resolution: LinkResolution, requester_id: int, deliverable: Deliverable) -> None:
    logger.info(
        "download_fulfilled",
        extra={
            "download_url": resolution.download_url,
            "requester_id": requester_id,
            "role": resolution.role.value,
            "is_bundle": resolution.is_bundle,
            "items": len(resolution.items),
            "output": deliverable.file_name,
        },
    )
