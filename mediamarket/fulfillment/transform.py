"""
Media transform engine: master file -> watermarked temp file (optionally re-encoded).
Every call allocates a fresh temp file; the caller owns deleting it.
"""
from __future__ import annotations

import logging
import os

from mediamarket.core.errors import BadRequest, HttpError, InternalServerError
from mediamarket.fulfillment.config import get_watermark_text
from mediamarket.fulfillment.models import Deliverable
from mediamarket.fulfillment.tempfiles import TempArtifacts, build_tmp_path
from mediamarket.fulfillment.watermark import apply_image_watermark, apply_video_watermark
from mediamarket.models.enums import ProductFormat

logger = logging.getLogger(__name__)


def coerce_format(value: ProductFormat | str | None) -> ProductFormat | None:
    """Accept enum members or raw strings ('jpg', 'PNG'); None stays None."""
    if value is None or isinstance(value, ProductFormat):
        return value
    try:
        return ProductFormat(str(value).strip().lower())
    except ValueError:
        raise BadRequest(f"Unsupported format: {value}") from None


class MediaTransformEngine:
    def __init__(self, tmp_dir: str | None = None, watermark_text: str | None = None):
        self.tmp_dir = tmp_dir
        self.watermark_text = watermark_text

    def _text(self) -> str:
        return (self.watermark_text or get_watermark_text()).strip()

    def resolve_output_format(
        self,
        original: ProductFormat,
        requested: ProductFormat | None,
    ) -> ProductFormat:
        """Validate the conversion before any file is touched."""
        if original.is_image:
            target = requested or original
            if not target.is_image:
                raise BadRequest(f"Requested format '{target.value}' is not valid for images.")
            return target
        if original.is_video:
            if requested is not None and requested != original:
                raise BadRequest("Format conversion unsupported for video.")
            return original
        raise BadRequest("Unsupported product format.")

    def transform(
        self,
        master_path: str,
        original_format: ProductFormat | str,
        requested_format: ProductFormat | str | None = None,
    ) -> Deliverable:
        original = coerce_format(original_format)
        target = self.resolve_output_format(original, coerce_format(requested_format))

        if not master_path or not os.path.isfile(master_path):
            logger.error("master_missing", extra={"path": master_path})
            raise InternalServerError("Original product file is missing on server.")

        base = os.path.splitext(os.path.basename(master_path))[0]
        with TempArtifacts() as artifacts:
            out_path = artifacts.register(build_tmp_path(f"{base}-wm", target.value, self.tmp_dir))
            try:
                if target.is_image:
                    apply_image_watermark(master_path, out_path, self._text(), target)
                else:
                    apply_video_watermark(master_path, out_path, self._text())
            except HttpError:
                raise
            except Exception as e:
                raise InternalServerError("Failed to process media file.") from e
            artifacts.release(out_path)

        return Deliverable(
            file_path=out_path,
            file_name=os.path.basename(out_path),
            content_type=target.content_type,
        )
