"""
Bundle packager: transforms each item of a multi-product link and streams the
results into one zip. Per-item temp files are deleted as soon as they are archived.
"""
from __future__ import annotations

import logging
import os
import zipfile

from mediamarket.core.errors import HttpError, InternalServerError
from mediamarket.fulfillment.config import get_bundle_compress_level
from mediamarket.fulfillment.models import Deliverable, ResolvedItem
from mediamarket.fulfillment.tempfiles import TempArtifacts, build_tmp_path
from mediamarket.fulfillment.transform import MediaTransformEngine
from mediamarket.models.enums import ProductFormat

logger = logging.getLogger(__name__)

BUNDLE_FILE_NAME = "bundle.zip"
BUNDLE_CONTENT_TYPE = "application/zip"


class BundlePackager:
    def __init__(self, engine: MediaTransformEngine, tmp_dir: str | None = None):
        self.engine = engine
        self.tmp_dir = tmp_dir

    def package(
        self,
        items: list[ResolvedItem],
        requested_format: ProductFormat | None = None,
    ) -> Deliverable:
        plan = [(item, requested_format if item.format.is_image else None) for item in items]
        for item, requested in plan:
            self.engine.resolve_output_format(item.format, requested)

        with TempArtifacts() as artifacts:
            zip_path = artifacts.register(build_tmp_path("bundle", "zip", self.tmp_dir))
            try:
                with zipfile.ZipFile(
                    zip_path,
                    "w",
                    compression=zipfile.ZIP_DEFLATED,
                    compresslevel=get_bundle_compress_level(),
                ) as archive:
                    # the requested format only applies to images; videos stay MP4
                    for item, requested in plan:
                        part = self.engine.transform(item.master_path, item.format, requested)
                        artifacts.register(part.file_path)
                        archive.write(part.file_path, arcname=part.file_name)
                        artifacts.discard(part.file_path)
            except HttpError:
                raise
            except (OSError, zipfile.BadZipFile) as e:
                logger.exception("bundle_packaging_failed", extra={"path": zip_path})
                raise InternalServerError("Failed to build bundle archive.") from e
            artifacts.release(zip_path)

        logger.info("bundle_packaged", extra={"path": zip_path, "items": len(items)})
        return Deliverable(
            file_path=zip_path,
            file_name=BUNDLE_FILE_NAME,
            content_type=BUNDLE_CONTENT_TYPE,
        )
