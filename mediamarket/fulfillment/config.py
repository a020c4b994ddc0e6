"""
Fulfillment config — типизированная обёртка над mediamarket.core.config для watermark и temp-файлов.
"""
from __future__ import annotations

from mediamarket.core.config import settings


def get_watermark_text() -> str:
    return getattr(settings, "watermark_text", "DIGITAL PRODUCTS")


def get_tmp_dir() -> str:
    return settings.tmp_dir


def get_image_font_path() -> str:
    return settings.image_font_path


def get_video_font_path() -> str:
    return settings.video_font_path


def get_image_watermark_bounds() -> tuple[float, int, int]:
    """(scale, min_px, max_px) for the image label."""
    return settings.wm_scale, settings.wm_min_pt, settings.wm_max_pt


def get_video_watermark_scale() -> float:
    return settings.video_wm_scale


def get_ffmpeg_binary() -> str:
    return settings.ffmpeg_binary


def get_transform_timeout() -> float:
    return settings.transform_timeout_seconds


def get_bundle_compress_level() -> int:
    return settings.bundle_zip_compress_level


def get_tmp_artifact_ttl_hours() -> int:
    return settings.tmp_artifact_ttl_hours
