"""
Watermark utility — текст по центру кадра.

Images: Pillow, white label with a black stroke, sized from the shorter side.
Video: ffmpeg drawtext over a semi-opaque box, fast-start MP4 output.
"""
from __future__ import annotations

import logging
import os
import subprocess

from PIL import Image, ImageDraw, ImageFont

from mediamarket.core.errors import InternalServerError
from mediamarket.fulfillment.config import (
    get_ffmpeg_binary,
    get_image_font_path,
    get_image_watermark_bounds,
    get_transform_timeout,
    get_video_font_path,
    get_video_watermark_scale,
)
from mediamarket.models.enums import ProductFormat

logger = logging.getLogger(__name__)

STROKE_WIDTH = 2

# Pillow save() format names
_PIL_FORMATS = {
    ProductFormat.JPG: "JPEG",
    ProductFormat.PNG: "PNG",
    ProductFormat.TIFF: "TIFF",
}

_FONT_FALLBACKS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
)


def clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def label_size(width: int, height: int, scale: float, min_px: int, max_px: int) -> int:
    """Label size: scale * shorter side, clamped to [min_px, max_px]."""
    return clamp(int(min(width, height) * scale + 0.5), min_px, max_px)


def _get_font(size: int, font_path: str | None = None) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Configured font first, then system fonts, then Pillow default."""
    candidates = [font_path] if font_path else []
    candidates.extend(_FONT_FALLBACKS)
    for path in candidates:
        if path and os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


def apply_image_watermark(
    image_path: str,
    output_path: str,
    text: str,
    output_format: ProductFormat,
) -> str:
    """
    Накладывает текст по центру изображения и сохраняет в output_format.

    Args:
        image_path: master image
        output_path: destination (already reserved temp file)
        text: watermark text
        output_format: jpg / png / tiff

    Returns:
        output_path
    """
    pil_format = _PIL_FORMATS.get(output_format)
    if pil_format is None:
        raise ValueError(f"not an image format: {output_format}")
    try:
        with Image.open(image_path) as src:
            has_alpha = src.mode in ("RGBA", "LA") or "transparency" in src.info
            img = src.convert("RGBA")
        width, height = img.size

        scale, min_px, max_px = get_image_watermark_bounds()
        size = label_size(width, height, scale, min_px, max_px)
        font = _get_font(size, get_image_font_path())

        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        bbox = draw.textbbox((0, 0), text, font=font, stroke_width=STROKE_WIDTH)
        text_width = bbox[2] - bbox[0]
        text_height = bbox[3] - bbox[1]
        x = (width - text_width) / 2 - bbox[0]
        y = (height - text_height) / 2 - bbox[1]
        draw.text(
            (x, y),
            text,
            font=font,
            fill=(255, 255, 255, 255),
            stroke_width=STROKE_WIDTH,
            stroke_fill=(0, 0, 0, 255),
        )

        result = Image.alpha_composite(img, layer)
        if pil_format == "JPEG" or not has_alpha:
            result = result.convert("RGB")
        save_kwargs = {"quality": 95} if pil_format == "JPEG" else {}
        result.save(output_path, pil_format, **save_kwargs)

        logger.info(
            "watermark_applied",
            extra={"input": image_path, "output": output_path, "format": output_format.value},
        )
        return output_path
    except Exception:
        logger.exception("watermark_failed", extra={"input": image_path})
        raise


def _escape_option_value(value: str) -> str:
    for ch in ("\\", "'", ":"):
        value = value.replace(ch, "\\" + ch)
    return value


def _escape_filtergraph(value: str) -> str:
    for ch in ("\\", "'", "[", "]", ",", ";"):
        value = value.replace(ch, "\\" + ch)
    return value


def escape_drawtext(value: str) -> str:
    """
    Escape a drawtext option value for use inside -vf. ffmpeg unescapes twice:
    once when parsing the filtergraph, once when splitting filter options.
    """
    return _escape_filtergraph(_escape_option_value(value.strip()))


def build_video_command(input_path: str, output_path: str, text: str) -> list[str]:
    scale = get_video_watermark_scale()
    drawtext = ":".join([
        f"fontfile={escape_drawtext(get_video_font_path())}",
        f"text={escape_drawtext(text)}",
        "expansion=none",
        f"fontsize=h*{scale}",
        "fontcolor=white",
        "box=1",
        "boxcolor=black@0.5",
        "boxborderw=10",
        "x=(w-text_w)/2",
        "y=(h-text_h)/2",
    ])
    return [
        get_ffmpeg_binary(),
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        "-i", input_path,
        "-vf", f"drawtext={drawtext}",
        "-c:a", "aac",
        "-movflags", "+faststart",
        "-f", "mp4",
        output_path,
    ]


def apply_video_watermark(input_path: str, output_path: str, text: str) -> str:
    """Run ffmpeg with a bounded timeout; any failure is an InternalServerError."""
    cmd = build_video_command(input_path, output_path, text)
    timeout = get_transform_timeout()
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        logger.error("video_watermark_timeout", extra={"input": input_path, "timeout": timeout})
        raise InternalServerError("Video processing timed out.") from e
    except OSError as e:
        logger.exception("video_watermark_spawn_failed", extra={"input": input_path})
        raise InternalServerError("Video processing tool is unavailable.") from e

    if result.returncode != 0:
        logger.error(
            "video_watermark_failed",
            extra={
                "input": input_path,
                "returncode": result.returncode,
                "error": (result.stderr or "")[-2000:],
            },
        )
        raise InternalServerError("Video processing failed.")

    logger.info("watermark_applied", extra={"input": input_path, "output": output_path, "format": "mp4"})
    return output_path
