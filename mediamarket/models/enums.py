from enum import Enum


class ProductType(str, Enum):
    """Media categories of the catalog."""

    MANUSCRIPT = "manuscript"
    HISTORICAL_CARTOGRAPHY = "historical_cartography"
    PHOTOGRAPH = "photograph"
    PAINTING = "painting"
    MAP = "map"
    DOCUMENT = "document"
    NEWSPAPER = "newspaper"
    BOOK = "book"
    HISTORICAL_VIDEO = "historical_video"


class ProductFormat(str, Enum):
    JPG = "jpg"
    PNG = "png"
    TIFF = "tiff"
    MP4 = "mp4"

    @property
    def is_image(self) -> bool:
        return self in IMAGE_FORMATS

    @property
    def is_video(self) -> bool:
        return self is ProductFormat.MP4

    @property
    def content_type(self) -> str:
        return CONTENT_TYPES.get(self, "application/octet-stream")


IMAGE_FORMATS = frozenset({ProductFormat.JPG, ProductFormat.PNG, ProductFormat.TIFF})

CONTENT_TYPES = {
    ProductFormat.JPG: "image/jpeg",
    ProductFormat.PNG: "image/png",
    ProductFormat.TIFF: "image/tiff",
    ProductFormat.MP4: "video/mp4",
}


class PurchaseType(str, Enum):
    STANDARD = "standard"
    GIFT = "gift"
    ADDITIONAL_DOWNLOAD = "additional_download"


class LedgerOperation(str, Enum):
    PURCHASE = "PURCHASE"
    TOP_UP = "TOP_UP"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values (not member names) in VARCHAR columns."""
    return [m.value for m in enum_cls]
