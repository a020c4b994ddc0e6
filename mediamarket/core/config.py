"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: database_url has no default - it MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # ===========================================
    # PRICING (tokens)
    # ===========================================
    gift_surcharge_tokens: float = 0.5
    additional_download_cost_tokens: float = 1.0

    # ===========================================
    # DOWNLOAD LINKS
    # ===========================================
    # 0 = ссылки без срока действия
    download_link_ttl_hours: int = 48

    # ===========================================
    # WATERMARK & TRANSFORMS
    # ===========================================
    watermark_text: str = "DIGITAL PRODUCTS"
    tmp_dir: str = "/usr/src/app/tmp"
    image_font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
    video_font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
    wm_scale: float = 0.08  # доля от меньшей стороны изображения
    wm_min_pt: int = 32
    wm_max_pt: int = 180
    video_wm_scale: float = 0.06  # доля от высоты кадра
    ffmpeg_binary: str = "ffmpeg"
    transform_timeout_seconds: float = 300.0
    bundle_zip_compress_level: int = 9
    tmp_artifact_ttl_hours: int = 24

    # ===========================================
    # LOGGING
    # ===========================================
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("wm_scale", "video_wm_scale", "transform_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Scales and timeouts must be positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("bundle_zip_compress_level")
    @classmethod
    def validate_compress_level(cls, v: int) -> int:
        if not 0 <= v <= 9:
            raise ValueError("bundle_zip_compress_level must be within 0..9")
        return v

    @model_validator(mode="after")
    def validate_watermark_bounds(self) -> "Settings":
        if self.wm_min_pt > self.wm_max_pt:
            raise ValueError("wm_min_pt must not exceed wm_max_pt")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Игнорировать неизвестные поля из .env


settings = Settings()
