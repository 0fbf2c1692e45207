"""
Configuration management using pydantic-settings.

Loads tunable thresholds from environment variables and .env file.
Layout reference data is not configured here: see ``core.layout``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ─────────────────────────────────────────────────────────────
# NESTED SETTINGS
# ─────────────────────────────────────────────────────────────


class ScaleSettings(BaseSettings):
    """Scale detection thresholds."""

    model_config = SettingsConfigDict(env_prefix="SCALE_")

    min_confidence: float = Field(
        default=0.4, ge=0.0, le=1.0,
        description="Sub-estimates at or below this confidence are discarded",
    )
    confidence_cap: float = Field(default=0.95, gt=0.0, lt=1.0)
    fallback_scale: float = Field(default=1.0, gt=0.0)
    fallback_confidence: float = Field(default=0.3, ge=0.0, le=1.0)

    exact_match_confidence: float = 0.8
    approx_match_confidence: float = 0.6
    aspect_tolerance: float = 0.1

    peak_threshold: float = Field(
        default=0.7, gt=0.0, le=1.0,
        description="Peaks must reach this fraction of the strip maximum",
    )
    peak_window: int = Field(default=5, ge=1)
    strip_width: int = Field(default=5, ge=1)
    min_spacing_px: float = 15.0
    max_spacing_px: float = 150.0
    spacing_confidence_cap: float = 0.8
    sample_columns: list[float] = Field(
        default=[0.5, 0.3, 0.7],
        description="Sample strip positions as fractions of the image width",
    )


class CenterSettings(BaseSettings):
    """Grid center detection."""

    model_config = SettingsConfigDict(env_prefix="CENTER_")

    reference_aspect: float = Field(default=16 / 9, gt=0.0)
    aspect_tolerance: float = Field(
        default=0.1, ge=0.0,
        description="Aspects this close to the reference use the plain image center",
    )
    content_luminance: float = Field(default=20.0, description="Luminance above which a pixel is content")
    content_fraction: float = Field(
        default=0.01, gt=0.0, lt=1.0,
        description="A row/column is content when this share of its pixels is",
    )
    default_confidence: float = Field(default=0.4, ge=0.0, le=1.0)
    letterbox_confidence: float = Field(default=0.6, ge=0.0, le=1.0)


class ZoneSettings(BaseSettings):
    """Zone boundary scan and local evidence thresholds."""

    model_config = SettingsConfigDict(env_prefix="ZONE_")

    empty_brightness_threshold: float = 20.0
    empty_row_fraction: float = Field(default=0.05, gt=0.0, lt=1.0)
    scan_margin_px: float = 20.0
    low_confidence_warning: float = 0.3
    outline_threshold: float = Field(
        default=0.3, description="Hex-outline score needed to keep an unknown slot"
    )
    content_weight: float = Field(default=0.6, ge=0.0, le=1.0)


class RecognitionSettings(BaseSettings):
    """Region analysis and batch execution."""

    model_config = SettingsConfigDict(env_prefix="RECOGNITION_")

    region_size: int = Field(default=48, ge=8)
    max_workers: int = Field(default=4, ge=1)
    analyzer_timeout_s: float = Field(default=2.0, gt=0.0)
    batch_timeout_s: float = Field(default=30.0, gt=0.0)
    review_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # Zone-specific adjustments
    core_confidence_boost: float = Field(
        default=0.15, ge=0.0, le=1.0,
        description="Added to core confidence in proportion to the icon color match",
    )
    core_color_tolerance: float = Field(default=100.0, gt=0.0)
    grid_alignment_weight: float = Field(
        default=0.3, ge=0.0, le=1.0,
        description="Share of regular confidence that depends on how much of the slot is visible",
    )
    neighbor_consistency_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    neighbor_consistency_bonus: float = Field(default=0.1, ge=0.0, le=1.0)
    min_neighbors: int = Field(default=2, ge=1)


class CalibrationSettings(BaseSettings):
    """Correction log and recalibration."""

    model_config = SettingsConfigDict(env_prefix="CALIBRATION_")

    store_path: str = "outputs/calibration/corrections.json"
    weights_path: str = "outputs/calibration/weights.json"
    min_records: int = Field(default=10, ge=1)
    weight_floor: float = Field(default=0.05, gt=0.0)
    recalibrate_every: int = Field(
        default=25, ge=1, description="Pipeline recalibrates after this many new corrections"
    )
    retention_days: float = 90.0


# ─────────────────────────────────────────────────────────────
# MAIN SETTINGS
# ─────────────────────────────────────────────────────────────


class Settings(BaseSettings):
    """
    Main application settings.

    Loads from .env file and environment variables.
    Environment variables take precedence over .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    scale: ScaleSettings = Field(default_factory=ScaleSettings)
    center: CenterSettings = Field(default_factory=CenterSettings)
    zone: ZoneSettings = Field(default_factory=ZoneSettings)
    recognition: RecognitionSettings = Field(default_factory=RecognitionSettings)
    calibration: CalibrationSettings = Field(default_factory=CalibrationSettings)


# ─────────────────────────────────────────────────────────────
# SINGLETON ACCESS
# ─────────────────────────────────────────────────────────────

_settings: Settings | None = None


def get_settings() -> Settings:
    """Get application settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (for testing)."""
    global _settings
    _settings = None
