"""Shared fixtures: synthetic screenshots and region buffers."""

import numpy as np
import pytest

from modscan.core.config import reset_settings
from modscan.core.image import RasterImage
from modscan.core.types import RegionBuffer


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch, tmp_path):
    """Isolate every test from .env files and persisted calibration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CALIBRATION_STORE_PATH", str(tmp_path / "cal" / "corrections.json"))
    monkeypatch.setenv("CALIBRATION_WEIGHTS_PATH", str(tmp_path / "cal" / "weights.json"))
    reset_settings()
    yield
    reset_settings()


def solid_region(color, size: int = 48) -> RegionBuffer:
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:, :, :3] = color
    pixels[:, :, 3] = 255
    return RegionBuffer(pixels=pixels)


def striped_region(size: int = 48) -> RegionBuffer:
    """Alternating black and white columns."""
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:, ::2, :3] = 255
    pixels[:, :, 3] = 255
    return RegionBuffer(pixels=pixels)


@pytest.fixture
def black_1080p() -> RasterImage:
    return RasterImage.blank(1920, 1080)


@pytest.fixture
def bright_1080p() -> RasterImage:
    return RasterImage.blank(1920, 1080, (200, 200, 200))


@pytest.fixture
def line_grid_image() -> RasterImage:
    """1000x1000 black image with 1px white rows every 84px."""
    arr = np.zeros((1000, 1000, 3), dtype=np.uint8)
    arr[::84, :, :] = 255
    return RasterImage.from_array(arr)
