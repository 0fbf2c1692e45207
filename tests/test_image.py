import cv2
import numpy as np
import pytest

from modscan.core.errors import ImageLoadError
from modscan.core.image import RasterImage, load_image


def test_from_array_adds_alpha():
    image = RasterImage.from_array(np.full((4, 6, 3), 50, dtype=np.uint8))
    assert (image.width, image.height) == (6, 4)
    assert image.get_pixel(5, 3) == (50, 50, 50, 255)


def test_gray_array_is_expanded():
    image = RasterImage.from_array(np.full((2, 2), 7, dtype=np.uint8))
    assert image.get_pixel(0, 0) == (7, 7, 7, 255)


def test_crop_is_a_view():
    image = RasterImage.blank(10, 10)
    part = image.crop(2, 3, 6, 5)
    assert (part.width, part.height) == (4, 2)
    part.rgba[0, 0, 0] = 99
    assert image.get_pixel(2, 3)[0] == 99


def test_brightness_and_luminance():
    image = RasterImage.blank(2, 2, (255, 0, 0))
    assert image.brightness()[0, 0] == pytest.approx(85.0)
    assert image.luminance()[0, 0] == pytest.approx(255 * 0.299)


def test_rejects_bad_shapes():
    with pytest.raises(ValueError):
        RasterImage(np.zeros((4, 4, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        RasterImage.from_array(np.zeros((4, 4, 2), dtype=np.uint8))


def test_load_image_converts_to_rgba(tmp_path):
    path = str(tmp_path / "red.png")
    bgr = np.zeros((5, 8, 3), dtype=np.uint8)
    bgr[:, :, 2] = 200
    cv2.imwrite(path, bgr)

    image = load_image(path)
    assert (image.width, image.height) == (8, 5)
    assert image.get_pixel(0, 0) == (200, 0, 0, 255)


def test_load_image_errors(tmp_path):
    with pytest.raises(ImageLoadError):
        load_image(str(tmp_path / "missing.png"))

    junk = tmp_path / "junk.png"
    junk.write_bytes(b"not an image")
    with pytest.raises(ImageLoadError):
        load_image(str(junk))
