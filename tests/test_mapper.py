import cv2
import numpy as np
import pytest

from modscan.core.errors import MappingError
from modscan.core.image import RasterImage
from modscan.core.layout import LayoutDescriptor
from modscan.core.types import AxialCoord, GridCenter, Rectangle, ResolutionEstimate, Zone
from modscan.grid.mapper import CoordinateMapper, compute_bounding_box
from modscan.grid.zone_detector import detect_zone_boundary


LAYOUT = LayoutDescriptor(
    regular_entities={
        "alpha": AxialCoord(0, 0),
        "beta": LayoutDescriptor.axial_of(1, 2),
    }
)
UNIT_SCALE = ResolutionEstimate(scale_factor=1.0, confidence=0.8, matched_resolution=(1920, 1080), exact=True)
CENTER = GridCenter(960.0, 540.0)


def _gapped_image(gap_rows: tuple[int, int]) -> RasterImage:
    arr = np.full((1080, 1920, 3), 100, dtype=np.uint8)
    arr[gap_rows[0]:gap_rows[1]] = 0
    return RasterImage.from_array(arr)


def test_black_image_positions(black_1080p):
    result = CoordinateMapper(LAYOUT).map(black_1080p, UNIT_SCALE, CENTER)
    cmap = result.coordinate_map

    assert set(cmap) == {"body", "shield", "weapon", "alpha", "beta"}
    assert (cmap["body"].center.x, cmap["body"].center.y) == (900.0, 500.0)
    assert (cmap["shield"].center.x, cmap["shield"].center.y) == (1020.0, 500.0)
    assert (cmap["weapon"].center.x, cmap["weapon"].center.y) == (960.0, 560.0)
    assert cmap["body"].axial is None
    assert cmap["body"].bounds == Rectangle(876.0, 476.0, 924.0, 524.0)

    alpha = cmap["alpha"]
    assert alpha.zone == Zone.REGULAR
    assert alpha.axial == AxialCoord(0, 0)
    assert alpha.center.x == pytest.approx(906.0)
    assert alpha.center.y == pytest.approx(684.0)

    beta = cmap["beta"]
    assert beta.center.x == pytest.approx(996.0)
    assert beta.center.y == pytest.approx(726.0)

    assert result.bounding_box == Rectangle(876.0, 476.0, 1044.0, 750.0)


def test_black_image_gap_is_out_of_range(black_1080p):
    boundary = detect_zone_boundary(black_1080p, CENTER, 1.0, LAYOUT)
    assert boundary.gap_size_px == 90
    assert boundary.confidence == 0.0
    assert boundary.boundary_y == pytest.approx(615.0)


def test_typical_gap_gives_full_confidence():
    image = _gapped_image((590, 640))
    result = CoordinateMapper(LAYOUT).map(image, UNIT_SCALE, CENTER)

    boundary = result.zone_boundary
    assert boundary.gap_size_px == 50
    assert boundary.confidence == pytest.approx(1.0)
    assert boundary.boundary_y == pytest.approx(615.0)
    assert boundary.identify_zone(500, CENTER.y - 80) == Zone.CORE
    assert boundary.identify_zone(700, CENTER.y - 80) == Zone.REGULAR
    assert boundary.identify_zone(615, CENTER.y - 80) == Zone.UNKNOWN
    # Without an explicit top the detected core top is used.
    assert boundary.core_zone_top == pytest.approx(460.0)
    assert boundary.identify_zone(500) == Zone.CORE
    assert boundary.identify_zone(400) == Zone.UNKNOWN

    alpha = result.coordinate_map["alpha"]
    assert alpha.center.y == pytest.approx(664.0)
    assert alpha.confidence == pytest.approx(0.6)
    assert result.validate().zone_detection_good


def test_no_gap_drives_regular_confidence_to_zero(bright_1080p):
    result = CoordinateMapper(LAYOUT).map(bright_1080p, UNIT_SCALE, CENTER)

    assert result.zone_boundary.confidence == 0.0
    regular = result.in_zone(Zone.REGULAR)
    assert regular
    assert all(e.confidence == 0.0 for e in regular)
    assert result.coordinate_map["body"].confidence == pytest.approx(0.6)


def test_outlined_slot_is_included():
    arr = np.zeros((1080, 1920, 3), dtype=np.uint8)
    cv2.circle(arr, (942, 684), 16, (255, 255, 255), 1)
    image = RasterImage.from_array(arr)

    result = CoordinateMapper(LayoutDescriptor()).map(image, UNIT_SCALE, CENTER)
    regular = result.in_zone(Zone.REGULAR)
    assert [e.id for e in regular] == ["slot_0_1"]
    assert regular[0].axial == AxialCoord(1, 0)


def test_metrics_and_validation(black_1080p):
    result = CoordinateMapper(LAYOUT).map(black_1080p, UNIT_SCALE, CENTER)
    metrics = result.metrics
    assert metrics.total == 5
    assert metrics.core_count == 3
    assert metrics.regular_count == 2

    validation = result.validate()
    assert validation.has_core and validation.core_complete and validation.has_regular
    assert not validation.zone_detection_good
    assert not validation.is_valid


def test_coordinate_map_is_read_only(black_1080p):
    result = CoordinateMapper(LAYOUT).map(black_1080p, UNIT_SCALE, CENTER)
    with pytest.raises(TypeError):
        result.coordinate_map["extra"] = result.coordinate_map["body"]


def test_no_core_entity_raises():
    image = RasterImage.blank(100, 100)
    with pytest.raises(MappingError):
        CoordinateMapper(LAYOUT).map(image, UNIT_SCALE, GridCenter(-500.0, -500.0))


def test_empty_bounding_box():
    assert compute_bounding_box([]) == Rectangle(0.0, 0.0, 0.0, 0.0)


def test_scale_moves_entities(black_1080p):
    double = ResolutionEstimate(scale_factor=2.0, confidence=0.8, matched_resolution=(3840, 2160), exact=True)
    image = RasterImage.blank(3840, 2160)
    result = CoordinateMapper(LAYOUT).map(image, double, GridCenter(1920.0, 1080.0))
    body = result.coordinate_map["body"]
    assert (body.center.x, body.center.y) == (1800.0, 1000.0)
    assert body.bounds.width == pytest.approx(96.0)


def test_rows_stop_before_the_bottom_edge():
    # Regular top lands at 660, so rows sit at 684, 726, 768...
    layout = LayoutDescriptor(
        regular_entities={f"r{row}": LayoutDescriptor.axial_of(row, 0) for row in range(10)}
    )
    image = RasterImage.blank(1920, 760)
    result = CoordinateMapper(layout).map(image, UNIT_SCALE, CENTER)

    regular = result.in_zone(Zone.REGULAR)
    assert sorted(e.id for e in regular) == ["r0", "r1"]
    radius = layout.grid.hex_radius
    assert all(e.center.y <= image.height - radius for e in regular)


def test_full_outlined_grid_has_unique_axials():
    arr = np.zeros((1080, 1920, 3), dtype=np.uint8)
    for row in range(9):
        for col in range(4):
            x = 906 + 36 * col + (18 if row % 2 else 0)
            cv2.circle(arr, (x, 684 + 42 * row), 16, (255, 255, 255), 1)
    image = RasterImage.from_array(arr)

    result = CoordinateMapper(LayoutDescriptor()).map(image, UNIT_SCALE, CENTER)
    regular = result.in_zone(Zone.REGULAR)
    assert len(regular) == 36
    assert all(e.id.startswith("slot_") for e in regular)
    axials = [e.axial for e in regular]
    assert len(set(axials)) == len(axials)
    assert AxialCoord(0, 0) in axials
    assert LayoutDescriptor.axial_of(8, 3) in axials
