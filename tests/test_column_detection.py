"""Tests for column boundary detection."""

import numpy as np
import pytest

from scoresheet_ocr.column_detection import ColumnBoundaryDetector
from scoresheet_ocr.geometry import Region


@pytest.fixture
def detector():
    return ColumnBoundaryDetector()


def dipped_profile(length, centers, depth=50.0, half=5):
    """Flat profile with a V shaped dip at every center."""
    s = np.full(length, 100.0)
    for c in centers:
        for k in range(-half + 1, half):
            s[c + k] = 100.0 - depth * (half - abs(k)) / half
    return s


class TestDetectors:
    def test_valleys(self, detector) -> None:
        s = dipped_profile(200, [50, 150])
        assert detector.find_valleys(s) == [50, 150]

    def test_gradient_crossings(self, detector) -> None:
        s = dipped_profile(200, [50, 150])
        assert detector.find_gradient_crossings(s) == [50, 150]

    def test_local_minima(self, detector) -> None:
        s = dipped_profile(200, [50, 150])
        assert detector.find_local_minima(s) == [50, 150]

    def test_shallow_dip_is_not_a_minimum(self, detector) -> None:
        # strictly lowest, but not below 80% of the average
        s = dipped_profile(200, [100], depth=5.0)
        assert detector.find_local_minima(s) == []

    def test_flat_profile_has_no_boundaries(self, detector) -> None:
        s = np.full(120, 42.0)
        assert detector.find_valleys(s) == []
        assert detector.find_gradient_crossings(s) == []
        assert detector.find_local_minima(s) == []

    def test_short_profiles(self, detector) -> None:
        s = np.array([3.0, 1.0])
        assert detector.find_valleys(s) == []
        assert detector.find_gradient_crossings(s) == []
        assert detector.find_local_minima(s) == []


class TestMerge:
    def test_close_boundaries_collapse_to_first(self, detector) -> None:
        assert detector.merge({1, 2, 50, 52, 198}, 200) == [0, 50, 200]

    def test_edges_always_present(self, detector) -> None:
        assert detector.merge(set(), 80) == [0, 80]

    def test_out_of_range_ignored(self, detector) -> None:
        assert detector.merge({-4, 0, 40, 80, 95}, 80) == [0, 40, 80]

    def test_tiny_region(self, detector) -> None:
        assert detector.merge(set(), 1) == [0, 1]

    def test_union_of_detectors(self, detector) -> None:
        s = dipped_profile(200, [50, 150])
        assert detector.boundaries_from_profile(s) == [0, 50, 150, 200]


class TestDetect:
    def test_ruled_table(self, detector, scoresheet) -> None:
        region = Region(53, 59, 615, 402)
        boundaries = detector.detect(scoresheet, region, 6)
        # separators at 60, 160, ..., 660 plus both table edges
        assert boundaries[0] == 53
        assert boundaries[-1] == 668
        inner = boundaries[1:-1]
        assert len(inner) == 7
        for found, expected in zip(inner, range(60, 661, 100)):
            assert abs(found - expected) <= 1

    def test_absolute_coordinates(self, detector) -> None:
        img = np.full((50, 300), 255, np.uint8)
        region = Region(100, 0, 150, 50)
        boundaries = detector.detect(img, region)
        assert boundaries == [100, 250]

    @pytest.mark.parametrize("seed", range(6))
    def test_strictly_increasing_inside_region(self, detector, seed) -> None:
        rng = np.random.RandomState(seed)
        h, w = rng.randint(20, 300, size=2)
        img = rng.randint(0, 256, size=(h, w)).astype(np.uint8)
        region = Region(0, 0, int(w), int(h))
        boundaries = detector.detect(img, region)
        assert boundaries[0] == 0
        assert boundaries[-1] == w
        assert all(b > a for a, b in zip(boundaries[:-1], boundaries[1:]))

    def test_blank_and_dark_images(self, detector, white_image, black_image) -> None:
        for img in (white_image, black_image):
            assert detector.detect(img, Region.whole(img)) == [0, 300]
