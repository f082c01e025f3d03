"""Tests for tessellation sanity checks."""

import pytest

from py_mosaic.core.validation import validate_tessellation


def _rect(x0, y0, x1, y1):
    return [[x0, y0], [x1, y0], [x1, y1], [x0, y1]]


class TestValidateTessellation:
    """Test gap, overlap and bounds detection on hand-built regions."""

    def test_exact_partition_is_valid(self):
        regions = [[_rect(0, 0, 2, 4)], [_rect(2, 0, 4, 4)]]
        report = validate_tessellation(regions, 4, 4, grid_size=8)
        assert report.valid
        assert report.total_area == pytest.approx(16.0)
        assert report.area_error == pytest.approx(0.0)

    def test_split_region_counts_once(self):
        regions = [[_rect(0, 0, 1, 4), _rect(3, 0, 4, 4)], [_rect(1, 0, 3, 4)]]
        assert validate_tessellation(regions, 4, 4, grid_size=8).valid

    def test_detects_gap(self):
        regions = [[_rect(0, 0, 2, 4)], [_rect(3, 0, 4, 4)]]
        report = validate_tessellation(regions, 4, 4, grid_size=8)
        assert not report.valid
        assert report.overlaps == []
        assert all(x == 2.5 for x, _ in report.gaps)
        assert report.area_error > 0

    def test_detects_overlap(self):
        regions = [[_rect(0, 0, 3, 4)], [_rect(1, 0, 4, 4)]]
        report = validate_tessellation(regions, 4, 4, grid_size=8)
        assert report.overlaps
        assert all(count == 2 for _, count in report.overlaps)

    def test_detects_vertex_outside(self):
        regions = [[_rect(0, 0, 2, 4)], [_rect(2, 0, 4.5, 4)]]
        report = validate_tessellation(regions, 4, 4, grid_size=8)
        assert report.outside_bounds
        assert all(index == 1 for index, _ in report.outside_bounds)

    def test_no_regions(self):
        report = validate_tessellation(None, 4, 4)
        assert not report.valid
        assert report.gaps == [(0.0, 0.0)]

    def test_empty_region_ignored(self):
        regions = [[_rect(0, 0, 4, 4)], []]
        assert validate_tessellation(regions, 4, 4, grid_size=4).valid

    def test_snapped_edge_within_tolerance(self):
        """Edge vertices snapped just inside the domain still cover its boundary."""
        width = 4.00000004
        regions = [[_rect(0, 0, 2, 4)], [_rect(2, 0, 4.0, 4)]]
        assert validate_tessellation(regions, width, 4, grid_size=8).valid

        strict = validate_tessellation(regions, width, 4, grid_size=8, tolerance=0.0)
        assert strict.gaps
        assert all(x == pytest.approx(width) for x, _ in strict.gaps)
