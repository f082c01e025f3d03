"""Tests for the energy functional."""

import math

import numpy as np
import pytest
from pydantic import ValidationError

from py_mosaic.core.energy import (
    EnergyParams, calculate_energy, region_centroid, resolve_target_areas, sharp_angle_penalty
)
from py_mosaic.core.toroidal_voronoi import generate_voronoi_regions_toroidal, region_areas

W, H = 10.0, 8.0


def _square(x, y, size):
    return [[x, y], [x + size, y], [x + size, y + size], [x, y + size]]


@pytest.fixture
def lattice():
    """Four 2x2 squares tiling a 4x4 domain, each centred on its generator."""
    points = [[1, 1], [3, 1], [1, 3], [3, 3]]
    regions = [[_square(0, 0, 2)], [_square(2, 0, 2)], [_square(0, 2, 2)], [_square(2, 2, 2)]]
    return points, regions


class TestEnergyParams:
    """Test parameter validation."""

    def test_defaults(self):
        params = EnergyParams(width=W, height=H)
        assert params.lambda_area == 2.5
        assert params.lambda_centroid == 0.0
        assert params.lambda_angle == 0.01
        assert params.learning_rate == 0.02
        assert params.total_area == pytest.approx(80.0)

    def test_rejects_negative_weights(self):
        with pytest.raises(ValidationError):
            EnergyParams(width=W, height=H, lambda_area=-1)
        with pytest.raises(ValidationError):
            EnergyParams(width=W, height=H, min_area_threshold=-0.5)

    def test_rejects_bad_domain(self):
        with pytest.raises(ValidationError):
            EnergyParams(width=0, height=H)

    def test_rejects_non_finite_weights(self):
        with pytest.raises(ValidationError):
            EnergyParams(width=W, height=H, point_weights=[1.0, float("nan")])

    def test_frozen(self):
        params = EnergyParams(width=W, height=H)
        with pytest.raises(ValidationError):
            params.lambda_area = 1.0


class TestTargetAreas:
    """Test target area resolution and precedence."""

    def test_uniform(self, five_points):
        targets = resolve_target_areas(five_points, EnergyParams(width=W, height=H))
        np.testing.assert_allclose(targets, [16.0] * 5)

    def test_point_weights(self, five_points):
        params = EnergyParams(width=W, height=H, point_weights=[3, 1, 1, 1, 2])
        targets = resolve_target_areas(five_points, params)
        np.testing.assert_allclose(targets, [30.0, 10.0, 10.0, 10.0, 20.0])
        assert targets.sum() == pytest.approx(80.0)

    def test_non_positive_weights_fall_back_to_uniform(self, five_points):
        params = EnergyParams(width=W, height=H, point_weights=[1, 1, 0, 1, 1])
        np.testing.assert_allclose(resolve_target_areas(five_points, params), [16.0] * 5)

    def test_wrong_length_weights_fall_back_to_uniform(self, five_points):
        params = EnergyParams(width=W, height=H, point_weights=[1, 2])
        np.testing.assert_allclose(resolve_target_areas(five_points, params), [16.0] * 5)

    def test_function_takes_precedence(self, five_points):
        params = EnergyParams(width=W, height=H, point_weights=[3, 1, 1, 1, 2],
                              target_area_func=lambda p: p[0])
        targets = resolve_target_areas(five_points, params)
        np.testing.assert_allclose(targets, [5, 1, 9, 1, 9])

    def test_non_positive_targets_clamped(self, five_points):
        params = EnergyParams(width=W, height=H, target_area_func=lambda p: -5.0)
        targets = resolve_target_areas(five_points, params)
        assert np.all(targets > 0)
        np.testing.assert_allclose(targets, [1e-9] * 5)


class TestEnergyTerms:
    """Test the individual penalty terms."""

    def test_sharp_angle_penalty(self):
        # Thin triangle with a corner of about 5.7 degrees
        thin = [[0, 0], [10, 0], [10, 1]]
        assert sharp_angle_penalty([thin]) > 0
        assert sharp_angle_penalty([_square(0, 0, 1)]) == 0.0

    def test_region_centroid_weights_pieces_by_area(self):
        centroid = region_centroid([_square(0, 0, 2), _square(8, 0, 1)])
        assert centroid == pytest.approx([(1 * 4 + 8.5 * 1) / 5, (1 * 4 + 0.5 * 1) / 5])

    def test_region_centroid_degenerate(self):
        assert region_centroid([]) is None
        assert region_centroid([[[0, 0], [1, 1], [2, 2]]]) is None


class TestCalculateEnergy:
    """Test the total energy."""

    def test_zero_at_optimum(self, lattice):
        points, regions = lattice
        params = EnergyParams(width=4, height=4, lambda_area=1.0, lambda_centroid=1.0,
                              lambda_angle=1.0)
        result = calculate_energy(regions, points, params)
        assert result.total_energy == pytest.approx(0.0, abs=1e-12)
        assert result.is_finite

    def test_area_term(self, lattice):
        points, regions = lattice
        params = EnergyParams(width=4, height=4, lambda_area=2.0, lambda_angle=0.0,
                              point_weights=[2, 1, 1, 0.5])
        result = calculate_energy(regions, points, params)
        targets = 16 * np.array([2, 1, 1, 0.5]) / 4.5
        expected = 2.0 * float(np.sum((4.0 - targets) ** 2))
        assert result.components.area == pytest.approx(expected)
        assert result.total_energy == pytest.approx(expected)

    def test_centroid_term_uses_toroidal_distance(self, lattice):
        points, regions = lattice
        # Generator 0 sits across the wrap from its region centroid (1, 1)
        moved = [[3.5, 1]] + points[1:]
        params = EnergyParams(width=4, height=4, lambda_area=0.0, lambda_centroid=1.0,
                              lambda_angle=0.0)
        result = calculate_energy(regions, moved, params)
        assert result.components.centroid == pytest.approx(1.5 ** 2)

    def test_min_area_term(self, lattice):
        points, regions = lattice
        params = EnergyParams(width=4, height=4, lambda_area=0.0, lambda_angle=0.0,
                              lambda_min_area=1.0, min_area_threshold=5.0)
        result = calculate_energy(regions, points, params)
        assert result.components.min_area == pytest.approx(4 * (5.0 - 4.0) ** 2)

    def test_explicit_target_areas_override(self, lattice):
        points, regions = lattice
        params = EnergyParams(width=4, height=4, lambda_area=1.0, lambda_angle=0.0)
        result = calculate_energy(regions, points, params, target_areas=[5, 5, 3, 3])
        assert result.total_energy == pytest.approx(4.0)

    def test_non_negative_on_generated_regions(self, five_points):
        params = EnergyParams(width=W, height=H, lambda_area=1.0, lambda_centroid=0.1,
                              lambda_angle=0.01)
        regions = generate_voronoi_regions_toroidal(five_points, W, H)
        result = calculate_energy(regions, five_points, params)
        assert result.is_finite
        assert result.total_energy >= 0
        assert result.components.area >= 0
        assert result.components.centroid >= 0
        assert result.components.angle >= 0

    def test_area_term_matches_region_areas(self, five_points):
        params = EnergyParams(width=W, height=H, lambda_area=1.0, lambda_angle=0.0)
        regions = generate_voronoi_regions_toroidal(five_points, W, H)
        result = calculate_energy(regions, five_points, params)
        expected = float(np.sum((region_areas(regions) - 16.0) ** 2))
        assert result.components.area == pytest.approx(expected)

    def test_target_function_scales_energy(self, five_points):
        regions = generate_voronoi_regions_toroidal(five_points, W, H)
        base = calculate_energy(regions, five_points,
                                EnergyParams(width=W, height=H, lambda_area=1.0, lambda_angle=0.0))
        tiny = calculate_energy(regions, five_points,
                                EnergyParams(width=W, height=H, lambda_area=1.0, lambda_angle=0.0,
                                             target_area_func=lambda p: 1e-3))
        assert tiny.total_energy > base.total_energy

    def test_missing_regions_are_infinite(self, five_points):
        params = EnergyParams(width=W, height=H)
        assert calculate_energy(None, five_points, params).total_energy == math.inf
        assert calculate_energy([[]], five_points, params).total_energy == math.inf
        assert not calculate_energy(None, five_points, params).is_finite

    def test_empty_regions_skipped(self, lattice):
        points, regions = lattice
        params = EnergyParams(width=4, height=4, lambda_area=1.0, lambda_angle=0.0)
        with_gap = [regions[0], [], None, regions[3]]
        result = calculate_energy(with_gap, points, params)
        assert result.total_energy == pytest.approx(0.0)

    def test_components_as_dict(self, lattice):
        points, regions = lattice
        result = calculate_energy(regions, points, EnergyParams(width=4, height=4))
        assert set(result.components.as_dict()) == {"area", "centroid", "angle", "min_area"}
        assert result.components.total() == pytest.approx(result.total_energy)
