"""Unit tests for RANSAC plane estimation."""

import numpy as np
import pytest

from marker_bundles.estimate import FusionFailure
from marker_bundles.reconstruction import PlaneEstimate


def points_on_plane(num_points: int, seed: int = 0) -> np.ndarray:
    """Sample random points on the plane z = 0.5 + 0.1x - 0.2y."""
    rng = np.random.default_rng(seed)
    xy = rng.uniform(-0.05, 0.05, size=(num_points, 2))
    z = 0.5 + 0.1 * xy[:, 0] - 0.2 * xy[:, 1]
    return np.column_stack([xy, z])


def test_plane_fit_centroid_is_mean_of_coplanar_points() -> None:
    """Verify that points exactly on a plane are all inliers and give their mean as centroid."""
    # Arrange - Sample coplanar points
    points = points_on_plane(200)

    # Act - Fit a plane with RANSAC
    estimate = PlaneEstimate.fit_plane_ransac(points, inlier_threshold=0.005)

    # Assert - Expect every point to be an inlier and the normal to match the true plane
    assert estimate.success
    plane_fit = estimate.output
    assert len(plane_fit.inlier_indices) == len(points)
    assert np.allclose(plane_fit.centroid, points.mean(axis=0))

    true_normal = np.array([-0.1, 0.2, 1.0]) / np.linalg.norm([-0.1, 0.2, 1.0])
    assert abs(np.dot(plane_fit.normal, true_normal)) == pytest.approx(1.0, abs=1e-6)


def test_plane_fit_excludes_outliers() -> None:
    """Verify that points far from the dominant plane are excluded from the inliers."""
    # Arrange - Coplanar points plus a few points 5 cm off the plane
    points = points_on_plane(100)
    outliers = points[:5] + np.array([0.0, 0.0, 0.05])
    all_points = np.vstack([points, outliers])

    # Act - Fit a plane with RANSAC
    estimate = PlaneEstimate.fit_plane_ransac(all_points, inlier_threshold=0.005)

    # Assert - Expect the centroid to ignore the outliers
    assert estimate.success
    assert len(estimate.output.inlier_indices) == len(points)
    assert np.allclose(estimate.output.centroid, points.mean(axis=0), atol=1e-9)


def test_plane_fit_requires_three_finite_points() -> None:
    """Verify that fewer than three usable points give an INSUFFICIENT_POINTS failure."""
    # Arrange - Two finite points and one NaN point
    points = np.array([[0.0, 0.0, 1.0], [0.1, 0.0, 1.0], [np.nan, 0.0, 1.0]])

    # Act - Attempt to fit a plane
    success, message, output = PlaneEstimate.fit_plane_ransac(points)

    # Assert - Expect the fit to fail without output
    assert not success
    assert output is None
    assert "3 points" in message
    assert PlaneEstimate.fit_plane_ransac(points).failure is FusionFailure.INSUFFICIENT_POINTS
