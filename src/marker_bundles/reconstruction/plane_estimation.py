"""Define a class to represent and compute plane estimates from 3D points."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from marker_bundles.geometry import Plane3D
from marker_bundles.estimate import Estimate, FusionFailure
from marker_bundles.reconstruction.pointcloud import points_to_o3d

if TYPE_CHECKING:
    from numpy.typing import NDArray

MIN_PLANE_POINTS = 3


@dataclass(frozen=True)
class PlaneEstimate:
    """A plane estimated based on a set of 3D points."""

    points: NDArray[np.float64]
    coefficients: tuple[float, float, float, float]
    """Plane equation coefficients (a, b, c, d) for ax + by + cz + d = 0 with unit (a, b, c)."""

    inlier_indices: list[int]

    @property
    def inliers(self) -> NDArray[np.float64]:
        """Retrieve the inlier points of the plane fit; shape (N_inliers, 3)."""
        return self.points[self.inlier_indices]

    @property
    def centroid(self) -> NDArray[np.float64]:
        """Compute the arithmetic mean of the inlier points."""
        return self.inliers.mean(axis=0)

    @property
    def normal(self) -> NDArray[np.float64]:
        """Retrieve the unit normal vector of the estimated plane."""
        return np.asarray(self.coefficients[:3])

    @property
    def plane(self) -> Plane3D:
        """Retrieve the estimated plane, anchored at the centroid of the inliers."""
        return Plane3D(point=self.centroid, normal=self.normal)

    def get_inlier_text(self) -> str:
        """Retrieve a text description of the plane estimate's inlier points."""
        n_inliers = len(self.inlier_indices)
        total_points = len(self.points)
        inlier_ratio = 100 * n_inliers / total_points
        return f"Inliers: {n_inliers}/{total_points} ({inlier_ratio:.1f}%)"

    @classmethod
    def fit_plane_ransac(
        cls,
        points: NDArray[np.float64],
        inlier_threshold: float = 0.005,
        ransac_n: int = MIN_PLANE_POINTS,
        iterations: int = 1000,
    ) -> Estimate[PlaneEstimate]:
        """Fit a plane to the given 3D points using RANSAC.

        :param points: Candidate points of shape (N, 3); non-finite rows are ignored
        :param inlier_threshold: Maximum distance an inlier point can be from the plane
        :param ransac_n: Number of initial points to sample in each iteration of RANSAC
        :param iterations: Number of RANSAC iterations
        :return: Estimated plane, or an INSUFFICIENT_POINTS failure
        """
        candidates = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        candidates = candidates[np.isfinite(candidates).all(axis=1)]

        if len(candidates) < max(ransac_n, MIN_PLANE_POINTS):  # Cannot fit a plane without N points
            return Estimate.fail(
                FusionFailure.INSUFFICIENT_POINTS,
                f"Plane fit needs {max(ransac_n, MIN_PLANE_POINTS)} points, got {len(candidates)}.",
            )

        # Run RANSAC plane segmentation
        # Reference:
        #   https://www.open3d.org/docs/0.19.0/tutorial/geometry/pointcloud.html#Plane-segmentation
        plane_model, inlier_indices = points_to_o3d(candidates).segment_plane(
            distance_threshold=inlier_threshold,
            ransac_n=ransac_n,
            num_iterations=iterations,
        )
        if len(inlier_indices) < MIN_PLANE_POINTS:  # Don't trust a plane with too few inliers
            return Estimate.fail(
                FusionFailure.INSUFFICIENT_POINTS,
                f"Plane fit found only {len(inlier_indices)} inliers.",
            )

        model_plane = Plane3D.from_coefficients(*(float(value) for value in plane_model))
        a, b, c = (float(value) for value in model_plane.normal)
        coefficients = (a, b, c, -model_plane.d)

        return Estimate.ok(PlaneEstimate(candidates, coefficients, list(inlier_indices)))
