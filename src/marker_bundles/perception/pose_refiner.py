"""Define a class to estimate marker poses from depth data by fitting planes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np

from marker_bundles.estimate import Estimate, FusionFailure
from marker_bundles.io.logging import log_debug
from marker_bundles.reconstruction import PlaneEstimate
from marker_bundles.spatial import DEFAULT_FRAME, Point3D, Pose3D, Quaternion

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from marker_bundles.geometry import Plane3D

FORWARD_PAIRS = ((0, 3), (1, 2))
"""Corner index pairs (from, to) defining the marker's x-axis: primary, then alternate."""

UP_PAIRS = ((1, 0), (2, 3))
"""Corner index pairs (from, to) fixing the sign of the marker's y-axis: primary, then alternate."""

MIN_AXIS_LENGTH = 1e-3
"""Minimum length (meters) of a projected corner-pair direction."""

SIDE_PAIRS = ((0, 1), (1, 2), (2, 3), (3, 0))
"""Corner index pairs forming the four sides of a marker."""


def select_corner_pair(
    corners: Sequence[Point3D],
    pairs: Sequence[tuple[int, int]],
) -> tuple[int, int] | None:
    """Select the first corner pair whose points are both defined.

    :param corners: Four corner points, any of which may be missing
    :param pairs: Candidate corner index pairs in order of preference
    :return: First usable pair of indices, or None if no pair is usable
    """
    for i, j in pairs:
        if not corners[i].is_missing and not corners[j].is_missing:
            return (i, j)
    return None


def mean_side_length(corners: Sequence[Point3D]) -> float | None:
    """Compute the mean length of the marker sides whose two corners are both defined.

    :return: Mean side length, or None if no side has two defined corners
    """
    lengths = [
        float(np.linalg.norm(corners[j].to_array() - corners[i].to_array()))
        for i, j in SIDE_PAIRS
        if not corners[i].is_missing and not corners[j].is_missing
    ]
    return float(np.mean(lengths)) if lengths else None


def orientation_from_plane(
    plane: Plane3D,
    forward: NDArray[np.float64],
    up: NDArray[np.float64],
) -> Quaternion | None:
    """Build an orientation whose z-axis is the plane normal and x-axis follows `forward`.

    The x-axis is the forward direction projected onto the plane. The y-axis completes a
        right-handed frame and is flipped (along with z) to agree with the projected `up` direction.

    :return: Unit quaternion of the frame, or None if a projected direction is degenerate
    """
    x_axis = plane.project_vector(forward)
    up_in_plane = plane.project_vector(up)
    if np.linalg.norm(x_axis) < MIN_AXIS_LENGTH or np.linalg.norm(up_in_plane) < MIN_AXIS_LENGTH:
        return None

    x_axis = x_axis / np.linalg.norm(x_axis)
    z_axis = plane.normal
    y_axis = np.cross(z_axis, x_axis)
    if np.dot(y_axis, up_in_plane) < 0:
        y_axis = -y_axis
        z_axis = -z_axis

    rotation = np.column_stack([x_axis, y_axis, z_axis])
    return Quaternion.from_rotation_matrix(rotation)


class PoseRefiner:
    """Estimates the pose of a planar marker from its 3D corners and nearby depth points."""

    def __init__(
        self,
        units_per_meter: float = 100.0,
        inlier_threshold: float = 0.005,
        ransac_iterations: int = 1000,
        marker_size_m: float | None = None,
        size_tolerance: float = 0.25,
    ) -> None:
        """Initialize the refiner.

        :param units_per_meter: Factor converting cloud translations (m) into output length units
        :param inlier_threshold: Maximum distance (m) of a plane inlier from the fitted plane
        :param ransac_iterations: Number of RANSAC iterations used to fit each plane
        :param marker_size_m: Expected marker side length (m); if None, sizes aren't checked
        :param size_tolerance: Maximum relative deviation of the measured side length
        """
        self.units_per_meter = units_per_meter
        self.inlier_threshold = inlier_threshold
        self.ransac_iterations = ransac_iterations
        self.marker_size_m = marker_size_m
        self.size_tolerance = size_tolerance

    def refine(
        self,
        corners: Sequence[Point3D],
        candidate_points: NDArray[np.float64],
        frame: str = DEFAULT_FRAME,
    ) -> Estimate[Pose3D]:
        """Fit a plane to the candidate points and derive a pose from it and the corners.

        :param corners: Four 3D corner points in the cloud frame (entries may be missing)
        :param candidate_points: Cloud points (N, 3) sampled within the marker's footprint
        :param frame: Reference frame of the corners and points
        :return: Pose with translation in output units, or the reason no pose was found
        """
        if len(corners) != 4:
            raise ValueError(f"PoseRefiner expects 4 corners, got {len(corners)}.")

        plane_fit = PlaneEstimate.fit_plane_ransac(
            candidate_points,
            inlier_threshold=self.inlier_threshold,
            iterations=self.ransac_iterations,
        )
        if plane_fit.output is None:
            return Estimate.fail(FusionFailure.INSUFFICIENT_POINTS, plane_fit.message)
        estimate = plane_fit.output

        forward_pair = select_corner_pair(corners, FORWARD_PAIRS)
        up_pair = select_corner_pair(corners, UP_PAIRS)
        if forward_pair is None or up_pair is None:
            return Estimate.fail(
                FusionFailure.DEGENERATE_GEOMETRY,
                "No usable corner pair to orient the marker.",
            )

        if self.marker_size_m is not None:
            side_m = mean_side_length(corners)
            if side_m is not None and abs(side_m - self.marker_size_m) > (
                self.size_tolerance * self.marker_size_m
            ):
                return Estimate.fail(
                    FusionFailure.DEGENERATE_GEOMETRY,
                    f"Corners span {side_m:.4f} m but markers are {self.marker_size_m:.4f} m wide.",
                )

        forward = corners[forward_pair[1]].to_array() - corners[forward_pair[0]].to_array()
        up = corners[up_pair[1]].to_array() - corners[up_pair[0]].to_array()
        orientation = orientation_from_plane(estimate.plane, forward, up)
        if orientation is None:
            return Estimate.fail(
                FusionFailure.DEGENERATE_GEOMETRY,
                "Corner directions collapse when projected onto the fitted plane.",
            )

        position = Point3D.from_array(estimate.centroid * self.units_per_meter)
        log_debug(f"Fit plane {estimate.plane.equation_string}; {estimate.get_inlier_text()}")
        return Estimate.ok(Pose3D(position, orientation, frame))
