"""Define a fixed-size pose history that suppresses outliers using an approximate median."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from marker_bundles.spatial import Pose3D

DEFAULT_HISTORY_SIZE = 10


def approximate_geometric_median(poses: Sequence[Pose3D]) -> Pose3D:
    """Select the pose with the least total squared distance to all given poses.

    Distances are unweighted over the 7-vector [tx, ty, tz, qw, qx, qy, qz], so the result is
        always one of the inputs (never an interpolation). Ties resolve to the earliest pose.

    :param poses: Non-empty collection of poses
    :return: The pose minimizing its summed squared distances to the others
    """
    if not poses:
        raise ValueError("Cannot compute the median of zero poses.")

    vectors = np.vstack([pose.to_vector() for pose in poses])  # (N, 7)
    differences = vectors[:, np.newaxis, :] - vectors[np.newaxis, :, :]  # (N, N, 7)
    total_distances = (differences**2).sum(axis=(1, 2))  # (N,)
    return poses[int(np.argmin(total_distances))]


class PoseHistory:
    """A circular buffer of recent poses producing a robust, smoothed pose."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        """Initialize an empty history holding up to `capacity` poses."""
        if capacity < 1:
            raise ValueError(f"Pose history capacity must be positive, got {capacity}.")

        self.capacity = capacity
        self._poses: list[Pose3D | None] = [None] * capacity
        self._cursor = 0
        self.initialized = False
        """Whether the buffer has been filled once (before then, poses pass through unchanged)."""

    @property
    def cursor(self) -> int:
        """Retrieve the index at which the next pose will be written."""
        return self._cursor

    @property
    def poses(self) -> list[Pose3D]:
        """Retrieve the currently buffered poses in storage order."""
        return [pose for pose in self._poses if pose is not None]

    def update(self, pose: Pose3D) -> Pose3D:
        """Record a new pose and return the smoothed pose.

        Until the buffer first wraps, the new pose is returned unchanged.

        :param pose: Newest (unsmoothed) pose estimate
        :return: Smoothed pose estimate
        """
        self._poses[self._cursor] = pose

        if not self.initialized:
            if self._cursor == self.capacity - 1:
                self.initialized = True
            result = pose
        else:
            result = approximate_geometric_median(self.poses)

        self._cursor = (self._cursor + 1) % self.capacity
        return result
