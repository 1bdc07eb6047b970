"""Define classes representing per-frame fiducial marker observations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from marker_bundles.io.logging import log_error
from marker_bundles.spatial import Point3D

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from marker_bundles.reconstruction import OrganizedPointcloud

NUM_CORNERS = 4


@dataclass(frozen=True)
class MarkerDetection:
    """A fiducial marker detected in a camera image."""

    id: int
    corners_px: NDArray[np.float64]
    """Pixel coordinates (x, y) of the marker's four ordered inner corners; shape (4, 2)."""

    orientation: int = 0
    """Index (0-3) of the detected corner at which the marker's canonical corner order begins."""

    footprint_px: NDArray[np.float64] | None = None
    """Optional pixels (x, y) sampled across the marker's surface; shape (K, 2)."""

    def __post_init__(self) -> None:
        """Verify the shape of the detected corner data."""
        if np.asarray(self.corners_px).shape != (NUM_CORNERS, 2):
            raise ValueError(f"Marker {self.id} corners must have shape (4, 2).")


class MarkerDetector(Protocol):
    """An interface for a 2D fiducial detector (e.g., ALVAR, AprilTag, ArUco)."""

    def detect(self, image: Any) -> list[MarkerDetection]:
        """Detect all fiducial markers visible in the given image."""
        ...


@dataclass(frozen=True)
class MarkerObservation:
    """A detected marker lifted into 3D using a depth-aligned pointcloud."""

    marker_id: int
    corners: tuple[Point3D, Point3D, Point3D, Point3D]
    """Corners of the marker in the cloud's frame (may contain missing points)."""

    candidate_points: NDArray[np.float64]
    """Finite cloud points sampled within the marker's footprint; shape (M, 3)."""

    @classmethod
    def from_detection(
        cls,
        detection: MarkerDetection,
        cloud: OrganizedPointcloud,
    ) -> MarkerObservation:
        """Look up the 3D corners and surface points of a detected marker.

        :param detection: Marker detected in the image aligned with the pointcloud
        :param cloud: Organized pointcloud of the frame
        :return: Observation of the marker in the cloud's frame
        """
        corners = [
            cloud.at(row=int(round(y)), col=int(round(x))) for x, y in detection.corners_px
        ]

        ori = detection.orientation
        if 0 <= ori < NUM_CORNERS:
            corners = corners[ori:] + corners[:ori]
        else:
            log_error(f"Bad orientation {ori} for marker {detection.id}; corners not rotated.")

        if detection.footprint_px is not None:
            candidates = cloud.select_pixels(detection.footprint_px)
        else:
            candidates = cloud.select_polygon(detection.corners_px)

        return MarkerObservation(detection.id, tuple(corners), candidates)
