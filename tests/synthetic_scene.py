"""Define a synthetic planar scene of fiducial markers observed by a depth camera."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from marker_bundles.bundles import BundleDefinition
from marker_bundles.perception import FrameResult, MarkerDetection
from marker_bundles.reconstruction import OrganizedPointcloud
from marker_bundles.spatial import Pose3D

if TYPE_CHECKING:
    from collections.abc import Iterable

    from numpy.typing import NDArray

CAMERA_FRAME = "camera"
WIDTH, HEIGHT = 640, 480
FX = FY = 600.0
X0, Y0 = 320.0, 240.0

MARKER_HALF_SIZE_M = 0.022
"""Half the side length (meters) of each synthetic marker."""


def marker_corners_local(half_size: float = MARKER_HALF_SIZE_M) -> NDArray[np.float64]:
    """Corners (4, 3) of a marker in its own frame.

    The order places c3 - c0 along +x and c0 - c1 along +y.
    """
    h = half_size
    return np.array([[-h, h, 0.0], [-h, -h, 0.0], [h, -h, 0.0], [h, h, 0.0]])


def bundle_from_layout(
    master_id: int,
    layout: dict[int, tuple[float, float]],
    units_per_meter: float = 100.0,
) -> BundleDefinition:
    """Construct a planar bundle whose markers sit at the given (x, y) offsets from the master.

    Corner offsets are written the way bundle files encode them: marker m's corner j, once
        mapped into m's frame as (-y, x, z), lands on the master's corner (j + 2) mod 4.
    """
    master_corners = marker_corners_local()
    offsets: dict[int, NDArray[np.float64]] = {}
    for marker_id, (tx, ty) in layout.items():
        corners = np.zeros((4, 3))
        for j in range(4):
            px, py, pz = master_corners[(j + 2) % 4] - np.array([tx, ty, 0.0])
            corners[j] = np.array([py, -px, pz]) * units_per_meter
        offsets[marker_id] = corners
    return BundleDefinition(master_id, tuple(layout), offsets)


def render_plane_cloud(board_pose: Pose3D) -> OrganizedPointcloud:
    """Render the organized pointcloud seen by the camera when a plane fills its view."""
    normal = board_pose.orientation.to_rotation_matrix()[:, 2]
    origin = board_pose.position.to_array()

    v, u = np.indices((HEIGHT, WIDTH))
    rays = np.stack([(u - X0) / FX, (v - Y0) / FY, np.ones(u.shape)], axis=-1)  # (H, W, 3)
    depths = np.dot(normal, origin) / (rays @ normal)
    return OrganizedPointcloud(rays * depths[..., np.newaxis], CAMERA_FRAME)


def project(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Project camera-frame points (N, 3) into pixel coordinates (N, 2)."""
    return np.column_stack(
        [FX * points[:, 0] / points[:, 2] + X0, FY * points[:, 1] / points[:, 2] + Y0],
    )


@dataclass
class PlanarScene:
    """A board of coplanar markers at a known pose in front of the camera."""

    board_pose: Pose3D
    """Pose of the master marker w.r.t. the camera."""

    layout: dict[int, tuple[float, float]]
    """Map from marker ID to its (x, y) offset (meters) in the master's frame."""

    master_id: int = 0
    cloud: OrganizedPointcloud = field(init=False)

    def __post_init__(self) -> None:
        """Render the scene's pointcloud."""
        self.cloud = render_plane_cloud(self.board_pose)

    @property
    def bundle(self) -> BundleDefinition:
        """Retrieve the bundle definition matching the scene's layout."""
        return bundle_from_layout(self.master_id, self.layout)

    def marker_pose(self, marker_id: int) -> Pose3D:
        """Compute the true pose (meters) of a marker w.r.t. the camera."""
        tx, ty = self.layout[marker_id]
        offset = Pose3D.from_xyz_rpy(tx, ty, 0.0, ref_frame=CAMERA_FRAME)
        return self.board_pose @ offset

    def marker_corners(self, marker_id: int) -> NDArray[np.float64]:
        """Compute the true corners (4, 3) of a marker in the camera frame."""
        pose = self.marker_pose(marker_id)
        rotation = pose.orientation.to_rotation_matrix()
        return marker_corners_local() @ rotation.T + pose.position.to_array()

    def detect(self, marker_ids: Iterable[int]) -> list[MarkerDetection]:
        """Construct the detections a perfect detector would report for the given markers."""
        return [MarkerDetection(i, project(self.marker_corners(i))) for i in marker_ids]


class PassthroughDetector:
    """A detector whose "images" are the lists of detections it should report."""

    def detect(self, image: list[MarkerDetection]) -> list[MarkerDetection]:
        """Return the detections carried by the given image."""
        return list(image)


class RecordingSink:
    """A pose sink that keeps every result it receives."""

    def __init__(self) -> None:
        """Initialize an empty record of results."""
        self.results: list[FrameResult] = []

    def publish(self, result: FrameResult) -> None:
        """Record the given frame result."""
        self.results.append(result)


def angle_between_deg(pose_a: Pose3D, pose_b: Pose3D) -> float:
    """Compute the angle (degrees) between the orientations of two poses."""
    return float(np.rad2deg(pose_a.orientation.angle_to(pose_b.orientation)))


def default_board_pose() -> Pose3D:
    """Construct a board pose facing the camera, slightly tilted, 0.6 m away."""
    return Pose3D.from_xyz_rpy(
        x=0.01,
        y=-0.02,
        z=0.6,
        roll_rad=np.pi + 0.1,
        pitch_rad=0.15,
        yaw_rad=0.2,
        ref_frame=CAMERA_FRAME,
    )
