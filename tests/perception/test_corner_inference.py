"""Unit tests for inferring a bundle's master corners from its secondary markers."""

import numpy as np
import pytest

from marker_bundles.estimate import FusionFailure
from marker_bundles.perception import infer_master_corners
from marker_bundles.perception.corner_inference import offset_to_marker_frame
from marker_bundles.spatial import Point3D, Pose3D, marker_frame_name
from marker_bundles.transforms import TransformBuffer

from ..synthetic_scene import CAMERA_FRAME, PlanarScene, default_board_pose

LAYOUT = {0: (0.0, 0.0), 1: (0.1, 0.0), 2: (0.0, -0.08), 3: (-0.1, 0.05)}


@pytest.fixture
def scene() -> PlanarScene:
    """Create a board of four markers with master marker 0."""
    return PlanarScene(default_board_pose(), LAYOUT)


def broadcast_marker_poses(scene: PlanarScene, marker_ids: list[int]) -> TransformBuffer:
    """Store the true poses of the given markers in a new transform buffer."""
    tf_buffer = TransformBuffer()
    for marker_id in marker_ids:
        tf_buffer.set_transform(marker_frame_name(marker_id), scene.marker_pose(marker_id), 0.0)
    return tf_buffer


def test_offset_to_marker_frame_swaps_axes() -> None:
    """Verify the mapping from bundle-file offsets (cm) to marker-frame points (m)."""
    point = offset_to_marker_frame(np.array([1.0, 2.0, 3.0]), units_per_meter=100.0)
    assert point.approx_equal(Point3D(-0.02, 0.01, 0.03))


@pytest.mark.parametrize("visible_ids", [[1], [2, 3], [1, 2, 3]])
def test_inferred_corners_match_master(scene: PlanarScene, visible_ids: list[int]) -> None:
    """Verify that exact secondary marker poses reproduce the master's corners."""
    # Arrange - Broadcast the exact poses of the visible markers
    tf_buffer = broadcast_marker_poses(scene, visible_ids)

    # Act - Infer the master's corners in the camera frame
    estimate = infer_master_corners(scene.bundle, visible_ids, tf_buffer, CAMERA_FRAME)

    # Assert - Expect the true corners of the master marker
    assert estimate.success
    inferred = np.vstack([c.to_array() for c in estimate.output])
    assert np.allclose(inferred, scene.marker_corners(0), atol=1e-9)


def test_inferred_corners_average_contributions(scene: PlanarScene) -> None:
    """Verify that the inferred corners are the mean over the contributing markers."""
    # Arrange - Misplace marker 1 by 1 cm along the camera's x-axis, keeping marker 2 exact
    tf_buffer = broadcast_marker_poses(scene, [2])
    pose_1 = scene.marker_pose(1)
    shifted = Point3D.from_array(pose_1.position.to_array() + np.array([0.01, 0.0, 0.0]))
    misplaced = Pose3D(shifted, pose_1.orientation, CAMERA_FRAME)
    tf_buffer.set_transform(marker_frame_name(1), misplaced, stamp=0.0)

    # Act - Infer the master's corners (listing marker 2 twice, which counts once)
    estimate = infer_master_corners(scene.bundle, [1, 2, 2], tf_buffer, CAMERA_FRAME)

    # Assert - Expect each corner shifted by half of marker 1's error
    inferred = np.vstack([c.to_array() for c in estimate.output])
    expected = scene.marker_corners(0) + np.array([0.005, 0.0, 0.0])
    assert np.allclose(inferred, expected, atol=1e-9)


def test_inference_ignores_master_and_unrelated_markers(scene: PlanarScene) -> None:
    """Verify that a bundle with no visible secondary markers has nothing to infer from."""
    # Arrange - Only the master and a marker from another bundle are broadcast
    tf_buffer = broadcast_marker_poses(scene, [0])

    # Act - Attempt to infer the master's corners
    estimate = infer_master_corners(scene.bundle, [0, 42], tf_buffer, CAMERA_FRAME)

    # Assert - Expect a NO_OBSERVATION failure
    assert estimate.failure is FusionFailure.NO_OBSERVATION


def test_inference_fails_without_marker_transform(scene: PlanarScene) -> None:
    """Verify that a missing marker transform fails the inference (with no partial result)."""
    # Arrange - Marker 1's transform is known but marker 3's is not
    tf_buffer = broadcast_marker_poses(scene, [1])

    # Act - Attempt to infer the master's corners from markers 1 and 3
    estimate = infer_master_corners(
        scene.bundle,
        [1, 3],
        tf_buffer,
        CAMERA_FRAME,
        timeout_s=0.0,
    )

    # Assert - Expect a TRANSFORM_UNAVAILABLE failure without output
    assert estimate.failure is FusionFailure.TRANSFORM_UNAVAILABLE
    assert estimate.output is None
    assert "ar_marker_3" in estimate.message
