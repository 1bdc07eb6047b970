"""Define a class to represent poses in 3D space."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TypeVar

import numpy as np

from marker_bundles.spatial.frames import DEFAULT_FRAME
from marker_bundles.spatial.points import Point3D
from marker_bundles.spatial.rotations import EulerRPY, Quaternion

MultiplyT = TypeVar("MultiplyT", "Pose3D", Point3D)


@dataclass(frozen=True)
class Pose3D:
    """A position and orientation in 3D space."""

    position: Point3D
    orientation: Quaternion
    ref_frame: str = DEFAULT_FRAME

    def __matmul__(self, other: MultiplyT) -> MultiplyT:
        """Compose the homogeneous transformation matrix of this pose with another object.

        :param other: 3D pose or 3D point right-multiplied with this pose
        :return: Result from the matrix multiplication
        """
        if isinstance(other, Pose3D):
            return self._matrix_multiply_with_pose(other)
        if isinstance(other, Point3D):
            return self._matrix_multiply_with_point(other)

        raise NotImplementedError(f"Cannot matrix-multiply Pose3D with: {other}")

    def _matrix_multiply_with_pose(self, other: Pose3D) -> Pose3D:
        """Multiply the homogeneous transformation matrix of this pose with another pose.

        Consider: pose_A_B @ pose_B_C = pose_A_C, meaning the pose of 'C' relative to frame A.
            Therefore, we see that the resulting pose takes the "left-side" reference frame.

        :param other: Pose defining the right-side matrix in the multiplication
        :return: Pose3D resulting from the matrix multiplication
        """
        left_m = self.to_homogeneous_matrix()
        right_m = other.to_homogeneous_matrix()
        return Pose3D.from_homogeneous_matrix(left_m @ right_m, self.ref_frame)

    def _matrix_multiply_with_point(self, other: Point3D) -> Point3D:
        """Multiply the homogeneous transformation matrix of this pose with a 3D point.

        :param other: 3D point treated as a homogeneous coordinate in the multiplication
        :return: Point3D resulting from the matrix multiplication
        """
        result = self.to_homogeneous_matrix() @ other.to_homogeneous_coordinate()
        return Point3D.from_homogeneous_coordinate(result)

    def __str__(self) -> str:
        """Return a human-readable string representation of the Pose3D."""
        values = ", ".join(f"{value:.4f}" for value in self.to_vector())
        return f'Pose3D([{values}], ref_frame="{self.ref_frame}")'

    @classmethod
    def identity(cls, ref_frame: str = DEFAULT_FRAME) -> Pose3D:
        """Construct a Pose3D corresponding to the identity transformation."""
        return Pose3D(Point3D.identity(), Quaternion.identity(), ref_frame)

    @classmethod
    def from_xyz_rpy(
        cls,
        x: float = 0.0,
        y: float = 0.0,
        z: float = 0.0,
        roll_rad: float = 0.0,
        pitch_rad: float = 0.0,
        yaw_rad: float = 0.0,
        ref_frame: str = DEFAULT_FRAME,
    ) -> Pose3D:
        """Construct a Pose3D from the given XYZ coordinates and Euler RPY angles.

        :param x: Translation along the x-axis
        :param y: Translation along the y-axis
        :param z: Translation along the z-axis
        :param roll_rad: Fixed-frame roll angle (radians) about the x-axis
        :param pitch_rad: Fixed-frame pitch angle (radians) about the y-axis
        :param yaw_rad: Fixed-frame yaw angle (radians) about the z-axis
        :param ref_frame: Reference frame of the constructed pose
        :return: Constructed Pose3D instance
        """
        position = Point3D(x, y, z)
        orientation = EulerRPY(roll_rad, pitch_rad, yaw_rad).to_quaternion()

        return Pose3D(position, orientation, ref_frame)

    @classmethod
    def from_homogeneous_matrix(cls, matrix: np.ndarray, ref_frame: str = DEFAULT_FRAME) -> Pose3D:
        """Construct a Pose3D from a 4x4 homogeneous transformation matrix."""
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix but received shape {matrix.shape}")

        position = Point3D(matrix[0, 3], matrix[1, 3], matrix[2, 3])
        orientation = Quaternion.from_rotation_matrix(matrix[:3, :3])
        return Pose3D(position, orientation, ref_frame)

    def to_homogeneous_matrix(self) -> np.ndarray:
        """Convert the Pose3D into a 4x4 homogeneous transformation matrix."""
        matrix = np.eye(4)
        matrix[:3, 3] = self.position.to_array()
        matrix[:3, :3] = self.orientation.to_rotation_matrix()
        return matrix

    def inverse(self, pose_frame: str) -> Pose3D:
        """Compute the inverse of this pose.

        If this pose is pose_A_B (frame B w.r.t. frame A), the inverse is pose_B_A.

        :param pose_frame: Name of the frame (B) defined by this pose
        :return: Pose of this pose's reference frame expressed w.r.t. `pose_frame`
        """
        inverse_matrix = np.linalg.inv(self.to_homogeneous_matrix())
        return Pose3D.from_homogeneous_matrix(inverse_matrix, ref_frame=pose_frame)

    def to_vector(self) -> np.ndarray:
        """Convert the pose into a 7-vector of the form [tx, ty, tz, qw, qx, qy, qz]."""
        q = self.orientation
        return np.array([*self.position, q.w, q.x, q.y, q.z])

    def scale_translation(self, factor: float) -> Pose3D:
        """Return a copy of the pose whose translation is multiplied by the given factor."""
        scaled = Point3D.from_array(self.position.to_array() * factor)
        return replace(self, position=scaled)

    def with_frame(self, ref_frame: str) -> Pose3D:
        """Return a copy of the pose relabeled with the given reference frame."""
        return replace(self, ref_frame=ref_frame)

    def approx_equal(self, other: Pose3D, rtol: float = 1e-05, atol: float = 1e-08) -> bool:
        """Evaluate whether another Pose3D is approximately equal to this one."""
        return (
            self.ref_frame == other.ref_frame
            and self.position.approx_equal(other.position, rtol=rtol, atol=atol)
            and self.orientation.approx_equal(other.orientation, rtol=rtol, atol=atol)
        )
