"""Define classes to represent 3D rotations and orientations."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import TYPE_CHECKING

import numpy as np
from pyquaternion import Quaternion as Q
from trimesh.transformations import (
    quaternion_from_euler,
    quaternion_from_matrix,
    quaternion_matrix,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from numpy.typing import NDArray


@dataclass
class EulerRPY:
    """A 3D rotation represented using three fixed-frame Euler angles."""

    roll_rad: float
    pitch_rad: float
    yaw_rad: float

    def __iter__(self) -> Iterator[float]:
        """Provide an iterator over the roll, pitch, and yaw values."""
        yield from astuple(self)

    def to_quaternion(self) -> Quaternion:
        """Convert the Euler angles into an equivalent unit quaternion."""
        w, x, y, z = quaternion_from_euler(self.roll_rad, self.pitch_rad, self.yaw_rad, axes="sxyz")
        return Quaternion(x=x, y=y, z=z, w=w)


@dataclass
class Quaternion:
    """A unit quaternion representing a 3D orientation."""

    x: float
    y: float
    z: float
    w: float

    def __post_init__(self) -> None:
        """Normalize the quaternion after it is initialized."""
        self.normalize()

    def __mul__(self, other: Quaternion) -> Quaternion:
        """Return the Hamilton product of this quaternion and another.

        Reference: https://kieranwynn.github.io/pyquaternion/#quaternion-operations
        """
        if not isinstance(other, Quaternion):
            raise TypeError(f"Cannot multiply a Quaternion with a {type(other)}: {other}.")
        product = Q(self.w, self.x, self.y, self.z) * Q(other.w, other.x, other.y, other.z)
        return Quaternion(product.x, product.y, product.z, product.w)

    @property
    def norm(self) -> float:
        """Compute the Euclidean norm of the quaternion's four components."""
        return float(np.linalg.norm(self.to_array()))

    def normalize(self) -> None:
        """Normalize the quaternion to ensure it is a unit quaternion."""
        norm = self.norm
        if norm == 0 or not np.isfinite(norm):
            raise ValueError(f"Cannot normalize quaternion with norm {norm}: {self}")

        self.x /= norm
        self.y /= norm
        self.z /= norm
        self.w /= norm

    def angle_to(self, other: Quaternion) -> float:
        """Compute the angle (radians) of the rotation taking this orientation to another."""
        relative = self.conjugate() * other
        vector_norm = float(np.linalg.norm([relative.x, relative.y, relative.z]))
        return 2.0 * float(np.arctan2(vector_norm, abs(relative.w)))

    def conjugate(self) -> Quaternion:
        """Compute the conjugate of this quaternion.

        Reference: https://mathworld.wolfram.com/QuaternionConjugate.html
        """
        return Quaternion(-self.x, -self.y, -self.z, self.w)

    @classmethod
    def identity(cls) -> Quaternion:
        """Construct a Quaternion corresponding to the identity rotation."""
        return Quaternion(0, 0, 0, 1)

    def to_array(self) -> NDArray[np.float64]:
        """Convert the quaternion to a NumPy array of the form [x,y,z,w]."""
        return np.array([self.x, self.y, self.z, self.w])

    @classmethod
    def from_rotation_matrix(cls, r_matrix: NDArray[np.float64]) -> Quaternion:
        """Construct a quaternion from a 3x3 rotation matrix."""
        if r_matrix.shape != (3, 3):
            raise ValueError(f"Quaternion expects a 3x3 rotation matrix, got {r_matrix.shape}")

        matrix = np.eye(4)  # Begin with a 4x4 identity matrix
        matrix[:3, :3] = r_matrix  # Fill in the rotation

        w, x, y, z = quaternion_from_matrix(matrix)  # Note: trimesh puts w (q's real value) first
        return Quaternion(x=float(x), y=float(y), z=float(z), w=float(w))

    def to_rotation_matrix(self) -> NDArray[np.float64]:
        """Convert the quaternion into an equivalent 3x3 rotation matrix."""
        return quaternion_matrix(quaternion=[self.w, self.x, self.y, self.z])[:3, :3]

    def approx_equal(self, other: Quaternion, rtol: float = 1e-05, atol: float = 1e-08) -> bool:
        """Evaluate whether another Quaternion is approximately equal to this one.

        Note: A quaternion is considered equal to its negation, as they express the same rotation.
        """
        self_array = self.to_array()
        other_array = other.to_array()

        return bool(
            np.allclose(self_array, other_array, rtol=rtol, atol=atol)
            or np.allclose(-self_array, other_array, rtol=rtol, atol=atol),
        )
