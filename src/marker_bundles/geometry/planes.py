"""Define a class to represent 3D planes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


@dataclass(frozen=True)
class Plane3D:
    """A plane in 3D space defined by a point and normal vector.

    Reference: https://mathworld.wolfram.com/Plane.html
    """

    point: NDArray[np.float64]
    """A point on the plane of shape (3,)."""

    normal: NDArray[np.float64]
    """Unit normal vector to the plane of shape (3,)."""

    @classmethod
    def from_coefficients(cls, a: float, b: float, c: float, d: float) -> Plane3D:
        """Construct a plane from the coefficients of its equation ax + by + cz + d = 0.

        :raises ValueError: If the coefficients (a, b, c) don't define a normal vector
        """
        normal = np.array([a, b, c], dtype=np.float64)
        length = float(np.linalg.norm(normal))
        if length == 0 or not np.isfinite(length):
            raise ValueError(f"Plane coefficients don't define a normal: {(a, b, c, d)}")

        normal = normal / length
        point = normal * (-d / length)  # Point on the plane closest to the origin
        return Plane3D(point=point, normal=normal)

    @property
    def d(self) -> float:
        """Compute the plane equation constant: ax + by + cz = d."""
        return float(np.dot(self.normal, self.point))

    @property
    def equation_string(self) -> str:
        """Retrieve a string expressing the equation of the plane."""
        a, b, c = (f"{value:.3f}" for value in self.normal)
        return f"{a}x + {b}y + {c}z = {self.d:.3f}"

    def project_vector(self, vector: NDArray[np.float64]) -> NDArray[np.float64]:
        """Remove the component of the given vector along the plane's normal."""
        return vector - np.dot(vector, self.normal) * self.normal
