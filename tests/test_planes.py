"""Unit tests for the Plane3D class."""

import numpy as np
import pytest

from marker_bundles.geometry import Plane3D


def test_plane_from_coefficients_normalizes() -> None:
    """Verify that plane coefficients are normalized and define the same plane."""
    # Arrange/Act - Construct the plane 2z - 1 = 0 (i.e., z = 0.5) from unnormalized coefficients
    plane = Plane3D.from_coefficients(0.0, 0.0, 2.0, -1.0)

    # Assert - Expect a unit normal and the constant of the normalized equation
    assert np.allclose(plane.normal, [0.0, 0.0, 1.0])
    assert np.allclose(plane.point, [0.0, 0.0, 0.5])
    assert plane.d == pytest.approx(0.5)
    assert plane.equation_string == "0.000x + 0.000y + 1.000z = 0.500"


def test_plane_from_zero_normal_raises_error() -> None:
    """Verify that coefficients without a normal vector are rejected."""
    with pytest.raises(ValueError, match="normal"):
        Plane3D.from_coefficients(0.0, 0.0, 0.0, 1.0)


def test_plane_project_vector_removes_normal_component() -> None:
    """Verify that projecting a vector onto a plane leaves it orthogonal to the normal."""
    # Arrange - Use a tilted plane through the origin
    normal = np.array([0.0, 1.0, 1.0]) / np.sqrt(2.0)
    plane = Plane3D(point=np.zeros(3), normal=normal)

    # Act - Project an arbitrary vector onto the plane
    projected = plane.project_vector(np.array([1.0, 2.0, 3.0]))

    # Assert - Expect no remaining component along the normal, and the in-plane x unchanged
    assert np.dot(projected, normal) == pytest.approx(0.0)
    assert projected[0] == pytest.approx(1.0)
    assert projected[1] == pytest.approx(-projected[2])
