"""Define a class to represent organized 3D pointclouds aligned with camera images."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np
import open3d as o3d

from marker_bundles.spatial import Point3D

if TYPE_CHECKING:
    from numpy.typing import NDArray


class OrganizedPointcloud:
    """A pointcloud with one (possibly missing) 3D point per image pixel."""

    def __init__(self, points: NDArray[np.float64], frame: str) -> None:
        """Initialize the pointcloud using a NumPy array of shape (H, W, 3).

        :param points: Array of 3D points; missing measurements are NaN
        :param frame: Name of the reference frame in which the points are expressed
        """
        if len(points.shape) != 3 or points.shape[2] != 3:
            raise ValueError(f"OrganizedPointcloud expects shape (H, W, 3), got {points.shape}")

        self.points = np.asarray(points, dtype=np.float64)
        """Points in the pointcloud; shape (H, W, 3)."""

        self.frame = frame

    @property
    def height(self) -> int:
        """Retrieve the number of pixel rows in the pointcloud."""
        return self.points.shape[0]

    @property
    def width(self) -> int:
        """Retrieve the number of pixel columns in the pointcloud."""
        return self.points.shape[1]

    @classmethod
    def from_depth_image(
        cls,
        depth: NDArray[np.float64],
        fx: float,
        fy: float,
        x0: float,
        y0: float,
        frame: str,
    ) -> OrganizedPointcloud:
        """Construct an organized pointcloud from the given depth image.

        Reference: https://www.open3d.org/docs/release/python_api/open3d.geometry.PointCloud.html
            See the equations in the description of the create_from_rgbd_image() function.

        :param depth: Depth image (meters) of shape (H, W); zero or NaN depth is missing
        :param fx: Focal length (pixels) along the x-axis
        :param fy: Focal length (pixels) along the y-axis
        :param x0: Principal point x-coordinate (pixels)
        :param y0: Principal point y-coordinate (pixels)
        :param frame: Name of the camera frame of the depth image
        :return: Pointcloud with one point per depth pixel
        """
        z = np.where(depth > 0, depth, np.nan)  # (H, W)
        v, u = np.indices(depth.shape)  # V gives row indices and U gives columns
        x = (u - x0) * z / fx
        y = (v - y0) * z / fy
        return OrganizedPointcloud(np.stack([x, y, z], axis=-1), frame)

    def at(self, row: int, col: int) -> Point3D:
        """Look up the 3D point measured at the given pixel.

        :return: Point3D at the pixel, or the missing sentinel if out of bounds or undefined
        """
        if not (0 <= row < self.height and 0 <= col < self.width):
            return Point3D.missing()
        return Point3D.from_array(self.points[row, col])

    def select_pixels(self, pixels_xy: NDArray) -> NDArray[np.float64]:
        """Collect the finite 3D points at the given pixels.

        :param pixels_xy: Array of shape (K, 2) of pixel coordinates (x = column, y = row)
        :return: Array of shape (M, 3) with M <= K, skipping missing or out-of-bounds pixels
        """
        pixels = np.rint(np.asarray(pixels_xy, dtype=np.float64).reshape(-1, 2)).astype(int)
        cols, rows = pixels[:, 0], pixels[:, 1]
        in_bounds = (rows >= 0) & (rows < self.height) & (cols >= 0) & (cols < self.width)
        selected = self.points[rows[in_bounds], cols[in_bounds]]
        return selected[np.isfinite(selected).all(axis=1)]

    def select_polygon(self, corners_xy: NDArray) -> NDArray[np.float64]:
        """Collect the finite 3D points inside the convex polygon with the given pixel corners.

        :param corners_xy: Array of shape (N, 2) of polygon corners (x = column, y = row)
        :return: Array of shape (M, 3) of points inside the polygon
        """
        mask = np.zeros((self.height, self.width), dtype=np.uint8)
        polygon = np.rint(np.asarray(corners_xy, dtype=np.float64)).astype(np.int32)
        cv2.fillConvexPoly(mask, polygon.reshape(-1, 1, 2), color=1)

        selected = self.points[mask.astype(bool)]
        return selected[np.isfinite(selected).all(axis=1)]


def points_to_o3d(points: NDArray[np.float64]) -> o3d.geometry.PointCloud:
    """Convert an array of 3D points of shape (N, 3) into an Open3D pointcloud."""
    o3d_pcd = o3d.geometry.PointCloud()
    o3d_pcd.points = o3d.utility.Vector3dVector(np.asarray(points, dtype=np.float64))
    return o3d_pcd
