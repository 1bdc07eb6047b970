"""Import classes for 3D reconstruction from depth-aligned sensor data."""

from .plane_estimation import PlaneEstimate as PlaneEstimate
from .pointcloud import OrganizedPointcloud as OrganizedPointcloud
from .pointcloud import points_to_o3d as points_to_o3d
