"""Import classes and definitions representing 3D coordinate frames, poses, and rotations."""

from .frames import DEFAULT_FRAME as DEFAULT_FRAME
from .frames import marker_frame_name as marker_frame_name
from .points import Point3D as Point3D
from .poses import Pose3D as Pose3D
from .rotations import EulerRPY as EulerRPY
from .rotations import Quaternion as Quaternion
