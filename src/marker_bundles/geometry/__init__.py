"""Import classes and definitions representing pure geometric primitives."""

from .planes import Plane3D as Plane3D
