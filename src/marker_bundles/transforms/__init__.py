"""Import classes used to convert data between named coordinate frames."""

from .transform_buffer import StampedTransform as StampedTransform
from .transform_buffer import TransformBuffer as TransformBuffer
from .transform_buffer import TransformLookup as TransformLookup
