"""Define functions to infer a bundle's master marker corners from its other visible markers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from marker_bundles.errors import TransformUnavailableError
from marker_bundles.estimate import Estimate, FusionFailure
from marker_bundles.spatial import Point3D, marker_frame_name

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marker_bundles.bundles import BundleDefinition
    from marker_bundles.transforms import TransformLookup

MasterCorners = tuple[Point3D, Point3D, Point3D, Point3D]

MASTER_CORNER_SHIFT = 2
"""Corner j of a visible marker estimates corner (j + 2) mod 4 of the master marker."""


def offset_to_marker_frame(offset: np.ndarray, units_per_meter: float) -> Point3D:
    """Convert a bundle-file corner offset into a point (meters) in the visible marker's frame.

    Bundle files store corners in the master frame; the marker frame swaps its x and y axes
        w.r.t. that layout: (x, y, z) maps to (-y, x, z).
    """
    x, y, z = (float(value) / units_per_meter for value in offset)
    return Point3D(-y, x, z)


def infer_master_corners(
    bundle: BundleDefinition,
    visible_ids: Iterable[int],
    transforms: TransformLookup,
    cloud_frame: str,
    units_per_meter: float = 100.0,
    when: float | None = None,
    timeout_s: float = 0.1,
) -> Estimate[MasterCorners]:
    """Estimate the master marker's corners (in the cloud frame) from visible secondary markers.

    Each visible marker contributes one estimate per master corner; the result is their mean.

    :param bundle: Bundle whose master marker corners are inferred
    :param visible_ids: IDs of markers detected (and localized) in the current frame
    :param transforms: Lookup converting points from marker frames into the cloud frame
    :param cloud_frame: Name of the pointcloud's reference frame
    :param units_per_meter: Length units of the bundle's corner offsets per meter
    :param when: Time of the current frame (if None, the latest transforms are used)
    :param timeout_s: Duration (seconds) to wait for each transform lookup
    :return: Four inferred master corners, or NO_OBSERVATION / TRANSFORM_UNAVAILABLE failures
    """
    members = [i for i in dict.fromkeys(visible_ids) if i in bundle and i != bundle.master_id]
    if not members:
        return Estimate.fail(
            FusionFailure.NO_OBSERVATION,
            f"No secondary markers of bundle {bundle.master_id} are visible.",
        )

    corner_sums = np.zeros((4, 3))
    for marker_id in members:
        source_frame = marker_frame_name(marker_id)
        for j, offset in enumerate(bundle.corner_offsets[marker_id]):
            local_point = offset_to_marker_frame(offset, units_per_meter)
            try:
                cloud_point = transforms.transform_point(
                    cloud_frame,
                    source_frame,
                    local_point,
                    when=when,
                    timeout_s=timeout_s,
                )
            except TransformUnavailableError as error:
                return Estimate.fail(FusionFailure.TRANSFORM_UNAVAILABLE, str(error))

            corner_sums[(j + MASTER_CORNER_SHIFT) % 4] += cloud_point.to_array()

    corners = corner_sums / len(members)
    return Estimate.ok(tuple(Point3D.from_array(c) for c in corners))
