"""Define classes to store and look up transforms between named reference frames."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Protocol

from marker_bundles.errors import TransformUnavailableError
from marker_bundles.spatial import Point3D, Pose3D


class TransformLookup(Protocol):
    """An interface for a service that converts data between coordinate frames."""

    def lookup_transform(
        self,
        child_frame: str,
        parent_frame: str,
        when: float | None = None,
        timeout_s: float = 0.1,
    ) -> Pose3D:
        """Look up the pose of the child frame relative to the parent frame.

        :raises TransformUnavailableError: If the transform isn't known before the timeout
        """
        ...

    def transform_point(
        self,
        target_frame: str,
        source_frame: str,
        point: Point3D,
        when: float | None = None,
        timeout_s: float = 0.1,
    ) -> Point3D:
        """Express a point given in the source frame w.r.t. the target frame.

        :raises TransformUnavailableError: If the transform isn't known before the timeout
        """
        ...


@dataclass(frozen=True)
class StampedTransform:
    """The pose of a frame relative to its parent frame, with the time it was recorded."""

    pose: Pose3D
    """Pose of the child frame; its `ref_frame` names the parent frame."""

    stamp: float


class TransformBuffer:
    """An in-process tree of frames, each storing its latest transform w.r.t. its parent.

    Transforms may be written from another thread (e.g., a listener), so lookups wait
        (up to a timeout) for missing frames to appear.
    """

    POLL_PERIOD_S = 0.005

    def __init__(self, max_age_s: float | None = None) -> None:
        """Initialize an empty transform buffer.

        :param max_age_s: Maximum age (seconds) of a transform w.r.t. the requested time (if None,
            the latest transform is always used)
        """
        self.max_age_s = max_age_s
        self._transforms: dict[str, StampedTransform] = {}
        self._lock = threading.Lock()

    @property
    def known_frames(self) -> set[str]:
        """Retrieve the names of all frames known to the buffer."""
        with self._lock:
            parents = {t.pose.ref_frame for t in self._transforms.values()}
            return set(self._transforms) | parents

    def set_transform(self, child_frame: str, pose: Pose3D, stamp: float) -> None:
        """Record the pose of the named frame relative to its parent frame.

        :param child_frame: Name of the frame whose pose is recorded
        :param pose: Pose of the child frame w.r.t. `pose.ref_frame`
        :param stamp: Time (seconds) at which the transform was valid
        """
        if child_frame == pose.ref_frame:
            raise ValueError(f"Frame '{child_frame}' cannot be its own parent.")
        with self._lock:
            self._transforms[child_frame] = StampedTransform(pose, stamp)

    def clear(self) -> None:
        """Forget all stored transforms."""
        with self._lock:
            self._transforms.clear()

    def lookup_transform(
        self,
        child_frame: str,
        parent_frame: str,
        when: float | None = None,
        timeout_s: float = 0.1,
    ) -> Pose3D:
        """Look up the transform to convert from one frame to another.

        Frame notation: Child frame (c) and parent frame (p). The result is transform_p_c, so:

            transform_p_c @ data_wrt_c = data_wrt_p

        :param child_frame: Frame whose relative pose we want to find
        :param parent_frame: Frame relative to which the transform is found
        :param when: Time (seconds) at which the transform is requested (if None, use latest data)
        :param timeout_s: Duration (seconds) after which to abandon the lookup
        :return: Pose of the child frame w.r.t. the parent frame
        :raises TransformUnavailableError: If the frames aren't connected before the timeout
        """
        deadline_s = time.monotonic() + timeout_s
        while True:
            with self._lock:
                result = self._try_lookup(child_frame, parent_frame, when)
            if result is not None:
                return result
            if time.monotonic() >= deadline_s:
                raise TransformUnavailableError(
                    f"Could not find transform from '{child_frame}' to '{parent_frame}' "
                    f"within {timeout_s:.2f} seconds.",
                )
            time.sleep(min(self.POLL_PERIOD_S, max(0.0, deadline_s - time.monotonic())))

    def transform_point(
        self,
        target_frame: str,
        source_frame: str,
        point: Point3D,
        when: float | None = None,
        timeout_s: float = 0.1,
    ) -> Point3D:
        """Express a point given in the source frame w.r.t. the target frame.

        :raises TransformUnavailableError: If the frames aren't connected before the timeout
        """
        transform = self.lookup_transform(source_frame, target_frame, when, timeout_s)
        return transform @ point

    def _try_lookup(
        self,
        child_frame: str,
        parent_frame: str,
        when: float | None,
    ) -> Pose3D | None:
        """Compose the transform between two frames, or return None if they aren't connected."""
        if child_frame == parent_frame:
            return Pose3D.identity(parent_frame)

        child_chain = self._chain_to_root(child_frame, when)
        parent_chain = self._chain_to_root(parent_frame, when)
        if child_chain is None or parent_chain is None:
            return None

        root_from_child, child_root = child_chain
        root_from_parent, parent_root = parent_chain
        if child_root != parent_root:
            return None

        # pose_p_c = inv(pose_root_p) @ pose_root_c
        relative = root_from_parent.inverse(parent_frame) @ root_from_child
        return relative.with_frame(parent_frame)

    def _chain_to_root(self, frame: str, when: float | None) -> tuple[Pose3D, str] | None:
        """Compose the pose of the given frame w.r.t. the root of its tree.

        :return: Pair of (pose w.r.t. root, root frame name), or None if a link is stale
        """
        pose = Pose3D.identity(frame)
        current = frame
        visited = {frame}
        while current in self._transforms:
            stamped = self._transforms[current]
            if self._is_stale(stamped, when):
                return None
            pose = stamped.pose @ pose
            current = stamped.pose.ref_frame
            if current in visited:
                raise ValueError(f"Transform tree contains a cycle through frame '{current}'.")
            visited.add(current)
        return pose, current

    def _is_stale(self, stamped: StampedTransform, when: float | None) -> bool:
        """Evaluate whether a stored transform is too old to be used at the requested time."""
        if when is None or self.max_age_s is None:
            return False
        return when - stamped.stamp > self.max_age_s
