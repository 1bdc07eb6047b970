"""Define the per-frame pipeline that fuses marker observations into smoothed bundle poses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

from marker_bundles.bundles import BundleRegistry
from marker_bundles.errors import TransformUnavailableError
from marker_bundles.estimate import Estimate, FusionFailure
from marker_bundles.io import FusionConfig
from marker_bundles.io.logging import log_error, log_warning
from marker_bundles.perception.corner_inference import infer_master_corners
from marker_bundles.perception.observations import MarkerObservation
from marker_bundles.perception.pose_refiner import PoseRefiner
from marker_bundles.perception.temporal_smoother import PoseHistory
from marker_bundles.spatial import Pose3D, marker_frame_name

if TYPE_CHECKING:
    from marker_bundles.bundles import BundleDefinition
    from marker_bundles.perception.observations import MarkerDetector
    from marker_bundles.reconstruction import OrganizedPointcloud
    from marker_bundles.transforms import TransformBuffer


class VisibilityTier(Enum):
    """How a bundle's pose is obtained in the current frame."""

    MASTER_VISIBLE = "A"
    """The master marker was localized directly."""

    INFERRED = "B"
    """Only secondary markers were localized; the master's corners are inferred."""

    UNSEEN = "C"
    """No marker of the bundle was localized; the bundle's pose is held."""


@dataclass(frozen=True)
class FrameResult:
    """Poses estimated from one frame."""

    timestamp: float
    ref_frame: str
    bundle_poses: dict[int, Pose3D]
    """Smoothed pose (meters) of each bundle seen this frame, keyed by master marker ID."""

    marker_poses: dict[int, Pose3D]
    """Raw pose (meters) of each localized non-master marker, keyed by marker ID."""

    tiers: dict[int, VisibilityTier]
    failures: dict[str, FusionFailure] = field(default_factory=dict)
    """Failures this frame, keyed by "marker_<id>" or "bundle_<master id>"."""


class PoseSink(Protocol):
    """An interface for a consumer of per-frame pose results (e.g., a publisher)."""

    def publish(self, result: FrameResult) -> None:
        """Consume the poses estimated from one frame."""
        ...


@dataclass
class FusionContext:
    """Collaborators and parameters shared by every frame processed by the pipeline."""

    detector: MarkerDetector
    transforms: TransformBuffer
    registry: BundleRegistry
    config: FusionConfig = field(default_factory=FusionConfig)
    sink: PoseSink | None = None


@dataclass
class BundleTrack:
    """Per-bundle tracking state owned by the orchestrator."""

    bundle: BundleDefinition
    history: PoseHistory
    seen_this_frame: bool = False
    master_visible_this_frame: bool = False
    tier: VisibilityTier = VisibilityTier.UNSEEN
    visible_ids: list[int] = field(default_factory=list)
    last_pose: Pose3D | None = None
    """Most recent smoothed pose (bundle units, cloud frame); held while the bundle is unseen."""

    def reset_frame(self) -> None:
        """Clear all visibility flags before a new frame is processed."""
        self.seen_this_frame = False
        self.master_visible_this_frame = False
        self.tier = VisibilityTier.UNSEEN
        self.visible_ids = []


class PoseFusionOrchestrator:
    """Drives marker localization, master corner inference, and smoothing for each frame."""

    def __init__(self, context: FusionContext) -> None:
        """Initialize one track per registered bundle."""
        self.context = context
        config = context.config
        self.refiner = PoseRefiner(
            units_per_meter=config.units_per_meter,
            inlier_threshold=config.plane_inlier_threshold,
            ransac_iterations=config.ransac_iterations,
            marker_size_m=config.marker_size_cm / 100.0,
            size_tolerance=config.marker_size_tolerance,
        )
        self.tracks: dict[int, BundleTrack] = {
            bundle.master_id: BundleTrack(bundle, PoseHistory(config.history_size))
            for bundle in context.registry
        }

    @classmethod
    def from_config(
        cls,
        config: FusionConfig,
        detector: MarkerDetector,
        transforms: TransformBuffer,
        sink: PoseSink | None = None,
    ) -> PoseFusionOrchestrator:
        """Construct an orchestrator tracking the bundles listed in the given configuration.

        :raises ConfigLoadError: If any bundle file cannot be loaded
        """
        registry = BundleRegistry.load_bundles(config.bundle_files)
        return cls(FusionContext(detector, transforms, registry, config, sink))

    @property
    def last_poses(self) -> dict[int, Pose3D]:
        """Retrieve the last smoothed pose (meters, cloud frame) of every bundle ever seen."""
        scale = 1.0 / self.context.config.units_per_meter
        return {
            master_id: track.last_pose.scale_translation(scale)
            for master_id, track in self.tracks.items()
            if track.last_pose is not None
        }

    def process_frame(
        self,
        image: Any,
        cloud: OrganizedPointcloud,
        timestamp: float,
    ) -> FrameResult:
        """Estimate the pose of every bundle visible in one frame.

        :param image: Camera image in which markers are detected (pixel-aligned with the cloud)
        :param cloud: Organized pointcloud captured with the image
        :param timestamp: Capture time (seconds) of the frame
        :return: Smoothed bundle poses and raw marker poses estimated from the frame
        """
        for track in self.tracks.values():
            track.reset_frame()

        failures: dict[str, FusionFailure] = {}
        marker_poses = self._localize_markers(image, cloud, timestamp, failures)

        bundle_poses: dict[int, Pose3D] = {}
        for master_id, track in self.tracks.items():
            if not track.seen_this_frame:
                continue

            estimate = self._estimate_bundle_pose(track, marker_poses, cloud.frame, timestamp)
            if estimate.output is None:
                log_warning(f"Bundle {master_id}: {estimate.message}")
                failures[f"bundle_{master_id}"] = estimate.failure
                track.seen_this_frame = False
                continue

            track.last_pose = track.history.update(estimate.output)
            bundle_poses[master_id] = track.last_pose
            self.context.transforms.set_transform(
                marker_frame_name(master_id),
                track.last_pose.scale_translation(1.0 / self.context.config.units_per_meter),
                timestamp,
            )

        result = self._build_result(bundle_poses, marker_poses, cloud.frame, timestamp, failures)
        if self.context.sink is not None:
            self.context.sink.publish(result)
        return result

    def _localize_markers(
        self,
        image: Any,
        cloud: OrganizedPointcloud,
        timestamp: float,
        failures: dict[str, FusionFailure],
    ) -> dict[int, Pose3D]:
        """Localize each detected marker and update the visibility flags of its bundles.

        :return: Map from marker ID to its pose (bundle units, cloud frame)
        """
        registry = self.context.registry
        meters_per_unit = 1.0 / self.context.config.units_per_meter
        marker_poses: dict[int, Pose3D] = {}

        for detection in self.context.detector.detect(image):
            if detection.id < 0:
                continue

            observation = MarkerObservation.from_detection(detection, cloud)
            estimate = self.refiner.refine(
                observation.corners,
                observation.candidate_points,
                frame=cloud.frame,
            )
            if estimate.output is None:
                # A marker that can't be localized doesn't make its bundles (or master) visible
                log_warning(f"Marker {detection.id}: {estimate.message}")
                failures[f"marker_{detection.id}"] = estimate.failure
                continue

            marker_poses[detection.id] = estimate.output
            self.context.transforms.set_transform(
                marker_frame_name(detection.id),
                estimate.output.scale_translation(meters_per_unit),
                timestamp,
            )

            for bundle in registry.bundles_containing(detection.id):
                track = self.tracks[bundle.master_id]
                track.seen_this_frame = True
                track.visible_ids.append(detection.id)
                if detection.id == bundle.master_id:
                    track.master_visible_this_frame = True

        return marker_poses

    def _estimate_bundle_pose(
        self,
        track: BundleTrack,
        marker_poses: dict[int, Pose3D],
        cloud_frame: str,
        timestamp: float,
    ) -> Estimate[Pose3D]:
        """Estimate the unsmoothed pose of a bundle seen in the current frame."""
        bundle = track.bundle
        if track.master_visible_this_frame:
            track.tier = VisibilityTier.MASTER_VISIBLE
            return Estimate.ok(marker_poses[bundle.master_id])

        track.tier = VisibilityTier.INFERRED
        config = self.context.config
        inferred = infer_master_corners(
            bundle,
            track.visible_ids,
            self.context.transforms,
            cloud_frame,
            units_per_meter=config.units_per_meter,
            when=timestamp,
            timeout_s=config.inference_timeout_s,
        )
        if inferred.output is None:
            return Estimate.fail(inferred.failure, inferred.message)

        corners = inferred.output
        corner_points = np.vstack([c.to_array() for c in corners])
        return self.refiner.refine(corners, corner_points, frame=cloud_frame)

    def _build_result(
        self,
        bundle_poses: dict[int, Pose3D],
        marker_poses: dict[int, Pose3D],
        cloud_frame: str,
        timestamp: float,
        failures: dict[str, FusionFailure],
    ) -> FrameResult:
        """Convert the frame's poses into meters and (if configured) into the output frame."""
        config = self.context.config
        meters_per_unit = 1.0 / config.units_per_meter

        ref_frame = cloud_frame
        cloud_to_output: Pose3D | None = None
        if config.output_frame is not None and config.output_frame != cloud_frame:
            try:
                cloud_to_output = self.context.transforms.lookup_transform(
                    cloud_frame,
                    config.output_frame,
                    when=timestamp,
                    timeout_s=config.output_timeout_s,
                )
                ref_frame = config.output_frame
            except TransformUnavailableError as error:
                log_error(f"Reporting poses in '{cloud_frame}': {error}")

        def to_output(pose: Pose3D) -> Pose3D:
            pose_m = pose.scale_translation(meters_per_unit)
            return pose_m if cloud_to_output is None else cloud_to_output @ pose_m

        registry = self.context.registry
        return FrameResult(
            timestamp=timestamp,
            ref_frame=ref_frame,
            bundle_poses={i: to_output(p) for i, p in bundle_poses.items()},
            marker_poses={
                i: to_output(p) for i, p in marker_poses.items() if not registry.is_master(i)
            },
            tiers={master_id: track.tier for master_id, track in self.tracks.items()},
            failures=failures,
        )
