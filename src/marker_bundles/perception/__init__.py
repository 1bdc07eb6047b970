"""Import classes for fusing fiducial marker observations into bundle poses."""

from .corner_inference import infer_master_corners as infer_master_corners
from .observations import MarkerDetection as MarkerDetection
from .observations import MarkerDetector as MarkerDetector
from .observations import MarkerObservation as MarkerObservation
from .pose_fusion import BundleTrack as BundleTrack
from .pose_fusion import FrameResult as FrameResult
from .pose_fusion import FusionContext as FusionContext
from .pose_fusion import PoseFusionOrchestrator as PoseFusionOrchestrator
from .pose_fusion import PoseSink as PoseSink
from .pose_fusion import VisibilityTier as VisibilityTier
from .pose_refiner import PoseRefiner as PoseRefiner
from .temporal_smoother import PoseHistory as PoseHistory
from .temporal_smoother import approximate_geometric_median as approximate_geometric_median
