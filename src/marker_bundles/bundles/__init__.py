"""Import classes representing bundles of fiducial markers."""

from .marker_bundle import BundleDefinition as BundleDefinition
from .marker_bundle import BundleRegistry as BundleRegistry
