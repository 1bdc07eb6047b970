"""Define exceptions raised by the marker bundle tracker."""


class MarkerBundlesError(Exception):
    """Base class for errors raised by the marker_bundles package."""


class ConfigLoadError(MarkerBundlesError):
    """An error raised when a bundle definition or tracker configuration cannot be loaded."""


class TransformUnavailableError(MarkerBundlesError):
    """An error raised when a coordinate transform cannot be found before its timeout."""
