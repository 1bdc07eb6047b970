"""Define constants for named coordinate frames."""

DEFAULT_FRAME = "world"
"""Reference frame assumed for poses that don't specify one."""

MARKER_FRAME_PREFIX = "ar_marker_"


def marker_frame_name(marker_id: int) -> str:
    """Construct the name of the reference frame defined by the marker with the given ID."""
    return f"{MARKER_FRAME_PREFIX}{marker_id}"
