"""Define the Pydantic model for the bundle tracker's YAML configuration file."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from marker_bundles.errors import ConfigLoadError
from marker_bundles.io.yaml_utils import load_yaml_data


class FusionConfig(BaseModel):
    """Parameters of the per-frame bundle pose fusion pipeline."""

    marker_size_cm: float = Field(default=4.4, gt=0, description="Marker side length (cm)")
    marker_size_tolerance: float = Field(
        default=0.25,
        gt=0,
        description="Largest relative error in measured marker size before a pose is rejected",
    )
    output_frame: Optional[str] = Field(
        default=None,
        description="Frame in which bundle poses are reported (None = the point cloud's frame)",
    )
    bundle_files: List[Path] = Field(default_factory=list)
    units_per_meter: float = Field(
        default=100.0,
        gt=0,
        description="Length units of the bundle files per meter (100 = centimeters)",
    )
    plane_inlier_threshold: float = Field(default=0.005, gt=0, description="RANSAC threshold (m)")
    ransac_iterations: int = Field(default=1000, ge=1)
    history_size: int = Field(default=10, ge=1, description="Poses kept by the median filter")
    inference_timeout_s: float = Field(default=0.1, ge=0)
    output_timeout_s: float = Field(default=1.0, ge=0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> FusionConfig:
        """Load the tracker configuration from a YAML file.

        Relative bundle file paths are resolved w.r.t. the directory of the configuration file.

        :param yaml_path: Path to the configuration file
        :return: Validated FusionConfig instance
        :raises ConfigLoadError: If the file cannot be read or fails validation
        """
        yaml_data = load_yaml_data(yaml_path) or {}
        try:
            config = cls.model_validate(yaml_data)
        except ValidationError as error:
            msg = f"Invalid tracker configuration in {yaml_path}: {error}"
            raise ConfigLoadError(msg) from error

        resolved = [p if p.is_absolute() else yaml_path.parent / p for p in config.bundle_files]
        return config.model_copy(update={"bundle_files": resolved})
