"""Define Pydantic models for validating marker bundle YAML files."""

from __future__ import annotations

from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

XYZ = Tuple[float, float, float]
"""A three-tuple of floats representing a 3D point."""


class BundleMarkerSchema(BaseModel):
    """Schema for one marker in a bundle, with its corners in the master marker's frame."""

    id: int = Field(ge=0)
    corners: Tuple[XYZ, XYZ, XYZ, XYZ]

    model_config = ConfigDict(extra="forbid")


class BundleSchema(BaseModel):
    """Schema for a bundle file: a master marker ID and the bundle's markers."""

    master_id: int = Field(ge=0)
    markers: List[BundleMarkerSchema] = Field(min_length=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_marker_ids(self) -> BundleSchema:
        """Verify that marker IDs are unique and include the master marker."""
        ids = [marker.id for marker in self.markers]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Bundle marker IDs must be unique, got {ids}.")
        if self.master_id not in ids:
            raise ValueError(f"Master marker {self.master_id} is not among the markers {ids}.")
        return self
