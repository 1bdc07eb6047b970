"""Define classes to represent rigid bundles of fiducial markers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
from pydantic import ValidationError

from marker_bundles.bundles.schemata import BundleSchema
from marker_bundles.errors import ConfigLoadError
from marker_bundles.io.logging import log_info
from marker_bundles.io.yaml_utils import load_yaml_data

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from numpy.typing import NDArray


@dataclass(frozen=True)
class BundleDefinition:
    """A rigid set of markers whose master marker defines the bundle's pose."""

    master_id: int
    member_ids: tuple[int, ...]
    """IDs of all markers in the bundle (including the master), in file order."""

    corner_offsets: Mapping[int, NDArray[np.float64]]
    """Map from each marker ID to its four corners (4, 3) in the master frame (bundle units)."""

    source: str = ""

    def __post_init__(self) -> None:
        """Verify the bundle's invariants and freeze its corner data."""
        if self.master_id not in self.member_ids:
            raise ValueError(f"Master marker {self.master_id} is not in bundle {self.member_ids}.")

        frozen_offsets: dict[int, NDArray[np.float64]] = {}
        for marker_id in self.member_ids:
            corners = np.array(self.corner_offsets[marker_id], dtype=np.float64)
            if corners.shape != (4, 3):
                msg = f"Marker {marker_id} needs corners of shape (4, 3), got {corners.shape}"
                raise ValueError(msg)
            corners.setflags(write=False)
            frozen_offsets[marker_id] = corners

        object.__setattr__(self, "corner_offsets", MappingProxyType(frozen_offsets))

    def __contains__(self, marker_id: int) -> bool:
        """Evaluate whether the marker with the given ID belongs to this bundle."""
        return marker_id in self.corner_offsets

    @property
    def secondary_ids(self) -> tuple[int, ...]:
        """Retrieve the IDs of the bundle's non-master markers."""
        return tuple(i for i in self.member_ids if i != self.master_id)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> BundleDefinition:
        """Load a bundle definition from a YAML file.

        :param yaml_path: Path to a YAML file with `master_id` and `markers` keys
        :return: Constructed BundleDefinition
        :raises ConfigLoadError: If the file is missing, malformed, or violates the bundle schema
        """
        yaml_data = load_yaml_data(yaml_path, required_keys={"master_id", "markers"})
        try:
            schema = BundleSchema.model_validate(yaml_data)
        except ValidationError as error:
            raise ConfigLoadError(f"Invalid bundle definition in {yaml_path}: {error}") from error

        return BundleDefinition(
            master_id=schema.master_id,
            member_ids=tuple(marker.id for marker in schema.markers),
            corner_offsets={marker.id: np.array(marker.corners) for marker in schema.markers},
            source=str(yaml_path),
        )


@dataclass(frozen=True)
class BundleRegistry:
    """An immutable, indexed collection of bundle definitions."""

    bundles: tuple[BundleDefinition, ...]
    _by_master_id: Mapping[int, BundleDefinition] = field(init=False, repr=False)
    _by_marker_id: Mapping[int, tuple[BundleDefinition, ...]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Index the bundles by master ID and by member marker ID."""
        by_master: dict[int, BundleDefinition] = {}
        by_marker: dict[int, list[BundleDefinition]] = {}
        for bundle in self.bundles:
            if bundle.master_id in by_master:
                raise ConfigLoadError(f"Multiple bundles share master marker {bundle.master_id}.")
            by_master[bundle.master_id] = bundle
            for marker_id in bundle.member_ids:
                by_marker.setdefault(marker_id, []).append(bundle)

        object.__setattr__(self, "_by_master_id", MappingProxyType(by_master))
        frozen = {marker_id: tuple(bundles) for marker_id, bundles in by_marker.items()}
        object.__setattr__(self, "_by_marker_id", MappingProxyType(frozen))

    def __len__(self) -> int:
        """Retrieve the number of bundles in the registry."""
        return len(self.bundles)

    def __iter__(self) -> Iterator[BundleDefinition]:
        """Provide an iterator over the bundles in load order."""
        return iter(self.bundles)

    @property
    def master_ids(self) -> tuple[int, ...]:
        """Retrieve the master marker ID of each bundle, in load order."""
        return tuple(bundle.master_id for bundle in self.bundles)

    def get(self, master_id: int) -> BundleDefinition:
        """Retrieve the bundle whose master marker has the given ID."""
        return self._by_master_id[master_id]

    def is_master(self, marker_id: int) -> bool:
        """Evaluate whether the given marker is the master of some bundle."""
        return marker_id in self._by_master_id

    def bundles_containing(self, marker_id: int) -> tuple[BundleDefinition, ...]:
        """Retrieve all bundles that include the marker with the given ID."""
        return self._by_marker_id.get(marker_id, ())

    @classmethod
    def load_bundles(cls, paths: Iterable[Path]) -> BundleRegistry:
        """Load a registry of bundles from the given bundle files.

        :raises ConfigLoadError: If any file cannot be loaded (no registry can be built)
        """
        bundles = tuple(BundleDefinition.from_yaml(path) for path in paths)
        registry = BundleRegistry(bundles)
        for bundle in registry:
            log_info(f"Loaded bundle {bundle.master_id} with markers {list(bundle.member_ids)}.")
        return registry
