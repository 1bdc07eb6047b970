"""Unit tests for loading the tracker configuration."""

from pathlib import Path

import pytest

from marker_bundles.errors import ConfigLoadError
from marker_bundles.io import FusionConfig, load_yaml_data

CONFIG_DIR = Path(__file__).parent.parent / "test_data" / "configs"


def test_config_defaults() -> None:
    """Verify the default parameters of the fusion pipeline."""
    config = FusionConfig()

    assert config.output_frame is None
    assert config.units_per_meter == 100.0
    assert config.plane_inlier_threshold == 0.005
    assert config.history_size == 10
    assert config.inference_timeout_s == 0.1
    assert config.output_timeout_s == 1.0
    assert config.marker_size_cm == 4.4
    assert config.marker_size_tolerance == 0.25


def test_config_from_yaml_resolves_bundle_paths() -> None:
    """Verify that bundle files are resolved relative to the configuration file."""
    # Act - Load the example configuration
    config = FusionConfig.from_yaml(CONFIG_DIR / "tracker.yaml")

    # Assert - Expect overridden values, defaults elsewhere, and an existing bundle file
    assert config.output_frame == "base_link"
    assert config.ransac_iterations == 200
    assert config.history_size == 5
    assert config.inference_timeout_s == 0.1
    assert len(config.bundle_files) == 1
    assert config.bundle_files[0].exists()
    assert config.bundle_files[0].name == "board_two_markers.yaml"


@pytest.mark.parametrize("filename", ["unknown_key.yaml", "negative_history.yaml"])
def test_config_from_invalid_yaml_raises(filename: str) -> None:
    """Verify that unknown keys and out-of-range values are rejected."""
    with pytest.raises(ConfigLoadError, match="Invalid tracker configuration"):
        FusionConfig.from_yaml(CONFIG_DIR / filename)


def test_config_is_immutable() -> None:
    """Verify that a loaded configuration cannot be modified."""
    config = FusionConfig()
    with pytest.raises(ValueError):
        config.history_size = 3  # type: ignore[misc]


def test_load_yaml_data_requires_keys(tmp_path: Path) -> None:
    """Verify that a missing required key raises a ConfigLoadError."""
    # Arrange - Write a YAML file lacking the "markers" key
    yaml_path = tmp_path / "partial.yaml"
    yaml_path.write_text("master_id: 3\n")

    # Act/Assert - Expect the missing key to be named in the error
    assert load_yaml_data(yaml_path, required_keys={"master_id"}) == {"master_id": 3}
    with pytest.raises(ConfigLoadError, match="'markers'"):
        load_yaml_data(yaml_path, required_keys={"master_id", "markers"})


def test_load_yaml_data_requires_mapping(tmp_path: Path) -> None:
    """Verify that required keys can only be checked in a top-level mapping."""
    yaml_path = tmp_path / "list.yaml"
    yaml_path.write_text("- 1\n- 2\n")

    assert load_yaml_data(yaml_path) == [1, 2]
    with pytest.raises(ConfigLoadError, match="mapping"):
        load_yaml_data(yaml_path, required_keys={"master_id"})
