"""Configuration loader for clusterplan."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .schema import DeploymentConfig


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when configuration file is not found."""

    pass


class ConfigParseError(ConfigError):
    """Raised when configuration file cannot be parsed."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dictionary.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary containing parsed YAML

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails or the top level is not a mapping
    """
    if not path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            content = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Failed to parse YAML: {e}")  # noqa: B904

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigParseError(f"Expected a mapping at the top level of {path}")
    return content


def validate_config(data: dict[str, Any]) -> DeploymentConfig:
    """Validate a raw config dict, flattening pydantic errors into one message.

    Raises:
        ConfigValidationError: If validation fails
    """
    try:
        return DeploymentConfig.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        error_messages = []
        for err in errors:
            loc = ".".join(str(x) for x in err["loc"]) or "<root>"
            msg = err["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(  # noqa: B904
            "Configuration validation failed:\n" + "\n".join(error_messages),
            errors=[dict(e) for e in errors],  # type: ignore[call-overload]
        )


def load_config(path: str | Path) -> DeploymentConfig:
    """Load and validate deployment configuration from file.

    Args:
        path: Path to configuration YAML file

    Returns:
        Validated DeploymentConfig object

    Raises:
        ConfigFileNotFoundError: If file doesn't exist
        ConfigParseError: If YAML parsing fails
        ConfigValidationError: If validation fails
    """
    return validate_config(load_yaml(Path(path)))


def save_config(config: DeploymentConfig, path: str | Path) -> None:
    """Save configuration to YAML file.

    Args:
        config: DeploymentConfig object
        path: Path to save YAML file
    """
    path = Path(path)
    data = config.model_dump(mode="json", exclude_defaults=False)

    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)


def generate_default_config(
    name: str,
    preset: str = "medium",
    scale_factor: int = 100,
    discovery_address: str = "",
) -> DeploymentConfig:
    """Generate a default configuration with common values pre-filled.

    This is used by `clusterplan init` to create a starter configuration.

    Args:
        name: Deployment name (required)
        preset: Cluster-size preset
        scale_factor: Benchmark scale factor
        discovery_address: Coordinator address (empty = schema default)

    Returns:
        DeploymentConfig with defaults
    """
    config_dict: dict[str, Any] = {
        "name": name,
        "description": f"clusterplan deployment: {name}",
        "version": 1,
        "preset": preset,
        "scale_factor": scale_factor,
    }
    if discovery_address:
        config_dict["endpoints"] = {"discovery_address": discovery_address}

    return validate_config(config_dict)


def generate_example_config_yaml(
    name: str = "my-cluster", preset: str = "medium", scale_factor: int = 100
) -> str:
    """Generate example configuration YAML with comments.

    Only the fields a user normally changes are uncommented; every other
    option is shown commented-out with its default.

    Returns:
        String containing commented YAML configuration
    """
    return f"""# clusterplan configuration
# ========================
# Describes one coordinator + N workers cluster and the benchmark it runs.
# clusterplan derives per-node memory, concurrency and cache settings from
# the instance types and scale factor, then renders node configuration.
#
# LEGEND:
#   Uncommented fields  = REQUIRED or explicitly set values
#   # field: value      = Available option with its DEFAULT value.

# REQUIRED: Unique name for this deployment
name: {name}

# description: ""

# Cluster-size preset (see 'clusterplan presets'):
#   x86:  test, small, medium, large, xlarge, xxlarge
#   ARM:  graviton-small, graviton-medium, graviton-large, graviton-xlarge
#   Cost: cost-optimized-small, cost-optimized-medium
preset: {preset}

# TPC-H scale factor: 100 | 1000 | 3000
scale_factor: {scale_factor}

## Overrides -- each replaces only the matching preset default
# cluster:
#   worker_count: 8
#   worker_type: r7i.8xlarge
#   coordinator_type: r7i.4xlarge

## Coordinator addressing written into every node's config.properties
# endpoints:
#   discovery_address: coordinator   # Host or IP workers announce to
#   http_port: 8080
#   internal_address: ""             # Empty = same as discovery_address
#   environment: production
#   location: ""

## Data cache on workers without local NVMe (0 = no cache)
# storage:
#   network_volume_gb: 0

## Instance types missing from the built-in catalog ('clusterplan profiles')
# profiles:
#   - name: m7i.8xlarge
#     vcpu_count: 32
#     total_ram_gb: 128
#     ephemeral_storage_gb: 0
#     architecture: x86_64           # x86_64 | arm64
#     hourly_cost: 1.6128

# output:
#   directory: ./clusterplan-output
"""
