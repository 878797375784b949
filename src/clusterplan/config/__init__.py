"""clusterplan configuration module."""

from .loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    generate_default_config,
    generate_example_config_yaml,
    load_config,
    save_config,
    validate_config,
)
from .schema import (
    ClusterOverrides,
    DeploymentConfig,
    EndpointsConfig,
    OutputConfig,
    ProfileConfig,
    StorageConfig,
)

__all__ = [
    # Config classes
    "DeploymentConfig",
    "ClusterOverrides",
    "EndpointsConfig",
    "OutputConfig",
    "ProfileConfig",
    "StorageConfig",
    # Loader functions
    "load_config",
    "save_config",
    "validate_config",
    "generate_default_config",
    "generate_example_config_yaml",
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
]
