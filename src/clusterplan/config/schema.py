"""Pydantic models for clusterplan deployment configuration.

A deployment file names a cluster-size preset, the benchmark scale factor
and any overrides.  Everything except ``name`` has a default.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from clusterplan._constants import DEFAULT_HTTP_PORT, DEFAULT_OUTPUT_DIR
from clusterplan.render.renderer import Endpoints
from clusterplan.sizing.model import ClusterPlan, ClusterTopology
from clusterplan.sizing.planner import plan_cluster
from clusterplan.sizing.policy import validate_scale_factor
from clusterplan.sizing.presets import PRESETS, resolve_topology
from clusterplan.sizing.profiles import Architecture, InstanceProfile, build_catalog

# =============================================================================
# Cluster
# =============================================================================


class ClusterOverrides(BaseModel):
    """Explicit overrides of preset defaults.  Unset fields keep the preset value."""

    worker_count: int | None = Field(default=None, ge=1)
    worker_type: str | None = None
    coordinator_type: str | None = None


class ProfileConfig(BaseModel):
    """An instance type that is not in the built-in catalog."""

    name: str
    vcpu_count: int = Field(gt=0)
    total_ram_gb: int = Field(gt=0)
    ephemeral_storage_gb: int = Field(default=0, ge=0)
    architecture: Architecture = Architecture.X86_64
    hourly_cost: Decimal = Decimal("0")

    def to_profile(self) -> InstanceProfile:
        return InstanceProfile(
            name=self.name,
            vcpu_count=self.vcpu_count,
            total_ram_gb=self.total_ram_gb,
            ephemeral_storage_gb=self.ephemeral_storage_gb,
            architecture=self.architecture,
            hourly_cost=self.hourly_cost,
        )


# =============================================================================
# Endpoints, storage, output
# =============================================================================


class EndpointsConfig(BaseModel):
    """Coordinator addressing baked into every node's configuration."""

    discovery_address: str = Field(
        default="coordinator", description="Coordinator host or IP that workers announce to"
    )
    http_port: int = Field(default=DEFAULT_HTTP_PORT, gt=0, lt=65536)
    internal_address: str = ""  # Empty = coordinator uses discovery_address
    environment: str = "production"
    location: str = ""


class StorageConfig(BaseModel):
    """Worker cache storage.

    ``network_volume_gb`` sizes the data cache on workers without local
    NVMe.  0 disables the cache on such workers.
    """

    network_volume_gb: int = Field(default=0, ge=0)


class OutputConfig(BaseModel):
    """Where rendered configuration bundles are written."""

    directory: str = DEFAULT_OUTPUT_DIR


# =============================================================================
# Root
# =============================================================================


class DeploymentConfig(BaseModel):
    """Root configuration for one cluster deployment."""

    name: str = Field(default="", description="Unique name for this deployment (REQUIRED)")
    description: str = ""
    version: int = 1  # Config schema version

    preset: str = "medium"
    scale_factor: int = 100

    cluster: ClusterOverrides = Field(default_factory=ClusterOverrides)
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    profiles: list[ProfileConfig] = Field(default_factory=list)

    @field_validator("scale_factor")
    @classmethod
    def check_scale_factor(cls, v: int) -> int:
        """Reject scale factors the sizing tables were not tuned for."""
        return validate_scale_factor(v)

    @field_validator("preset")
    @classmethod
    def check_preset(cls, v: str) -> str:
        if v not in PRESETS:
            valid = ", ".join(sorted(PRESETS))
            raise ValueError(f"Unknown cluster preset: {v}. Valid presets: {valid}")
        return v

    @model_validator(mode="after")
    def validate_required_fields(self) -> DeploymentConfig:
        """Validate required fields are present."""
        if not self.name:
            raise ValueError("'name' is required")
        return self

    @model_validator(mode="after")
    def validate_instance_types(self) -> DeploymentConfig:
        """Fail at load time if an override names an unknown instance type."""
        catalog = self.get_catalog()
        for field_name in ("worker_type", "coordinator_type"):
            value = getattr(self.cluster, field_name)
            if value is not None and value not in catalog:
                raise ValueError(
                    f"cluster.{field_name}: unknown instance profile {value}. "
                    "Declare it under 'profiles' or pick a catalog entry "
                    "(see 'clusterplan profiles')"
                )
        return self

    def get_catalog(self) -> Mapping[str, InstanceProfile]:
        """Built-in profile catalog plus any profiles declared in this file."""
        return build_catalog(p.to_profile() for p in self.profiles)

    def get_topology(self) -> ClusterTopology:
        """Resolve the preset and overrides into a concrete topology."""
        return resolve_topology(
            self.preset,
            worker_count=self.cluster.worker_count,
            worker_type=self.cluster.worker_type,
            coordinator_type=self.cluster.coordinator_type,
            catalog=self.get_catalog(),
        )

    def get_cluster_plan(self) -> ClusterPlan:
        """Plan worker and coordinator resources for this deployment."""
        return plan_cluster(self.get_topology(), self.scale_factor, self.storage.network_volume_gb)

    def get_endpoints(self) -> Endpoints:
        """Endpoints for rendering, with the node name derived from the deployment."""
        ep = self.endpoints
        return Endpoints(
            discovery_address=ep.discovery_address,
            http_port=ep.http_port,
            internal_address=ep.internal_address or ep.discovery_address,
            node_name=self.name,
            environment=ep.environment,
            location=ep.location,
        )
