"""Value types shared by the topology resolver, planner and renderer."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from .policy import validate_scale_factor
from .profiles import InstanceProfile


class Role(str, Enum):
    """Node role within a cluster."""

    COORDINATOR = "coordinator"
    WORKER = "worker"


@dataclass(frozen=True)
class WorkloadParameters:
    """Per-deployment workload input.

    ``network_volume_gb`` is the size of a network-attached volume the
    worker may use for its data cache when it has no local NVMe.
    """

    scale_factor: int
    role: Role
    network_volume_gb: int = 0

    def __post_init__(self) -> None:
        validate_scale_factor(self.scale_factor)
        object.__setattr__(self, "role", Role(self.role))
        if self.network_volume_gb < 0:
            raise ValueError(f"network_volume_gb must be >= 0, got {self.network_volume_gb}")


@dataclass(frozen=True)
class ClusterTopology:
    """Concrete cluster shape resolved from a preset plus overrides."""

    coordinator_profile: InstanceProfile
    worker_profile: InstanceProfile
    worker_count: int
    preset: str = ""

    def __post_init__(self) -> None:
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {self.worker_count}")

    @property
    def node_count(self) -> int:
        return self.worker_count + 1

    @property
    def hourly_cost(self) -> Decimal:
        """Approximate on-demand cost of the whole cluster (informational)."""
        return (
            self.coordinator_profile.hourly_cost
            + self.worker_profile.hourly_cost * self.worker_count
        )


@dataclass(frozen=True)
class ResourcePlan:
    """Resource allocation for one node role.  All sizes in GB."""

    role: Role
    profile_name: str
    scale_factor: int
    system_reserved_gb: int
    runtime_memory_gb: int
    query_memory_gb: int
    buffer_memory_gb: int
    container_memory_limit_gb: int
    task_concurrency: int
    cache_size_gb: int = 0
    heap_headroom_gb: int | None = None
    cluster_total_query_memory_gb: int | None = None
    memory_tier: str = ""
    cache_backing: str | None = None
    memory_pool_abort_capacity_gb: int | None = None

    @property
    def cache_enabled(self) -> bool:
        return self.cache_size_gb > 0


@dataclass(frozen=True)
class ClusterPlan:
    """Worker and coordinator plans for one topology, computed in order."""

    topology: ClusterTopology
    worker: ResourcePlan
    coordinator: ResourcePlan

    @property
    def cluster_total_query_memory_gb(self) -> int:
        total = self.coordinator.cluster_total_query_memory_gb
        assert total is not None
        return total

    def for_role(self, role: Role) -> ResourcePlan:
        return self.coordinator if Role(role) is Role.COORDINATOR else self.worker
