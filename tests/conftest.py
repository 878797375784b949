"""Shared fixtures for clusterplan test suite."""

from __future__ import annotations

from dataclasses import replace

import pytest

from clusterplan.config import DeploymentConfig
from clusterplan.render import Endpoints
from clusterplan.sizing import (
    ClusterTopology,
    InstanceProfile,
    Role,
    WorkloadParameters,
    lookup,
    plan,
)


def make_config(**overrides) -> DeploymentConfig:
    """Create a DeploymentConfig with sensible defaults for testing.

    This is the canonical config factory for tests. Prefer this over
    hand-building dicts so that new required fields are handled in one place.
    """
    base: dict = {
        "name": "test-fixture",
        "preset": "medium",
        "scale_factor": 100,
    }
    base.update(overrides)
    return DeploymentConfig(**base)


def make_topology(
    coordinator: str = "r7i.4xlarge", worker: str = "r7i.8xlarge", workers: int = 4
) -> ClusterTopology:
    return ClusterTopology(
        coordinator_profile=lookup(coordinator),
        worker_profile=lookup(worker),
        worker_count=workers,
    )


@pytest.fixture
def default_config() -> DeploymentConfig:
    """A default DeploymentConfig for tests that don't care about specifics."""
    return make_config()


@pytest.fixture
def nvme_worker() -> InstanceProfile:
    """256 GB / 32 vCPU ARM worker with 1.9 TB local NVMe."""
    return lookup("r7gd.8xlarge")


@pytest.fixture
def plain_worker() -> InstanceProfile:
    """256 GB / 32 vCPU x86 worker without local storage."""
    return lookup("r7i.8xlarge")


@pytest.fixture
def coordinator_profile() -> InstanceProfile:
    """128 GB / 16 vCPU coordinator."""
    return lookup("r7i.4xlarge")


@pytest.fixture
def medium_topology() -> ClusterTopology:
    """Coordinator r7i.4xlarge with 4 x r7i.8xlarge workers."""
    return make_topology()


@pytest.fixture
def endpoints() -> Endpoints:
    return Endpoints(discovery_address="10.0.0.10", internal_address="10.0.0.10", node_name="test")


@pytest.fixture
def worker_plan_227(plain_worker):
    """A worker plan whose query memory is 227 GB."""
    base = plan(plain_worker, WorkloadParameters(100, Role.WORKER))
    return replace(base, query_memory_gb=227)
