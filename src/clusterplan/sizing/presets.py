"""Cluster-size presets.

Each preset names a coordinator instance type, a worker instance type and
a worker count.  Three families exist:

* general-purpose x86 (``r7i``): ``test`` through ``xxlarge``
* ARM with local NVMe for the SSD data cache (``r7gd``): ``graviton-*``
* cost-optimized, many small workers: ``cost-optimized-*``

One alias exists: ``default`` = ``medium``.

Explicit overrides always take precedence over preset defaults and are
independent of each other.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import UnknownPresetError
from .model import ClusterTopology
from .profiles import InstanceProfile, lookup

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterPreset:
    """Default topology for a named cluster size."""

    coordinator_type: str
    worker_type: str
    worker_count: int
    description: str = ""


# ---------------------------------------------------------------------------
# Preset defaults
# ---------------------------------------------------------------------------
# The coordinator only plans and schedules; it is sized to hold query
# bookkeeping for the worker fleet, not to hold data.

PRESETS: dict[str, ClusterPreset] = {
    # x86 (Intel r7i)
    "test": ClusterPreset("r7i.xlarge", "r7i.xlarge", 1, "1x r7i.xlarge, quick testing"),
    "small": ClusterPreset("r7i.2xlarge", "r7i.2xlarge", 2, "2x r7i.2xlarge, small demos"),
    "medium": ClusterPreset("r7i.4xlarge", "r7i.8xlarge", 4, "4x r7i.8xlarge, benchmarks"),
    "large": ClusterPreset("r7i.4xlarge", "r7i.16xlarge", 4, "4x r7i.16xlarge, large benchmarks"),
    "xlarge": ClusterPreset("r7i.8xlarge", "r7i.16xlarge", 8, "8x r7i.16xlarge, high performance"),
    "xxlarge": ClusterPreset(
        "r7i.8xlarge", "r7i.24xlarge", 8, "8x r7i.24xlarge, maximum performance"
    ),
    # ARM (Graviton r7gd with NVMe SSD cache)
    "graviton-small": ClusterPreset(
        "r7g.2xlarge", "r7gd.2xlarge", 2, "2x r7gd.2xlarge, 64 GB + 474 GB NVMe"
    ),
    "graviton-medium": ClusterPreset(
        "r7g.4xlarge", "r7gd.4xlarge", 4, "4x r7gd.4xlarge, 128 GB + 950 GB NVMe"
    ),
    "graviton-large": ClusterPreset(
        "r7g.4xlarge", "r7gd.8xlarge", 4, "4x r7gd.8xlarge, 256 GB + 1.9 TB NVMe"
    ),
    "graviton-xlarge": ClusterPreset(
        "r7g.8xlarge", "r7gd.16xlarge", 8, "8x r7gd.16xlarge, 512 GB + 3.8 TB NVMe"
    ),
    # Cost-optimized (best $/benchmark)
    "cost-optimized-small": ClusterPreset(
        "r7i.4xlarge", "r7i.2xlarge", 32, "32x r7i.2xlarge, lowest cost per run"
    ),
    "cost-optimized-medium": ClusterPreset(
        "r7i.4xlarge", "r7i.4xlarge", 16, "16x r7i.4xlarge, low cost per run"
    ),
}

# Alias
PRESETS["default"] = PRESETS["medium"]


def get_preset(name: str) -> ClusterPreset:
    """Return the preset registered under *name*.

    Raises:
        UnknownPresetError: If *name* is not registered
    """
    preset = PRESETS.get(name)
    if preset is None:
        raise UnknownPresetError(name, sorted(PRESETS))
    return preset


def resolve_topology(
    preset_name: str,
    worker_count: int | None = None,
    worker_type: str | None = None,
    coordinator_type: str | None = None,
    catalog: Mapping[str, InstanceProfile] | None = None,
) -> ClusterTopology:
    """Expand a preset plus optional overrides into a concrete topology.

    Args:
        preset_name: Registered preset name (see ``PRESETS``)
        worker_count: Override number of workers
        worker_type: Override worker instance type
        coordinator_type: Override coordinator instance type
        catalog: Profile catalog (defaults to the static table)

    Returns:
        ClusterTopology with resolved profiles

    Raises:
        UnknownPresetError: If the preset is not registered
        UnknownProfileError: If an instance type is not in the catalog
    """
    preset = get_preset(preset_name)

    resolved_coordinator = coordinator_type or preset.coordinator_type
    resolved_worker = worker_type or preset.worker_type
    resolved_count = worker_count if worker_count is not None else preset.worker_count

    overrides = []
    if worker_count is not None:
        overrides.append(f"workers={worker_count}")
    if worker_type:
        overrides.append(f"worker_type={worker_type}")
    if coordinator_type:
        overrides.append(f"coordinator_type={coordinator_type}")
    if overrides:
        log.info("Preset %s overridden: %s", preset_name, ", ".join(overrides))

    return ClusterTopology(
        coordinator_profile=lookup(resolved_coordinator, catalog),
        worker_profile=lookup(resolved_worker, catalog),
        worker_count=resolved_count,
        preset=preset_name,
    )
