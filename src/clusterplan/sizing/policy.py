"""Sizing policy: every threshold, percentage and cap the planner uses.

Changing a policy is a one-line edit here.  Percentages are integers so
the planner can do exact integer arithmetic (no float drift between runs).

Worker memory tiers mix two forms of native-overhead deduction: large
nodes use a container fraction minus a fixed overhead (thread stacks and
allocator metadata are closer to a fixed cost), small nodes use plain
percentages.  Both forms were tuned against SF1000/SF3000 runs; neither
has been re-validated against memory-pressure telemetry.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnsupportedScaleFactorError

# ---------------------------------------------------------------------------
# Workload
# ---------------------------------------------------------------------------

# TPC-H scale factors the tier tables have been validated against.
SUPPORTED_SCALE_FACTORS: tuple[int, ...] = (100, 1000, 3000)

# Scale factor at which coordinator concurrency and buffer caps step up.
LARGE_SCALE_FACTOR = 1000


def validate_scale_factor(scale_factor: int) -> int:
    """Return *scale_factor* if supported, else raise UnsupportedScaleFactorError."""
    if isinstance(scale_factor, bool) or scale_factor not in SUPPORTED_SCALE_FACTORS:
        raise UnsupportedScaleFactorError(scale_factor, SUPPORTED_SCALE_FACTORS)
    return scale_factor


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------

SYSTEM_RESERVED_PCT = 5
SYSTEM_RESERVED_CAP_GB = 2

MIN_TASK_CONCURRENCY = 8
MAX_TASK_CONCURRENCY = 64

BUFFER_PCT = 5


@dataclass(frozen=True)
class BufferCap:
    """Upper bound on buffer memory for scale factors >= ``min_scale_factor``."""

    min_scale_factor: int
    cap_gb: int


# Ordered largest first; the first match wins.
BUFFER_CAPS: tuple[BufferCap, ...] = (
    BufferCap(min_scale_factor=3000, cap_gb=100),
    BufferCap(min_scale_factor=1000, cap_gb=64),
    BufferCap(min_scale_factor=0, cap_gb=32),
)


def buffer_cap_gb(scale_factor: int) -> int:
    for cap in BUFFER_CAPS:
        if scale_factor >= cap.min_scale_factor:
            return cap.cap_gb
    return BUFFER_CAPS[-1].cap_gb


# ---------------------------------------------------------------------------
# Coordinator (managed runtime)
# ---------------------------------------------------------------------------

COORDINATOR_RUNTIME_PCT = 90
COORDINATOR_QUERY_PCT = 60
COORDINATOR_CONCURRENCY_PER_VCPU = 4
COORDINATOR_CONCURRENCY_PER_VCPU_LARGE_SF = 6
# One concurrent task per this many GB of runtime memory.
COORDINATOR_GB_PER_TASK = 2


def coordinator_concurrency_multiplier(scale_factor: int) -> int:
    if scale_factor >= LARGE_SCALE_FACTOR:
        return COORDINATOR_CONCURRENCY_PER_VCPU_LARGE_SF
    return COORDINATOR_CONCURRENCY_PER_VCPU


# ---------------------------------------------------------------------------
# Worker (native runtime)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkerMemoryTier:
    """Container/runtime split for workers with at least ``min_ram_gb`` of RAM.

    Exactly one container rule applies: ``container_pct`` of total RAM or a
    fixed ``container_gb``.  The runtime then gets the container minus
    ``overhead_gb``, or ``runtime_pct`` of total RAM for percentage tiers.
    """

    name: str
    min_ram_gb: int
    container_pct: int | None = None
    container_gb: int | None = None
    overhead_gb: int | None = None
    runtime_pct: int | None = None

    def split(self, total_ram_gb: int) -> tuple[int, int]:
        """Return ``(container_memory_limit_gb, runtime_memory_gb)``.

        Both values are ceilings and are floored, so the runtime never
        exceeds the container on small hosts.
        """
        if self.container_gb is not None:
            container = self.container_gb
        else:
            assert self.container_pct is not None
            container = total_ram_gb * self.container_pct // 100

        if self.overhead_gb is not None:
            runtime = container - self.overhead_gb
        else:
            assert self.runtime_pct is not None
            runtime = total_ram_gb * self.runtime_pct // 100
        return container, runtime


# Ordered largest first; the first tier whose threshold the node meets wins.
WORKER_MEMORY_TIERS: tuple[WorkerMemoryTier, ...] = (
    WorkerMemoryTier("ram-480", min_ram_gb=480, container_pct=98, overhead_gb=15),
    WorkerMemoryTier("ram-240", min_ram_gb=240, container_pct=98, overhead_gb=12),
    WorkerMemoryTier("ram-120", min_ram_gb=120, container_pct=97, overhead_gb=7),
    # Held conservative for Q21 hash tables at SF3000 on 64 GB nodes.
    WorkerMemoryTier("ram-60", min_ram_gb=60, container_gb=58, overhead_gb=4),
    WorkerMemoryTier("default", min_ram_gb=0, container_pct=95, runtime_pct=90),
)


def worker_memory_tier(total_ram_gb: int) -> WorkerMemoryTier:
    for tier in WORKER_MEMORY_TIERS:
        if total_ram_gb >= tier.min_ram_gb:
            return tier
    return WORKER_MEMORY_TIERS[-1]


# ---------------------------------------------------------------------------
# Cache (workers only)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CachePolicy:
    """SSD data-cache sizing for one kind of backing storage."""

    backing: str
    storage_pct: int
    cap_gb: int


NVME_CACHE = CachePolicy(backing="nvme", storage_pct=80, cap_gb=1500)
NETWORK_VOLUME_CACHE = CachePolicy(backing="network-volume", storage_pct=50, cap_gb=200)
MIN_CACHE_GB = 10


# ---------------------------------------------------------------------------
# Worker memory arbitration
# ---------------------------------------------------------------------------

# From this scale factor on, workers arbitrate memory globally and abort the
# largest query once a pool is reclaimed down to the abort limit.
GLOBAL_ARBITRATION_MIN_SCALE_FACTOR = 3000
MEMORY_POOL_ABORT_CAPACITY_GB = 40


def memory_pool_abort_capacity_gb(scale_factor: int, query_memory_gb: int) -> int | None:
    """Abort capacity limit for a worker pool, or None when arbitration is off."""
    if scale_factor < GLOBAL_ARBITRATION_MIN_SCALE_FACTOR:
        return None
    return min(MEMORY_POOL_ABORT_CAPACITY_GB, query_memory_gb)


# ---------------------------------------------------------------------------
# Arithmetic helpers
# ---------------------------------------------------------------------------


def round_pct(value: int, pct: int) -> int:
    """Return ``value * pct / 100`` rounded half up, in integer arithmetic."""
    return (value * pct + 50) // 100
