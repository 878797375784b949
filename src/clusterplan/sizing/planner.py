"""Resource allocation planning for coordinator and worker nodes.

Turns an instance profile and a workload into a :class:`ResourcePlan`
that partitions node memory between the OS, the runtime container, query
execution and I/O buffers, and picks a task concurrency and cache size.
The algorithm branches on role:

* **Worker** (native runtime) -- the container limit and runtime memory
  come from a RAM tier (see ``policy.WORKER_MEMORY_TIERS``).  All runtime
  memory goes to query execution; the native runtime pushes back on
  internal allocations instead of holding a static reservation.
  Concurrency follows the vCPU count.  Nodes with local NVMe (or an
  attached network volume) get an SSD data cache.
* **Coordinator** (managed runtime) -- 90 % of usable RAM is heap, 60 %
  of the heap is query memory and the rest is explicit headroom.  The
  coordinator advertises the cluster-wide query memory ceiling, so it
  needs the topology and a worker plan.

Every plan is checked against the safety invariants before it is
returned.  A violation raises :class:`PlanInvariantViolation`; plans are
never clamped into shape after the fact.

Usage::

    from clusterplan.sizing.planner import plan_cluster
    cluster = plan_cluster(topology, scale_factor=1000)
"""

from __future__ import annotations

import logging
from dataclasses import replace

from . import policy
from .errors import MissingClusterContextError, PlanInvariantViolation
from .model import ClusterPlan, ClusterTopology, ResourcePlan, Role, WorkloadParameters
from .profiles import InstanceProfile

log = logging.getLogger(__name__)


def largest_power_of_two(n: int) -> int:
    """Return the largest power of two <= *n* (1 for n < 2)."""
    p = 1
    while p * 2 <= n:
        p *= 2
    return p


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def system_reserved_gb(total_ram_gb: int) -> int:
    """Memory withheld from all application use: 5 % of RAM, capped at 2 GB."""
    return min(policy.round_pct(total_ram_gb, policy.SYSTEM_RESERVED_PCT), policy.SYSTEM_RESERVED_CAP_GB)


def buffer_memory_gb(query_memory_gb: int, scale_factor: int) -> int:
    return min(
        policy.round_pct(query_memory_gb, policy.BUFFER_PCT),
        policy.buffer_cap_gb(scale_factor),
    )


def cache_size_gb(ephemeral_storage_gb: int, network_volume_gb: int = 0) -> tuple[int, str | None]:
    """Size the worker SSD data cache.

    Local NVMe takes precedence over a network volume.  With neither the
    cache is disabled (size 0).

    Returns:
        ``(cache_size_gb, backing)`` where backing is the policy name or None
    """
    if ephemeral_storage_gb > 0:
        cache_policy, storage_gb = policy.NVME_CACHE, ephemeral_storage_gb
    elif network_volume_gb > 0:
        cache_policy, storage_gb = policy.NETWORK_VOLUME_CACHE, network_volume_gb
    else:
        return 0, None

    size = min(policy.round_pct(storage_gb, cache_policy.storage_pct), cache_policy.cap_gb)
    return max(size, policy.MIN_CACHE_GB), cache_policy.backing


def worker_task_concurrency(vcpu_count: int) -> int:
    concurrency = largest_power_of_two(vcpu_count)
    return max(policy.MIN_TASK_CONCURRENCY, min(concurrency, policy.MAX_TASK_CONCURRENCY))


def coordinator_task_concurrency(vcpu_count: int, runtime_memory_gb: int, scale_factor: int) -> int:
    """Concurrency for the coordinator.

    Starts at vCPU x 4 (x 6 for large scale factors), capped at one task
    per 2 GB of heap and at 64.  The floor of 8 wins over the memory cap
    on very small heaps.
    """
    start = vcpu_count * policy.coordinator_concurrency_multiplier(scale_factor)
    ceiling = min(runtime_memory_gb // policy.COORDINATOR_GB_PER_TASK, policy.MAX_TASK_CONCURRENCY)
    bounded = max(policy.MIN_TASK_CONCURRENCY, min(start, ceiling))
    return largest_power_of_two(bounded)


def check_invariants(plan: ResourcePlan, profile: InstanceProfile) -> list[str]:
    """Return a description of every invariant *plan* breaks (empty if safe)."""
    violations: list[str] = []
    total = profile.total_ram_gb

    if plan.system_reserved_gb + plan.runtime_memory_gb > total:
        violations.append(
            f"system_reserved_gb ({plan.system_reserved_gb}) + runtime_memory_gb "
            f"({plan.runtime_memory_gb}) exceeds total_ram_gb ({total})"
        )
    if plan.query_memory_gb > plan.runtime_memory_gb:
        violations.append(
            f"query_memory_gb ({plan.query_memory_gb}) exceeds runtime_memory_gb "
            f"({plan.runtime_memory_gb})"
        )
    if plan.container_memory_limit_gb > total:
        violations.append(
            f"container_memory_limit_gb ({plan.container_memory_limit_gb}) exceeds "
            f"total_ram_gb ({total})"
        )
    if plan.container_memory_limit_gb < plan.runtime_memory_gb:
        violations.append(
            f"container_memory_limit_gb ({plan.container_memory_limit_gb}) is below "
            f"runtime_memory_gb ({plan.runtime_memory_gb})"
        )
    if not (
        is_power_of_two(plan.task_concurrency)
        and policy.MIN_TASK_CONCURRENCY <= plan.task_concurrency <= policy.MAX_TASK_CONCURRENCY
    ):
        violations.append(
            f"task_concurrency ({plan.task_concurrency}) is not a power of two in "
            f"[{policy.MIN_TASK_CONCURRENCY}, {policy.MAX_TASK_CONCURRENCY}]"
        )
    if plan.buffer_memory_gb > plan.query_memory_gb:
        violations.append(
            f"buffer_memory_gb ({plan.buffer_memory_gb}) exceeds query_memory_gb "
            f"({plan.query_memory_gb})"
        )
    return violations


def _verified(plan: ResourcePlan, profile: InstanceProfile) -> ResourcePlan:
    violations = check_invariants(plan, profile)
    if violations:
        raise PlanInvariantViolation(profile.name, violations)
    return plan


def plan(
    profile: InstanceProfile,
    workload: WorkloadParameters,
    cluster_context: ClusterTopology | None = None,
    worker_plan: ResourcePlan | None = None,
) -> ResourcePlan:
    """Compute the resource plan for one node role.

    Args:
        profile: Hardware facts for the node
        workload: Scale factor and role
        cluster_context: Cluster topology (required for the coordinator)
        worker_plan: Precomputed plan for the topology's worker profile.
            When omitted the coordinator branch plans the worker itself.

    Returns:
        A ResourcePlan that satisfies every invariant

    Raises:
        MissingClusterContextError: Coordinator requested without a topology
        PlanInvariantViolation: The computed plan is unsafe
    """
    if workload.role is Role.WORKER:
        return _plan_worker(profile, workload)
    return _plan_coordinator(profile, workload, cluster_context, worker_plan)


def _plan_worker(profile: InstanceProfile, workload: WorkloadParameters) -> ResourcePlan:
    reserved = system_reserved_gb(profile.total_ram_gb)
    tier = policy.worker_memory_tier(profile.total_ram_gb)
    container, runtime = tier.split(profile.total_ram_gb)
    query = runtime
    cache, backing = cache_size_gb(profile.ephemeral_storage_gb, workload.network_volume_gb)

    result = ResourcePlan(
        role=Role.WORKER,
        profile_name=profile.name,
        scale_factor=workload.scale_factor,
        system_reserved_gb=reserved,
        runtime_memory_gb=runtime,
        query_memory_gb=query,
        buffer_memory_gb=buffer_memory_gb(query, workload.scale_factor),
        container_memory_limit_gb=container,
        task_concurrency=worker_task_concurrency(profile.vcpu_count),
        cache_size_gb=cache,
        memory_tier=tier.name,
        cache_backing=backing,
        memory_pool_abort_capacity_gb=policy.memory_pool_abort_capacity_gb(
            workload.scale_factor, query
        ),
    )
    _verified(result, profile)

    log.info(
        "Worker plan for %s (SF%d, tier=%s): container=%dGB, runtime=%dGB, query=%dGB, "
        "buffer=%dGB, concurrency=%d, cache=%dGB",
        profile.name,
        workload.scale_factor,
        tier.name,
        result.container_memory_limit_gb,
        result.runtime_memory_gb,
        result.query_memory_gb,
        result.buffer_memory_gb,
        result.task_concurrency,
        result.cache_size_gb,
    )
    return result


def _plan_coordinator(
    profile: InstanceProfile,
    workload: WorkloadParameters,
    cluster_context: ClusterTopology | None,
    worker_plan: ResourcePlan | None,
) -> ResourcePlan:
    if cluster_context is None:
        raise MissingClusterContextError(
            f"Coordinator plan for {profile.name} needs the cluster topology: "
            "the coordinator advertises the cluster-wide query memory ceiling"
        )

    if worker_plan is None:
        worker_plan = _plan_worker(
            cluster_context.worker_profile,
            replace(workload, role=Role.WORKER),
        )

    reserved = system_reserved_gb(profile.total_ram_gb)
    usable = profile.total_ram_gb - reserved
    runtime = policy.round_pct(usable, policy.COORDINATOR_RUNTIME_PCT)
    query = policy.round_pct(runtime, policy.COORDINATOR_QUERY_PCT)
    cluster_total = query + cluster_context.worker_count * worker_plan.query_memory_gb

    result = ResourcePlan(
        role=Role.COORDINATOR,
        profile_name=profile.name,
        scale_factor=workload.scale_factor,
        system_reserved_gb=reserved,
        runtime_memory_gb=runtime,
        query_memory_gb=query,
        buffer_memory_gb=buffer_memory_gb(query, workload.scale_factor),
        container_memory_limit_gb=usable,
        task_concurrency=coordinator_task_concurrency(
            profile.vcpu_count, runtime, workload.scale_factor
        ),
        heap_headroom_gb=runtime - query,
        cluster_total_query_memory_gb=cluster_total,
    )
    _verified(result, profile)

    log.info(
        "Coordinator plan for %s (SF%d, %d x %s): heap=%dGB, query=%dGB, headroom=%dGB, "
        "cluster query memory=%dGB, concurrency=%d",
        profile.name,
        workload.scale_factor,
        cluster_context.worker_count,
        cluster_context.worker_profile.name,
        result.runtime_memory_gb,
        result.query_memory_gb,
        result.heap_headroom_gb,
        cluster_total,
        result.task_concurrency,
    )
    return result


def plan_cluster(
    topology: ClusterTopology,
    scale_factor: int,
    network_volume_gb: int = 0,
) -> ClusterPlan:
    """Plan both roles of *topology*: the worker first, then the coordinator."""
    worker = plan(
        topology.worker_profile,
        WorkloadParameters(scale_factor, Role.WORKER, network_volume_gb),
    )
    coordinator = plan(
        topology.coordinator_profile,
        WorkloadParameters(scale_factor, Role.COORDINATOR, network_volume_gb),
        cluster_context=topology,
        worker_plan=worker,
    )
    return ClusterPlan(topology=topology, worker=worker, coordinator=coordinator)
