"""Instance catalog, cluster presets and resource planning."""

from .errors import (
    MissingClusterContextError,
    PlanInvariantViolation,
    SizingError,
    UnknownPresetError,
    UnknownProfileError,
    UnsupportedScaleFactorError,
)
from .model import ClusterPlan, ClusterTopology, ResourcePlan, Role, WorkloadParameters
from .planner import check_invariants, plan, plan_cluster
from .policy import SUPPORTED_SCALE_FACTORS, validate_scale_factor
from .presets import PRESETS, ClusterPreset, get_preset, resolve_topology
from .profiles import (
    INSTANCE_PROFILES,
    Architecture,
    InstanceProfile,
    build_catalog,
    lookup,
    resolve_profile,
)

__all__ = [
    # Catalog
    "Architecture",
    "InstanceProfile",
    "INSTANCE_PROFILES",
    "build_catalog",
    "lookup",
    "resolve_profile",
    # Presets
    "ClusterPreset",
    "PRESETS",
    "get_preset",
    "resolve_topology",
    # Planning
    "ClusterPlan",
    "ClusterTopology",
    "ResourcePlan",
    "Role",
    "WorkloadParameters",
    "SUPPORTED_SCALE_FACTORS",
    "check_invariants",
    "plan",
    "plan_cluster",
    "validate_scale_factor",
    # Exceptions
    "SizingError",
    "MissingClusterContextError",
    "PlanInvariantViolation",
    "UnknownPresetError",
    "UnknownProfileError",
    "UnsupportedScaleFactorError",
]
