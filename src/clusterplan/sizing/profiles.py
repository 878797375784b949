"""Instance profile catalog.

Maps an EC2 instance type to the hardware facts the planner needs.  The
table is fixed at import time and exposed read-only; deployments that use
hardware not listed here either declare extra profiles in their config
file (see :func:`build_catalog`) or name an explicit fallback via
:func:`resolve_profile`.

Example::

    from clusterplan.sizing.profiles import lookup
    lookup("r7gd.8xlarge").ephemeral_storage_gb   # 1900
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from .errors import UnknownProfileError

log = logging.getLogger(__name__)


class Architecture(str, Enum):
    """Instruction-set architecture of an instance."""

    X86_64 = "x86_64"
    ARM64 = "arm64"


@dataclass(frozen=True)
class InstanceProfile:
    """Hardware facts for one instance type.

    ``ephemeral_storage_gb`` is local NVMe instance storage; 0 means the
    instance has none.  ``hourly_cost`` is on-demand USD and is never used
    for planning.
    """

    name: str
    vcpu_count: int
    total_ram_gb: int
    ephemeral_storage_gb: int = 0
    architecture: Architecture = Architecture.X86_64
    hourly_cost: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.vcpu_count <= 0:
            raise ValueError(f"{self.name}: vcpu_count must be > 0, got {self.vcpu_count}")
        if self.total_ram_gb <= 0:
            raise ValueError(f"{self.name}: total_ram_gb must be > 0, got {self.total_ram_gb}")
        if self.ephemeral_storage_gb < 0:
            raise ValueError(
                f"{self.name}: ephemeral_storage_gb must be >= 0, got {self.ephemeral_storage_gb}"
            )

    @property
    def has_local_nvme(self) -> bool:
        return self.ephemeral_storage_gb > 0


def _profile(
    name: str, vcpu: int, ram_gb: int, nvme_gb: int, arch: Architecture, cost: str
) -> InstanceProfile:
    return InstanceProfile(
        name=name,
        vcpu_count=vcpu,
        total_ram_gb=ram_gb,
        ephemeral_storage_gb=nvme_gb,
        architecture=arch,
        hourly_cost=Decimal(cost),
    )


_X86 = Architecture.X86_64
_ARM = Architecture.ARM64

_PROFILES: tuple[InstanceProfile, ...] = (
    # t3 (burstable)
    _profile("t3.xlarge", 4, 16, 0, _X86, "0.1664"),
    _profile("t3.2xlarge", 8, 32, 0, _X86, "0.3328"),
    # r7i (Intel, memory optimized)
    _profile("r7i.xlarge", 4, 32, 0, _X86, "0.252"),
    _profile("r7i.2xlarge", 8, 64, 0, _X86, "0.504"),
    _profile("r7i.4xlarge", 16, 128, 0, _X86, "1.008"),
    _profile("r7i.8xlarge", 32, 256, 0, _X86, "2.016"),
    _profile("r7i.12xlarge", 48, 384, 0, _X86, "3.024"),
    _profile("r7i.16xlarge", 64, 512, 0, _X86, "4.032"),
    _profile("r7i.24xlarge", 96, 768, 0, _X86, "6.048"),
    _profile("r7i.48xlarge", 192, 1536, 0, _X86, "12.096"),
    # r7g (Graviton, memory optimized)
    _profile("r7g.xlarge", 4, 32, 0, _ARM, "0.214"),
    _profile("r7g.2xlarge", 8, 64, 0, _ARM, "0.428"),
    _profile("r7g.4xlarge", 16, 128, 0, _ARM, "0.857"),
    _profile("r7g.8xlarge", 32, 256, 0, _ARM, "1.714"),
    _profile("r7g.16xlarge", 64, 512, 0, _ARM, "3.427"),
    # r7gd (Graviton with local NVMe)
    _profile("r7gd.xlarge", 4, 32, 237, _ARM, "0.267"),
    _profile("r7gd.2xlarge", 8, 64, 474, _ARM, "0.533"),
    _profile("r7gd.4xlarge", 16, 128, 950, _ARM, "1.066"),
    _profile("r7gd.8xlarge", 32, 256, 1900, _ARM, "2.131"),
    _profile("r7gd.16xlarge", 64, 512, 3800, _ARM, "4.262"),
)

INSTANCE_PROFILES: Mapping[str, InstanceProfile] = MappingProxyType({p.name: p for p in _PROFILES})


def build_catalog(extra_profiles: Iterable[InstanceProfile] = ()) -> Mapping[str, InstanceProfile]:
    """Return a read-only catalog with *extra_profiles* layered over the static table.

    Extra profiles with the same name as a built-in entry replace it; the
    static table itself is left untouched.
    """
    extras = list(extra_profiles)
    if not extras:
        return INSTANCE_PROFILES
    merged = dict(INSTANCE_PROFILES)
    for profile in extras:
        if profile.name in merged:
            log.debug("Profile %s overridden by configuration", profile.name)
        merged[profile.name] = profile
    return MappingProxyType(merged)


def lookup(name: str, catalog: Mapping[str, InstanceProfile] | None = None) -> InstanceProfile:
    """Look up an instance profile by instance type.

    Args:
        name: Instance type, e.g. ``r7i.8xlarge``
        catalog: Catalog to search (defaults to the static table)

    Returns:
        The matching InstanceProfile

    Raises:
        UnknownProfileError: If *name* is not in the catalog
    """
    table = INSTANCE_PROFILES if catalog is None else catalog
    try:
        return table[name]
    except KeyError:
        raise UnknownProfileError(name, sorted(table)) from None


def resolve_profile(
    name: str,
    fallback: InstanceProfile,
    catalog: Mapping[str, InstanceProfile] | None = None,
) -> InstanceProfile:
    """Look up *name*, using the caller-supplied *fallback* if it is unknown.

    The fallback is explicit and logged so an unlisted instance type never
    silently picks up some other machine's memory layout.
    """
    try:
        return lookup(name, catalog)
    except UnknownProfileError:
        log.warning(
            "Instance type %s is not in the profile catalog; planning with fallback profile %s "
            "(%d vCPU, %d GB RAM, %d GB NVMe)",
            name,
            fallback.name,
            fallback.vcpu_count,
            fallback.total_ram_gb,
            fallback.ephemeral_storage_gb,
        )
        return fallback
