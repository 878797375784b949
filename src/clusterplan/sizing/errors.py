"""Exceptions raised while resolving topologies and planning resources."""

from __future__ import annotations


class SizingError(Exception):
    """Base exception for sizing errors."""

    pass


class UnknownProfileError(SizingError, ValueError):
    """Raised when an instance type is not in the profile catalog."""

    def __init__(self, name: str, known: list[str] | None = None):
        self.name = name
        message = f"Unknown instance profile: {name}"
        if known:
            message += f". Valid: {', '.join(known)}"
        super().__init__(message)


class UnknownPresetError(SizingError, ValueError):
    """Raised when a cluster-size preset is not registered."""

    def __init__(self, name: str, known: list[str] | None = None):
        self.name = name
        message = f"Unknown cluster preset: {name}"
        if known:
            message += f". Valid presets: {', '.join(known)}"
        super().__init__(message)


class UnsupportedScaleFactorError(SizingError, ValueError):
    """Raised when the benchmark scale factor is not a supported value."""

    def __init__(self, scale_factor: object, supported: tuple[int, ...]):
        self.scale_factor = scale_factor
        super().__init__(
            f"Unsupported scale factor: {scale_factor}. "
            f"Supported: {', '.join(str(s) for s in supported)}"
        )


class MissingClusterContextError(SizingError):
    """Raised when a coordinator plan is requested without a cluster topology."""

    pass


class PlanInvariantViolation(SizingError):
    """Raised when a computed plan breaks a safety invariant.

    This always indicates a defect in the tier tables or the arithmetic,
    never a user error.  Deployment must stop.
    """

    def __init__(self, profile_name: str, violations: list[str]):
        self.profile_name = profile_name
        self.violations = violations
        super().__init__(
            f"Resource plan for {profile_name} violates invariants:\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
