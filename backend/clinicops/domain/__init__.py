"""Pure scheduling rules: no I/O, no sessions, explicit clock inputs."""

from .advance_window import validate_advance_window
from .coverage import CoverageAssignment, CoveredAssignment, DirectAssignment, pick_coverage
from .hold_settings import (
    ClinicHoldSettings,
    EffectiveHoldSettings,
    EngineFallbacks,
    ServiceTypeOverride,
    resolve_hold_settings,
)
from .hold_ttl import compute_hold_expiry
from .intervals import intervals_overlap, validate_range

__all__ = [
    "ClinicHoldSettings",
    "CoverageAssignment",
    "CoveredAssignment",
    "DirectAssignment",
    "EffectiveHoldSettings",
    "EngineFallbacks",
    "ServiceTypeOverride",
    "compute_hold_expiry",
    "intervals_overlap",
    "pick_coverage",
    "resolve_hold_settings",
    "validate_advance_window",
    "validate_range",
]
