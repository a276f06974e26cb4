# backend/clinicops/domain/hold_settings.py
"""
Effective hold settings.

Three layers feed every field: the service-type override, the clinic's own
hold settings block, and the engine fallbacks. For the advance window the
first strictly positive value wins; a configured ``0`` is treated exactly
like "not configured" and falls through to the 90-day default.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 60 * 24


def _first_key(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric hold setting value %r", value)
        return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric hold setting value %r", value)
        return None


_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_STRINGS:
            return True
        if normalized in _FALSE_STRINGS:
            return False
    logger.warning("Ignoring non-boolean hold setting value %r", value)
    return default


def first_positive(*values: Optional[int]) -> Optional[int]:
    """Return the first value that is set and strictly positive."""
    for value in values:
        if value is not None and value > 0:
            return value
    return None


@dataclass(frozen=True)
class EngineFallbacks:
    """Values used when a clinic never configured its hold settings."""

    ttl_minutes: int = 30
    min_advance_minutes: int = 60
    max_advance_days: int = 90
    buffer_minutes: int = 15

    @classmethod
    def from_settings(cls, settings: Any) -> "EngineFallbacks":
        return cls(
            ttl_minutes=settings.hold_fallback_ttl_minutes,
            min_advance_minutes=settings.hold_fallback_min_advance_minutes,
            max_advance_days=settings.hold_fallback_max_advance_days,
            buffer_minutes=settings.hold_fallback_buffer_minutes,
        )


@dataclass(frozen=True)
class ClinicHoldSettings:
    """A clinic's stored hold settings block; every field may be unset."""

    ttl_minutes: Optional[int] = None
    min_advance_minutes: Optional[int] = None
    max_advance_minutes: Optional[int] = None
    allow_overbooking: bool = False
    overbooking_threshold: Optional[float] = None
    resource_matching_strict: bool = True

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> Optional["ClinicHoldSettings"]:
        """Parse the JSON block stored on the clinic (camelCase or snake_case keys)."""
        if data is None:
            return None
        threshold = _first_key(data, "overbooking_threshold", "overbookingThreshold")
        strict = _first_key(data, "resource_matching_strict", "resourceMatchingStrict")
        return cls(
            ttl_minutes=_as_int(_first_key(data, "ttl_minutes", "ttlMinutes")),
            min_advance_minutes=_as_int(
                _first_key(data, "min_advance_minutes", "minAdvanceMinutes")
            ),
            max_advance_minutes=_as_int(
                _first_key(data, "max_advance_minutes", "maxAdvanceMinutes")
            ),
            allow_overbooking=_as_bool(
                _first_key(data, "allow_overbooking", "allowOverbooking"), default=False
            ),
            overbooking_threshold=_as_float(threshold),
            resource_matching_strict=_as_bool(strict, default=True),
        )


@dataclass(frozen=True)
class ServiceTypeOverride:
    """Per-service admission overrides."""

    min_advance_minutes: Optional[int] = None
    max_advance_minutes: Optional[int] = None
    duration_minutes: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_model(cls, service_type: Any) -> "ServiceTypeOverride":
        return cls(
            min_advance_minutes=service_type.min_advance_minutes,
            max_advance_minutes=service_type.max_advance_minutes,
            duration_minutes=service_type.duration_minutes,
            is_active=bool(service_type.is_active),
        )


@dataclass(frozen=True)
class EffectiveHoldSettings:
    ttl_minutes: int
    min_advance_minutes: int
    max_advance_minutes: Optional[int]
    max_advance_days: int
    buffer_minutes: int
    allow_overbooking: bool = False
    overbooking_threshold: Optional[float] = None
    resource_matching_strict: bool = True

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "ttl_minutes": self.ttl_minutes,
            "min_advance_minutes": self.min_advance_minutes,
            "max_advance_minutes": self.max_advance_minutes,
            "max_advance_days": self.max_advance_days,
        }


def resolve_hold_settings(
    clinic: Optional[ClinicHoldSettings],
    service: Optional[ServiceTypeOverride] = None,
    fallbacks: Optional[EngineFallbacks] = None,
) -> EffectiveHoldSettings:
    """
    Merge service override, clinic block and engine fallbacks.

    Args:
        clinic: The clinic's hold settings, or None if the clinic has none.
        service: The service type's overrides, when a service type applies.
        fallbacks: Engine defaults; the module defaults when omitted.

    Returns:
        The effective settings. Never raises.
    """
    fallbacks = fallbacks or EngineFallbacks()
    if clinic is None:
        clinic = ClinicHoldSettings(
            ttl_minutes=fallbacks.ttl_minutes,
            min_advance_minutes=fallbacks.min_advance_minutes,
        )

    ttl_minutes = max(first_positive(clinic.ttl_minutes) or fallbacks.ttl_minutes, 1)

    if service is not None and service.min_advance_minutes is not None:
        min_advance = service.min_advance_minutes
    elif clinic.min_advance_minutes is not None:
        min_advance = clinic.min_advance_minutes
    else:
        min_advance = 0
    min_advance = max(min_advance, 0)

    service_max = service.max_advance_minutes if service is not None else None
    if service_max == 0 or clinic.max_advance_minutes == 0:
        logger.warning(
            "maxAdvanceMinutes=0 is treated as unlimited (%s-day window)",
            fallbacks.max_advance_days,
        )

    max_minutes = first_positive(service_max, clinic.max_advance_minutes)
    if max_minutes is None:
        max_days = fallbacks.max_advance_days
    else:
        max_days = max(1, math.ceil(max_minutes / MINUTES_PER_DAY))

    return EffectiveHoldSettings(
        ttl_minutes=ttl_minutes,
        min_advance_minutes=min_advance,
        max_advance_minutes=max_minutes,
        max_advance_days=max_days,
        buffer_minutes=fallbacks.buffer_minutes,
        allow_overbooking=clinic.allow_overbooking,
        overbooking_threshold=clinic.overbooking_threshold,
        resource_matching_strict=clinic.resource_matching_strict,
    )
