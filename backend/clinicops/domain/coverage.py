# backend/clinicops/domain/coverage.py
"""
Coverage assignment results.

A reservation either stays with the requested professional (``DirectAssignment``)
or is redirected to a substitute (``CoveredAssignment``), which keeps the
original professional and coverage id for audit and notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Protocol, Union


class CoverageRecord(Protocol):
    id: Any
    coverage_professional_id: Any
    start_at: Any


@dataclass(frozen=True)
class DirectAssignment:
    professional_id: str

    @property
    def effective_professional_id(self) -> str:
        return self.professional_id

    @property
    def original_professional_id(self) -> Optional[str]:
        return None

    @property
    def coverage_id(self) -> Optional[str]:
        return None

    @property
    def is_covered(self) -> bool:
        return False


@dataclass(frozen=True)
class CoveredAssignment:
    original_professional_id: str
    coverage_id: str
    effective_professional_id: str

    @property
    def is_covered(self) -> bool:
        return True


CoverageAssignment = Union[DirectAssignment, CoveredAssignment]


def _sort_key(record: CoverageRecord) -> tuple[datetime, str]:
    return (record.start_at, str(record.id))


def pick_coverage(
    professional_id: str, coverages: Iterable[CoverageRecord]
) -> CoverageAssignment:
    """
    Choose the coverage to apply among overlapping active records.

    The earliest-starting coverage wins, ties broken by id. A coverage with
    no substitute, or whose substitute is the requested professional, leaves
    the reservation direct.
    """
    ordered = sorted(coverages, key=_sort_key)
    if not ordered:
        return DirectAssignment(professional_id=professional_id)

    selected = ordered[0]
    substitute = selected.coverage_professional_id
    if not substitute or substitute == professional_id:
        return DirectAssignment(professional_id=professional_id)

    return CoveredAssignment(
        original_professional_id=professional_id,
        coverage_id=str(selected.id),
        effective_professional_id=str(substitute),
    )
