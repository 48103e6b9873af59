from __future__ import annotations

from dataclasses import dataclass

# Absolute drift allowed between summed expected and observed node counts.
TOTAL_NODE_TOLERANCE = 5
# Relative band (percent of expected) that downgrades a relationship mismatch to a warning.
RELATIONSHIP_TOLERANCE_PCT = 10.0
QUALITY_THRESHOLD_PCT = 95.0
# Allocation percentages are floats and rarely land exactly on 100.
ALLOCATION_TOLERANCE_PCT = 0.5


@dataclass(frozen=True)
class ValidationThresholds:
    total_node_tolerance: int = TOTAL_NODE_TOLERANCE
    relationship_tolerance_pct: float = RELATIONSHIP_TOLERANCE_PCT
    quality_threshold: float = QUALITY_THRESHOLD_PCT
    allocation_tolerance: float = ALLOCATION_TOLERANCE_PCT


DEFAULT_THRESHOLDS = ValidationThresholds()


__all__ = [
    "ALLOCATION_TOLERANCE_PCT",
    "DEFAULT_THRESHOLDS",
    "QUALITY_THRESHOLD_PCT",
    "RELATIONSHIP_TOLERANCE_PCT",
    "TOTAL_NODE_TOLERANCE",
    "ValidationThresholds",
]
