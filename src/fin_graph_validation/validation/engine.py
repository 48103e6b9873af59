"""Suite constructors for the four validation concerns.

Every constructor is a pure function of its inputs and returns a fresh
``ValidationSuite``. Structural mismatches (exact node and relationship
counts) produce ``error`` results and therefore failed tests; data-quality
signals (integrity, quality, profiling) only ever produce warnings.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fin_graph_validation.models import (
    Number,
    ResultMetrics,
    Severity,
    TestCategory,
    ValidationResult,
    ValidationSuite,
    ValidationTest,
)
from fin_graph_validation.schema import EXPECTED_SCHEMA, ExpectedSchema
from fin_graph_validation.validation.metrics import IntegritySignals, QualityMetrics
from fin_graph_validation.validation.profile import EntityProfile
from fin_graph_validation.validation.thresholds import (
    DEFAULT_THRESHOLDS,
    ValidationThresholds,
)

SCHEMA_SUITE = "Schema Validation"
RELATIONSHIP_SUITE = "Relationship Validation"
INTEGRITY_SUITE = "Data Integrity"
QUALITY_SUITE = "Data Quality"
PROFILE_SUITE = "Data Profile"


def utc_timestamp() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def count_metrics(expected: Number, actual: Number) -> ResultMetrics:
    """Expected/actual metrics; percentage is omitted when nothing was expected."""
    difference = actual - expected
    percentage: Optional[int] = None
    if expected > 0:
        percentage = round_half_up(difference / expected * 100)
    return ResultMetrics(
        expected=expected,
        actual=actual,
        difference=difference,
        percentage=percentage,
    )


def tolerance_band(expected: int, tolerance_pct: float) -> int:
    # Rounded so float noise cannot push an exact band up by one.
    return math.ceil(round(expected * tolerance_pct / 100.0, 9))


def _test(
    test_id: str,
    name: str,
    description: str,
    category: TestCategory,
    *,
    passed: bool,
    message: str,
    severity: Severity,
    metrics: Optional[ResultMetrics] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ValidationTest:
    return ValidationTest(
        id=test_id,
        name=name,
        description=description,
        category=category,
        result=ValidationResult(
            passed=passed,
            message=message,
            severity="info" if passed else severity,
            timestamp=utc_timestamp(),
            details=details,
            metrics=metrics,
        ),
    )


def _suite(name: str, tests: List[ValidationTest], start_time: str) -> ValidationSuite:
    return ValidationSuite(
        name=name,
        tests=tests,
        status="completed",
        start_time=start_time,
        end_time=utc_timestamp(),
    )


def create_schema_validation_suite(
    actual_node_counts: Mapping[str, int],
    schema: ExpectedSchema = EXPECTED_SCHEMA,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
) -> ValidationSuite:
    start_time = utc_timestamp()
    tests: List[ValidationTest] = []

    for node_type, spec in schema.nodes.items():
        actual = int(actual_node_counts.get(node_type, 0) or 0)
        expected = spec.count
        passed = actual == expected
        tests.append(
            _test(
                f"node-count-{node_type}",
                f"{node_type} Node Count",
                f"Verify {node_type} node count matches expected value",
                "schema",
                passed=passed,
                message=(
                    f"{node_type} count matches ({actual} nodes)"
                    if passed
                    else f"{node_type} count mismatch: expected {expected}, found {actual}"
                ),
                severity="error",
                metrics=count_metrics(expected, actual),
            )
        )

    total_expected = schema.total_expected_nodes()
    total_actual = sum(int(count or 0) for count in actual_node_counts.values())
    total_passed = abs(total_actual - total_expected) <= thresholds.total_node_tolerance
    tests.append(
        _test(
            "total-node-count",
            "Total Node Count",
            "Verify total number of nodes in database",
            "schema",
            passed=total_passed,
            message=(
                f"Total node count within tolerance ({total_actual} nodes)"
                if total_passed
                else f"Total node count variance: expected ~{total_expected}, found {total_actual}"
            ),
            severity="warning",
            metrics=count_metrics(total_expected, total_actual),
        )
    )

    return _suite(SCHEMA_SUITE, tests, start_time)


def create_relationship_validation_suite(
    actual_relationship_counts: Mapping[str, int],
    schema: ExpectedSchema = EXPECTED_SCHEMA,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
) -> ValidationSuite:
    start_time = utc_timestamp()
    tests: List[ValidationTest] = []

    for rel_type, spec in schema.counted_relationships():
        expected = int(spec.expected_count or 0)
        actual = int(actual_relationship_counts.get(rel_type, 0) or 0)
        passed = actual == expected
        within_tolerance = abs(actual - expected) <= tolerance_band(
            expected, thresholds.relationship_tolerance_pct
        )
        if passed:
            message = f"{rel_type} count matches ({actual} relationships)"
        elif within_tolerance:
            message = f"{rel_type} within tolerance: expected {expected}, found {actual}"
        else:
            message = f"{rel_type} count mismatch: expected {expected}, found {actual}"
        tests.append(
            _test(
                f"rel-count-{rel_type}",
                f"{rel_type} Relationship Count",
                f"Verify {spec.source} -> {spec.target} relationship count",
                "relationships",
                passed=passed,
                message=message,
                severity="warning" if within_tolerance else "error",
                metrics=count_metrics(expected, actual),
            )
        )

    return _suite(RELATIONSHIP_SUITE, tests, start_time)


def create_integrity_validation_suite(signals: IntegritySignals) -> ValidationSuite:
    start_time = utc_timestamp()

    total_orphans = signals.total_orphans
    orphans_passed = total_orphans == 0
    allocations_passed = signals.invalid_allocations == 0
    budget_passed = signals.over_budget_afes == 0

    tests = [
        _test(
            "orphaned-nodes",
            "Orphaned Nodes Check",
            "Verify no nodes exist without relationships",
            "integrity",
            passed=orphans_passed,
            message=(
                "No orphaned nodes found"
                if orphans_passed
                else f"Found {total_orphans} orphaned nodes"
            ),
            severity="warning",
            metrics=count_metrics(0, total_orphans),
            details=dict(signals.orphaned_nodes),
        ),
        _test(
            "allocation-integrity",
            "Owner Allocation Integrity",
            "Verify allocation percentages sum to 100%",
            "integrity",
            passed=allocations_passed,
            message=(
                "All allocations sum to 100%"
                if allocations_passed
                else f"Found {signals.invalid_allocations} transactions with allocation issues"
            ),
            severity="warning",
            metrics=count_metrics(0, signals.invalid_allocations),
        ),
        _test(
            "budget-overruns",
            "AFE Budget Overruns",
            "Verify no AFEs exceed their budget",
            "integrity",
            passed=budget_passed,
            message=(
                "No AFEs over budget"
                if budget_passed
                else f"Found {signals.over_budget_afes} AFEs over budget"
            ),
            severity="warning",
            metrics=count_metrics(0, signals.over_budget_afes),
        ),
    ]

    return _suite(INTEGRITY_SUITE, tests, start_time)


_QUALITY_CHECKS = (
    ("data-completeness", "Data Completeness", "completeness_score",
     "Verify percentage of non-null required fields"),
    ("data-consistency", "Data Consistency", "consistency_score",
     "Verify referential integrity across relationships"),
    ("data-accuracy", "Data Accuracy", "accuracy_score",
     "Verify data type validation and range checks"),
)


def create_quality_validation_suite(
    quality: QualityMetrics,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
) -> ValidationSuite:
    start_time = utc_timestamp()
    tests: List[ValidationTest] = []

    for test_id, name, attr, description in _QUALITY_CHECKS:
        score = float(getattr(quality, attr))
        label = name.split(" ", 1)[1].lower()
        tests.append(
            _test(
                test_id,
                name,
                description,
                "quality",
                passed=score >= thresholds.quality_threshold,
                message=f"Data {label}: {score:.1f}%",
                severity="warning",
                metrics=count_metrics(100, score),
            )
        )

    return _suite(QUALITY_SUITE, tests, start_time)


def create_profile_validation_suite(profiles: Sequence[EntityProfile]) -> ValidationSuite:
    start_time = utc_timestamp()
    tests: List[ValidationTest] = []

    for profile in profiles:
        node_type = profile.node_type
        nulls_passed = profile.rows_with_nulls == 0
        tests.append(
            _test(
                f"required-fields-{node_type}",
                f"{node_type} Required Fields",
                f"Verify every {node_type} record populates its required properties",
                "data",
                passed=nulls_passed,
                message=(
                    f"All {profile.row_count} {node_type} records populate required properties"
                    if nulls_passed
                    else f"{profile.rows_with_nulls} {node_type} records missing required "
                    f"properties ({profile.key_null_pct:.1f}%)"
                ),
                severity="warning",
                metrics=count_metrics(0, profile.rows_with_nulls),
                details={"nullCounts": dict(profile.null_counts)},
            )
        )
        if not profile.duplicate_keys:
            continue
        dupes_passed = profile.total_duplicates == 0
        tests.append(
            _test(
                f"unique-keys-{node_type}",
                f"{node_type} Unique Constraints",
                f"Verify {node_type} unique keys are not repeated",
                "data",
                passed=dupes_passed,
                message=(
                    f"No duplicate {node_type} keys"
                    if dupes_passed
                    else f"Found {profile.total_duplicates} duplicate {node_type} keys"
                ),
                severity="warning",
                metrics=count_metrics(0, profile.total_duplicates),
                details={"duplicateKeys": dict(profile.duplicate_keys)},
            )
        )

    return _suite(PROFILE_SUITE, tests, start_time)


__all__ = [
    "INTEGRITY_SUITE",
    "PROFILE_SUITE",
    "QUALITY_SUITE",
    "RELATIONSHIP_SUITE",
    "SCHEMA_SUITE",
    "count_metrics",
    "create_integrity_validation_suite",
    "create_profile_validation_suite",
    "create_quality_validation_suite",
    "create_relationship_validation_suite",
    "create_schema_validation_suite",
    "round_half_up",
    "tolerance_band",
    "utc_timestamp",
]
