from __future__ import annotations

import logging
import time
from typing import Iterable, List, Mapping, Optional, Sequence

from fin_graph_validation.models import (
    DataIntegrityIssue,
    NodeCountComparison,
    RelationshipComparison,
    Snapshot,
    ValidationReport,
    ValidationSuite,
    ValidationSummary,
)
from fin_graph_validation.schema import EXPECTED_SCHEMA, ExpectedSchema
from fin_graph_validation.validation.engine import (
    create_integrity_validation_suite,
    create_profile_validation_suite,
    create_quality_validation_suite,
    create_relationship_validation_suite,
    create_schema_validation_suite,
    utc_timestamp,
)
from fin_graph_validation.validation.metrics import (
    IntegritySignals,
    QualityMetrics,
    ValidationInputs,
    compute_validation_inputs,
)
from fin_graph_validation.validation.profile import EntityProfile
from fin_graph_validation.validation.thresholds import (
    DEFAULT_THRESHOLDS,
    ValidationThresholds,
)

REPORT_VERSION = "1.0"
DEFAULT_ENVIRONMENT = "static-data"

ALL_PASSED_MESSAGE = "All validation tests passed! Data quality is excellent."

logger = logging.getLogger("fin_graph_validation.report")


def summarize(
    suites: Sequence[ValidationSuite], duration_ms: Optional[int] = None
) -> ValidationSummary:
    tests = [test for suite in suites for test in suite.tests]
    total = len(tests)
    passed = sum(1 for test in tests if test.status == "passed")
    return ValidationSummary(
        total=total,
        passed=passed,
        failed=sum(1 for test in tests if test.status == "failed"),
        warnings=sum(1 for test in tests if test.status == "warning"),
        pending=sum(1 for test in tests if test.status == "pending"),
        success_rate=passed * 100.0 / total if total else 0.0,
        duration=duration_ms,
    )


def build_node_comparisons(
    node_counts: Mapping[str, int], schema: ExpectedSchema = EXPECTED_SCHEMA
) -> List[NodeCountComparison]:
    rows: List[NodeCountComparison] = []
    for node_type, spec in schema.nodes.items():
        actual = int(node_counts.get(node_type, 0) or 0)
        rows.append(
            NodeCountComparison(
                node_type=node_type,
                expected=spec.count,
                actual=actual,
                match=actual == spec.count,
                difference=actual - spec.count,
            )
        )
    return rows


def build_relationship_comparisons(
    relationship_counts: Mapping[str, int], schema: ExpectedSchema = EXPECTED_SCHEMA
) -> List[RelationshipComparison]:
    rows: List[RelationshipComparison] = []
    for rel_type, spec in schema.counted_relationships():
        expected = int(spec.expected_count or 0)
        actual = int(relationship_counts.get(rel_type, 0) or 0)
        rows.append(
            RelationshipComparison(
                relationship_type=rel_type,
                from_type=spec.source,
                to_type=spec.target,
                expected=expected,
                actual=actual,
                match=actual == expected,
                difference=actual - expected,
            )
        )
    return rows


def build_integrity_issues(
    signals: IntegritySignals,
    profiles: Optional[Iterable[EntityProfile]] = None,
) -> List[DataIntegrityIssue]:
    issues: List[DataIntegrityIssue] = []

    if signals.invalid_allocations > 0:
        issues.append(
            DataIntegrityIssue(
                type="invalid_allocation",
                severity="medium",
                description="Transaction allocations do not sum to 100%",
                affected_count=signals.invalid_allocations,
                node_type="Transaction",
            )
        )

    if signals.over_budget_afes > 0:
        issues.append(
            DataIntegrityIssue(
                type="budget_overrun",
                severity="high",
                description="AFEs with spending exceeding budget",
                affected_count=signals.over_budget_afes,
                node_type="AFE",
            )
        )

    for description, count in signals.missing_relationships.items():
        if count > 0:
            issues.append(
                DataIntegrityIssue(
                    type="missing_relationship",
                    severity="medium",
                    description=description,
                    affected_count=count,
                )
            )

    for node_type, count in signals.orphaned_nodes.items():
        if count > 0:
            issues.append(
                DataIntegrityIssue(
                    type="orphan",
                    severity="low",
                    description=f"{node_type} nodes without relationships",
                    affected_count=count,
                    node_type=node_type,
                )
            )

    for profile in profiles or ():
        if profile.rows_with_nulls > 0:
            issues.append(
                DataIntegrityIssue(
                    type="null_required_field",
                    severity="low",
                    description=f"{profile.node_type} records missing required properties",
                    affected_count=profile.rows_with_nulls,
                    node_type=profile.node_type,
                    examples=profile.missing_properties,
                )
            )

    return issues


def build_recommendations(
    summary: ValidationSummary,
    signals: IntegritySignals,
    quality: QualityMetrics,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
) -> List[str]:
    recommendations: List[str] = []

    if summary.failed > 0:
        recommendations.append(
            "Review failed tests and investigate data discrepancies between expected and actual counts"
        )
    if signals.invalid_allocations > 0:
        recommendations.append(
            f"Fix {signals.invalid_allocations} transaction(s) with allocation percentages that don't sum to 100%"
        )
    if signals.over_budget_afes > 0:
        recommendations.append(
            f"Review {signals.over_budget_afes} AFE(s) that have exceeded their budget"
        )
    if signals.missing_authorization_refs > 0:
        recommendations.append(
            "Ensure all transactions are linked to an AFE for proper budget tracking"
        )
    if quality.completeness_score < thresholds.quality_threshold:
        recommendations.append(
            "Improve data completeness by ensuring all required fields are populated"
        )

    if not recommendations:
        recommendations.append(ALL_PASSED_MESSAGE)
    return recommendations


def build_validation_report(
    inputs: ValidationInputs,
    *,
    schema: ExpectedSchema = EXPECTED_SCHEMA,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
    environment: str = DEFAULT_ENVIRONMENT,
    version: str = REPORT_VERSION,
    started_at: Optional[float] = None,
) -> ValidationReport:
    """Run every suite over precomputed inputs and assemble the report.

    ``started_at`` is a ``time.perf_counter()`` reading; pass the value taken
    before data loading to have the duration cover the whole run.
    """
    start = time.perf_counter() if started_at is None else started_at

    suites = [
        create_schema_validation_suite(inputs.node_counts, schema, thresholds),
        create_relationship_validation_suite(inputs.relationship_counts, schema, thresholds),
        create_integrity_validation_suite(inputs.integrity),
        create_quality_validation_suite(inputs.quality, thresholds),
    ]
    if inputs.profiles is not None:
        suites.append(create_profile_validation_suite(inputs.profiles))

    duration_ms = int(round((time.perf_counter() - start) * 1000))
    summary = summarize(suites, duration_ms)

    return ValidationReport(
        timestamp=utc_timestamp(),
        version=version,
        environment=environment,
        summary=summary,
        suites=suites,
        node_comparisons=build_node_comparisons(inputs.node_counts, schema),
        relationship_comparisons=build_relationship_comparisons(
            inputs.relationship_counts, schema
        ),
        integrity_issues=build_integrity_issues(inputs.integrity, inputs.profiles),
        recommendations=build_recommendations(
            summary, inputs.integrity, inputs.quality, thresholds
        ),
    )


def run_validation(
    snapshot: Snapshot,
    *,
    schema: ExpectedSchema = EXPECTED_SCHEMA,
    thresholds: ValidationThresholds = DEFAULT_THRESHOLDS,
    profile: bool = False,
    version: str = REPORT_VERSION,
    started_at: Optional[float] = None,
) -> ValidationReport:
    start = time.perf_counter() if started_at is None else started_at
    inputs = compute_validation_inputs(
        snapshot,
        schema=schema,
        allocation_tolerance=thresholds.allocation_tolerance,
        profile=profile,
    )
    report = build_validation_report(
        inputs,
        schema=schema,
        thresholds=thresholds,
        environment=snapshot.environment,
        version=version,
        started_at=start,
    )
    summary = report.summary
    logger.info(
        "Validation finished: %d tests, %d passed, %d failed, %d warnings (%.1f%%) in %sms",
        summary.total,
        summary.passed,
        summary.failed,
        summary.warnings,
        summary.success_rate,
        summary.duration,
    )
    return report


__all__ = [
    "ALL_PASSED_MESSAGE",
    "DEFAULT_ENVIRONMENT",
    "REPORT_VERSION",
    "build_integrity_issues",
    "build_node_comparisons",
    "build_recommendations",
    "build_relationship_comparisons",
    "build_validation_report",
    "run_validation",
    "summarize",
]
