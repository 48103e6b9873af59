"""Typed entity records and validation report types.

Entity records mirror the JSON snapshot exported from the graph database.
Their field names are snake_case in Python and camelCase on disk; every field
is optional because metric computation has to quantify gaps rather than trip
over them.

Report types are frozen and serialise with camelCase names, which is the
shape consumers receive from ``{"success": true, "data": <report>}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, computed_field, field_validator
from pydantic.alias_generators import to_camel

Number = Union[int, float]

TestCategory = Literal["schema", "data", "relationships", "integrity", "quality"]
TestStatus = Literal["pending", "running", "passed", "failed", "warning"]
SuiteStatus = Literal["pending", "running", "completed", "failed"]
Severity = Literal["info", "warning", "error"]
IssueType = Literal[
    "orphan",
    "missing_relationship",
    "invalid_allocation",
    "budget_overrun",
    "null_required_field",
]
IssueSeverity = Literal["low", "medium", "high", "critical"]


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class OwnerAllocation(_Record):
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    allocation_percentage: Optional[float] = None
    allocated_amount: Optional[float] = None


class Transaction(_Record):
    txn_id: Optional[int] = None
    txn_date: Optional[str] = None
    amount: Optional[float] = None
    description: Optional[str] = None
    status: Optional[str] = None
    deck_id: Optional[int] = None
    deck_code: Optional[str] = None
    afe_id: Optional[int] = None
    afe_number: Optional[str] = None
    billing_category: Optional[str] = None
    owners: List[OwnerAllocation] = []

    @field_validator("owners", mode="before")
    @classmethod
    def _owners_or_empty(cls, value: Any) -> Any:
        # Exports write null for transactions with no allocations.
        if value is None:
            return []
        if isinstance(value, list):
            return [entry for entry in value if entry is not None]
        return value


class Authorization(_Record):
    afe_id: Optional[int] = None
    afe_number: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    total_budget: Optional[float] = None
    total_spent: Optional[float] = None


class CostCenter(_Record):
    deck_id: Optional[int] = None
    deck_code: Optional[str] = None
    description: Optional[str] = None
    deck_type: Optional[str] = None
    transaction_count: Optional[int] = None
    total_spent: Optional[float] = None


class Owner(_Record):
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    owner_status: Optional[str] = None
    interest_type_code: Optional[str] = None
    allocation_count: Optional[int] = None
    avg_allocation_percentage: Optional[float] = None
    total_revenue: Optional[float] = None


@dataclass(frozen=True)
class Snapshot:
    """Everything one validation run reads from its data source."""

    transactions: List[Transaction] = field(default_factory=list)
    authorizations: List[Authorization] = field(default_factory=list)
    cost_centers: List[CostCenter] = field(default_factory=list)
    owners: List[Owner] = field(default_factory=list)
    # Counts for types the snapshot does not carry as records.
    extra_node_counts: Dict[str, int] = field(default_factory=dict)
    extra_relationship_counts: Dict[str, int] = field(default_factory=dict)
    environment: str = "static-data"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ResultMetrics(WireModel):
    expected: Number
    actual: Number
    difference: Number
    percentage: Optional[int] = None


class ValidationResult(WireModel):
    passed: bool
    message: str
    severity: Severity
    timestamp: str
    details: Optional[Dict[str, Any]] = None
    metrics: Optional[ResultMetrics] = None


def derive_status(result: Optional[ValidationResult]) -> TestStatus:
    if result is None:
        return "pending"
    if result.passed:
        return "passed"
    if result.severity == "error":
        return "failed"
    return "warning"


class ValidationTest(WireModel):
    id: str
    name: str
    description: str
    category: TestCategory
    result: Optional[ValidationResult] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> TestStatus:
        return derive_status(self.result)


class ValidationSuite(WireModel):
    name: str
    tests: List[ValidationTest]
    status: SuiteStatus = "completed"
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class ValidationSummary(WireModel):
    total: int
    passed: int
    failed: int
    warnings: int
    pending: int
    success_rate: float
    duration: Optional[int] = None


class NodeCountComparison(WireModel):
    node_type: str
    expected: int
    actual: int
    match: bool
    difference: int


class RelationshipComparison(WireModel):
    relationship_type: str
    from_type: str
    to_type: str
    expected: int
    actual: int
    match: bool
    difference: int


class DataIntegrityIssue(WireModel):
    type: IssueType
    severity: IssueSeverity
    description: str
    affected_count: int
    node_type: Optional[str] = None
    examples: Optional[List[Any]] = None


class ValidationReport(WireModel):
    timestamp: str
    version: str
    environment: str
    summary: ValidationSummary
    suites: List[ValidationSuite]
    node_comparisons: List[NodeCountComparison]
    relationship_comparisons: List[RelationshipComparison]
    integrity_issues: List[DataIntegrityIssue]
    recommendations: List[str]

    def all_tests(self) -> List[ValidationTest]:
        return [test for suite in self.suites for test in suite.tests]


__all__ = [
    "Authorization",
    "CostCenter",
    "DataIntegrityIssue",
    "NodeCountComparison",
    "Owner",
    "OwnerAllocation",
    "RelationshipComparison",
    "ResultMetrics",
    "Snapshot",
    "Transaction",
    "ValidationReport",
    "ValidationResult",
    "ValidationSuite",
    "ValidationSummary",
    "ValidationTest",
    "WireModel",
    "derive_status",
]
