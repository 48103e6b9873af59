from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from fin_graph_validation.models import (
    Authorization,
    Snapshot,
    Transaction,
)
from fin_graph_validation.schema import EXPECTED_SCHEMA, ExpectedSchema
from fin_graph_validation.validation.profile import EntityProfile, profile_snapshot
from fin_graph_validation.validation.thresholds import ALLOCATION_TOLERANCE_PCT

T = TypeVar("T")

MISSING_DECK_KEY = "Transaction without Deck"
MISSING_AFE_KEY = "Transaction without AFE"

COMPLETENESS_FIELDS = (
    "txn_id",
    "amount",
    "txn_date",
    "status",
    "deck_id",
    "afe_id",
    "description",
)


@dataclass
class IntegritySignals:
    orphaned_nodes: Dict[str, int] = field(default_factory=dict)
    invalid_allocations: int = 0
    over_budget_afes: int = 0
    missing_relationships: Dict[str, int] = field(default_factory=dict)

    @property
    def total_orphans(self) -> int:
        return sum(self.orphaned_nodes.values())

    @property
    def missing_authorization_refs(self) -> int:
        return self.missing_relationships.get(MISSING_AFE_KEY, 0)


@dataclass
class QualityMetrics:
    completeness_score: float = 100.0
    consistency_score: float = 100.0
    accuracy_score: float = 100.0


@dataclass
class ValidationInputs:
    node_counts: Dict[str, int]
    relationship_counts: Dict[str, int]
    integrity: IntegritySignals
    quality: QualityMetrics
    profiles: Optional[List[EntityProfile]] = None


def _populated(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def count_by_type(snapshot: Snapshot) -> Dict[str, int]:
    counts = {
        "Transaction": len(snapshot.transactions),
        "AFE": len(snapshot.authorizations),
        "Deck": len(snapshot.cost_centers),
        "Owner": len(snapshot.owners),
    }
    for node_type, count in snapshot.extra_node_counts.items():
        counts.setdefault(node_type, int(count))
    return counts


def count_relationship(records: Iterable[T], predicate: Callable[[T], bool]) -> int:
    return sum(1 for record in records if predicate(record))


def count_allocations(transactions: Iterable[Transaction]) -> int:
    """Allocation edges are many-to-many, so every owner entry is one edge."""
    return sum(len(txn.owners) for txn in transactions)


def count_relationships(snapshot: Snapshot) -> Dict[str, int]:
    transactions = snapshot.transactions
    counts = {
        "CHARGED_TO": count_relationship(transactions, lambda t: _populated(t.deck_id)),
        "FUNDED_BY": count_relationship(transactions, lambda t: _populated(t.afe_id)),
        "CATEGORIZED_AS": count_relationship(
            transactions, lambda t: _populated(t.billing_category)
        ),
        "ALLOCATED_TO": count_allocations(transactions),
    }
    for rel_type, count in snapshot.extra_relationship_counts.items():
        counts.setdefault(rel_type, int(count))
    return counts


def _allocation_total(txn: Transaction) -> float:
    return sum(owner.allocation_percentage or 0.0 for owner in txn.owners)


def check_allocation_integrity(
    transactions: Iterable[Transaction],
    tolerance: float = ALLOCATION_TOLERANCE_PCT,
) -> int:
    invalid = 0
    for txn in transactions:
        if not txn.owners:
            continue
        if abs(_allocation_total(txn) - 100.0) > tolerance:
            invalid += 1
    return invalid


def authorization_spending(transactions: Iterable[Transaction]) -> Dict[int, float]:
    spending: Dict[int, float] = defaultdict(float)
    for txn in transactions:
        if txn.afe_id is None:
            continue
        spending[txn.afe_id] += txn.amount or 0.0
    return dict(spending)


def check_budget_overruns(
    transactions: Iterable[Transaction],
    authorizations: Iterable[Authorization],
) -> int:
    spending = authorization_spending(transactions)
    over_budget = 0
    for afe in authorizations:
        if afe.afe_id is None:
            continue
        # Compare at cent precision so float summation noise cannot flip the result.
        spent = round(spending.get(afe.afe_id, 0.0), 2)
        if spent > (afe.total_budget or 0.0):
            over_budget += 1
    return over_budget


def find_missing_relationships(transactions: Sequence[Transaction]) -> Dict[str, int]:
    return {
        MISSING_DECK_KEY: count_relationship(
            transactions, lambda t: not _populated(t.deck_id)
        ),
        MISSING_AFE_KEY: count_relationship(
            transactions, lambda t: not _populated(t.afe_id)
        ),
    }


def find_orphaned_nodes(snapshot: Snapshot) -> Dict[str, int]:
    transactions = snapshot.transactions
    deck_refs = {t.deck_id for t in transactions if t.deck_id is not None}
    afe_refs = {t.afe_id for t in transactions if t.afe_id is not None}
    owner_refs = {
        owner.owner_id
        for t in transactions
        for owner in t.owners
        if owner.owner_id is not None
    }
    return {
        "Transaction": count_relationship(
            transactions,
            lambda t: t.deck_id is None and t.afe_id is None and not t.owners,
        ),
        "AFE": count_relationship(
            snapshot.authorizations, lambda a: a.afe_id not in afe_refs
        ),
        "Deck": count_relationship(
            snapshot.cost_centers, lambda d: d.deck_id not in deck_refs
        ),
        "Owner": count_relationship(
            snapshot.owners, lambda o: o.owner_id not in owner_refs
        ),
    }


def compute_quality_metrics(
    transactions: Sequence[Transaction],
    allocation_tolerance: float = ALLOCATION_TOLERANCE_PCT,
) -> QualityMetrics:
    total = len(transactions)
    with_allocations = [txn for txn in transactions if txn.owners]
    invalid = check_allocation_integrity(with_allocations, allocation_tolerance)
    accuracy = 100.0 - invalid * 100.0 / max(len(with_allocations), 1)

    if total == 0:
        return QualityMetrics(accuracy_score=accuracy)

    complete = count_relationship(
        transactions,
        lambda t: all(_populated(getattr(t, name)) for name in COMPLETENESS_FIELDS),
    )
    charged_to = count_relationship(transactions, lambda t: _populated(t.deck_id))
    funded_by = count_relationship(transactions, lambda t: _populated(t.afe_id))
    return QualityMetrics(
        completeness_score=complete * 100.0 / total,
        consistency_score=(charged_to * 100.0 / total + funded_by * 100.0 / total) / 2,
        accuracy_score=accuracy,
    )


def compute_integrity_signals(
    snapshot: Snapshot,
    allocation_tolerance: float = ALLOCATION_TOLERANCE_PCT,
) -> IntegritySignals:
    transactions = snapshot.transactions
    return IntegritySignals(
        orphaned_nodes=find_orphaned_nodes(snapshot),
        invalid_allocations=check_allocation_integrity(
            transactions, allocation_tolerance
        ),
        over_budget_afes=check_budget_overruns(transactions, snapshot.authorizations),
        missing_relationships=find_missing_relationships(transactions),
    )


def compute_validation_inputs(
    snapshot: Snapshot,
    *,
    schema: ExpectedSchema = EXPECTED_SCHEMA,
    allocation_tolerance: float = ALLOCATION_TOLERANCE_PCT,
    profile: bool = False,
) -> ValidationInputs:
    return ValidationInputs(
        node_counts=count_by_type(snapshot),
        relationship_counts=count_relationships(snapshot),
        integrity=compute_integrity_signals(snapshot, allocation_tolerance),
        quality=compute_quality_metrics(snapshot.transactions, allocation_tolerance),
        profiles=profile_snapshot(snapshot, schema) if profile else None,
    )


__all__ = [
    "COMPLETENESS_FIELDS",
    "IntegritySignals",
    "MISSING_AFE_KEY",
    "MISSING_DECK_KEY",
    "QualityMetrics",
    "ValidationInputs",
    "authorization_spending",
    "check_allocation_integrity",
    "check_budget_overruns",
    "compute_integrity_signals",
    "compute_quality_metrics",
    "compute_validation_inputs",
    "count_allocations",
    "count_by_type",
    "count_relationship",
    "count_relationships",
    "find_missing_relationships",
    "find_orphaned_nodes",
]
