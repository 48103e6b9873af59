from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import Field, model_validator

from fin_graph_validation.models import WireModel

Cardinality = Literal["N:1", "1:N", "N:M", "1:1"]


class NodeSpec(WireModel):
    count: int = Field(ge=0)
    required_properties: List[str] = []
    unique_constraints: List[str] = []


class RelationshipSpec(WireModel):
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    cardinality: Cardinality
    expected_count: Optional[int] = Field(default=None, ge=0)
    properties: Optional[List[str]] = None


class ExpectedSchema(WireModel):
    nodes: Dict[str, NodeSpec]
    relationships: Dict[str, RelationshipSpec] = {}

    @model_validator(mode="after")
    def _check_endpoints(self) -> "ExpectedSchema":
        unknown: List[str] = []
        for rel_type, spec in self.relationships.items():
            for endpoint in (spec.source, spec.target):
                if endpoint not in self.nodes:
                    unknown.append(f"{rel_type} references unknown node type {endpoint!r}")
        if unknown:
            raise ValueError("; ".join(unknown))
        return self

    def counted_relationships(self) -> List[Tuple[str, RelationshipSpec]]:
        """Relationship types that carry an exact expected count, in registry order."""
        return [
            (rel_type, spec)
            for rel_type, spec in self.relationships.items()
            if spec.expected_count is not None
        ]

    def total_expected_nodes(self) -> int:
        return sum(spec.count for spec in self.nodes.values())


def load_schema(data: Mapping[str, Any]) -> ExpectedSchema:
    return ExpectedSchema.model_validate(data)


# Counts match the graph build that produced the current snapshot.
_EXPECTED_SCHEMA_DATA: Dict[str, Any] = {
    "nodes": {
        "Transaction": {
            "count": 200,
            "requiredProperties": ["txn_id", "amount", "txn_date", "status"],
            "uniqueConstraints": ["txn_id"],
        },
        "AFE": {
            "count": 30,
            "requiredProperties": ["afe_id", "afe_number", "total_budget", "status"],
            "uniqueConstraints": ["afe_id"],
        },
        "Deck": {
            "count": 20,
            "requiredProperties": ["deck_id", "deck_code", "description"],
            "uniqueConstraints": ["deck_id"],
        },
        "BillingCategory": {
            "count": 25,
            "requiredProperties": ["bill_cat_code", "description"],
            "uniqueConstraints": ["bill_cat_code"],
        },
        "Owner": {
            "count": 15,
            "requiredProperties": ["owner_id", "owner_name", "owner_status"],
            "uniqueConstraints": ["owner_id"],
        },
        "Invoice": {
            "count": 50,
            "requiredProperties": ["invoice_id", "invoice_number", "amount"],
            "uniqueConstraints": ["invoice_id"],
        },
        "Payment": {
            "count": 40,
            "requiredProperties": ["payment_id", "payment_number", "amount"],
            "uniqueConstraints": ["payment_id"],
        },
    },
    "relationships": {
        "CHARGED_TO": {
            "from": "Transaction",
            "to": "Deck",
            "expectedCount": 200,
            "cardinality": "N:1",
            "properties": ["amount"],
        },
        "FUNDED_BY": {
            "from": "Transaction",
            "to": "AFE",
            "expectedCount": 200,
            "cardinality": "N:1",
            "properties": ["amount"],
        },
        # Not every transaction carries a billing category.
        "CATEGORIZED_AS": {
            "from": "Transaction",
            "to": "BillingCategory",
            "cardinality": "N:1",
        },
        "ALLOCATED_TO": {
            "from": "Transaction",
            "to": "Owner",
            "cardinality": "N:M",
            "properties": ["allocation_percentage", "allocated_amount"],
        },
        "PAYS": {
            "from": "Payment",
            "to": "Invoice",
            "expectedCount": 40,
            "cardinality": "N:1",
        },
    },
}

EXPECTED_SCHEMA = load_schema(_EXPECTED_SCHEMA_DATA)


__all__ = [
    "EXPECTED_SCHEMA",
    "ExpectedSchema",
    "NodeSpec",
    "RelationshipSpec",
    "load_schema",
]
