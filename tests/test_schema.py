from __future__ import annotations

import pytest
from pydantic import ValidationError

from fin_graph_validation.schema import EXPECTED_SCHEMA, load_schema


def test_expected_schema_declares_every_entity_type() -> None:
    assert list(EXPECTED_SCHEMA.nodes) == [
        "Transaction",
        "AFE",
        "Deck",
        "BillingCategory",
        "Owner",
        "Invoice",
        "Payment",
    ]
    assert EXPECTED_SCHEMA.nodes["Transaction"].count == 200
    assert EXPECTED_SCHEMA.nodes["Transaction"].unique_constraints == ["txn_id"]
    assert EXPECTED_SCHEMA.total_expected_nodes() == 380


def test_only_relationships_with_expected_counts_are_counted() -> None:
    counted = [rel_type for rel_type, _ in EXPECTED_SCHEMA.counted_relationships()]

    assert counted == ["CHARGED_TO", "FUNDED_BY", "PAYS"]
    assert "ALLOCATED_TO" in EXPECTED_SCHEMA.relationships
    assert EXPECTED_SCHEMA.relationships["ALLOCATED_TO"].cardinality == "N:M"


def test_schema_serialises_with_wire_names() -> None:
    payload = EXPECTED_SCHEMA.model_dump(mode="json", by_alias=True, exclude_none=True)

    charged_to = payload["relationships"]["CHARGED_TO"]
    assert charged_to["from"] == "Transaction"
    assert charged_to["to"] == "Deck"
    assert charged_to["expectedCount"] == 200
    assert "expectedCount" not in payload["relationships"]["ALLOCATED_TO"]
    assert "requiredProperties" in payload["nodes"]["AFE"]


def test_unknown_relationship_endpoint_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        load_schema(
            {
                "nodes": {"Transaction": {"count": 1}},
                "relationships": {
                    "CHARGED_TO": {"from": "Transaction", "to": "Deck", "cardinality": "N:1"}
                },
            }
        )

    assert "Deck" in str(exc.value)


def test_negative_node_count_is_rejected() -> None:
    with pytest.raises(ValidationError):
        load_schema({"nodes": {"Transaction": {"count": -1}}})
