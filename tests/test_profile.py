from __future__ import annotations

import polars as pl
import pytest

from fin_graph_validation.models import Owner, Snapshot, Transaction
from fin_graph_validation.schema import EXPECTED_SCHEMA
from fin_graph_validation.validation.profile import (
    dup_key_count,
    key_null_pct,
    profile_entity,
    profile_snapshot,
    records_frame,
    rows_with_nulls,
)


def _transactions() -> list[Transaction]:
    return [
        Transaction(txn_id=1, amount=10.0, txn_date="2024-01-01", status="posted"),
        Transaction(txn_id=1, amount=5.0, txn_date="2024-01-02", status=""),
        Transaction(txn_id=None, amount=None, txn_date="2024-01-03", status="posted"),
    ]


def test_records_frame_turns_blank_strings_into_nulls() -> None:
    df = records_frame(_transactions(), ["txn_id", "status"])

    assert df.columns == ["txn_id", "status"]
    assert df.get_column("status").null_count() == 1
    assert df.get_column("txn_id").null_count() == 1


def test_frame_helpers() -> None:
    df = pl.DataFrame({"id": [1, 1, 2, None], "name": ["a", None, "b", "c"]})

    assert rows_with_nulls(df, ["id", "name"]) == 2
    assert key_null_pct(df, ["id", "name"]) == 50.0
    assert dup_key_count(df, "id") == 1
    assert dup_key_count(df, "missing") == 0


def test_profile_entity_counts_nulls_and_duplicates() -> None:
    profile = profile_entity(
        "Transaction", _transactions(), EXPECTED_SCHEMA.nodes["Transaction"]
    )

    assert profile.row_count == 3
    assert profile.null_counts == {"txn_id": 1, "amount": 1, "txn_date": 0, "status": 1}
    assert profile.rows_with_nulls == 2
    assert profile.missing_properties == ["txn_id", "amount", "status"]
    assert profile.key_null_pct == pytest.approx(200 / 3)
    assert profile.duplicate_keys == {"txn_id": 1}
    assert profile.total_duplicates == 1


def test_profile_entity_handles_empty_collections() -> None:
    profile = profile_entity("Owner", [], EXPECTED_SCHEMA.nodes["Owner"])

    assert profile.row_count == 0
    assert profile.rows_with_nulls == 0
    assert profile.key_null_pct == 0.0
    assert profile.total_duplicates == 0


def test_profile_snapshot_skips_types_without_records() -> None:
    snapshot = Snapshot(owners=[Owner(owner_id=1, owner_name="Acme", owner_status="active")])

    profiles = profile_snapshot(snapshot, EXPECTED_SCHEMA)

    assert [p.node_type for p in profiles] == ["Transaction", "AFE", "Deck", "Owner"]
    owner = profiles[-1]
    assert owner.row_count == 1
    assert owner.rows_with_nulls == 0
