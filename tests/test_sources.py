from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from fin_graph_validation.sources import SnapshotError, load_snapshot
from fin_graph_validation.validation.report import run_validation


def _write(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _write_snapshot(data_dir: Path) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    _write(
        data_dir / "transactions.json",
        [
            {
                "txnId": 1,
                "txnDate": "2024-02-01",
                "amount": 250.5,
                "status": "posted",
                "deckId": 1,
                "afeId": 7,
                "owners": [
                    {"ownerId": 3, "ownerName": "Acme", "allocationPercentage": 100}
                ],
            },
            {"txnId": 2, "amount": 10},
        ],
    )
    _write(data_dir / "afes.json", [{"afeId": 7, "afeNumber": "AFE-007", "totalBudget": 500}])
    _write(data_dir / "decks.json", [{"deckId": 1, "deckCode": "D01"}])
    _write(data_dir / "owners.json", [{"ownerId": 3, "ownerName": "Acme"}])


def test_load_snapshot_reads_camel_case_records(tmp_path: Path) -> None:
    _write_snapshot(tmp_path)

    snapshot = load_snapshot(
        tmp_path, extra_node_counts={"Invoice": 50}, environment="staging"
    )

    assert len(snapshot.transactions) == 2
    first = snapshot.transactions[0]
    assert first.afe_id == 7
    assert first.owners[0].owner_name == "Acme"
    assert snapshot.transactions[1].deck_id is None
    assert snapshot.authorizations[0].total_budget == 500.0
    assert snapshot.extra_node_counts == {"Invoice": 50}
    assert snapshot.environment == "staging"


def test_metadata_counts_take_precedence(tmp_path: Path) -> None:
    _write_snapshot(tmp_path)
    _write(
        tmp_path / "metadata.json",
        {
            "nodeCounts": {"Invoice": 48, "Payment": "40", "Broken": "n/a"},
            "relationshipCounts": {"PAYS": 39},
            "totalTransactions": 2,
        },
    )

    snapshot = load_snapshot(
        tmp_path,
        extra_node_counts={"Invoice": 50, "BillingCategory": 25},
        extra_relationship_counts={"PAYS": 40},
    )

    assert snapshot.extra_node_counts == {"Invoice": 48, "BillingCategory": 25, "Payment": 40}
    assert snapshot.extra_relationship_counts == {"PAYS": 39}


def test_missing_files_load_as_empty_collections(tmp_path: Path) -> None:
    _write(tmp_path / "transactions.json", [{"txnId": 1}])

    snapshot = load_snapshot(tmp_path)

    assert len(snapshot.transactions) == 1
    assert snapshot.authorizations == []
    assert snapshot.cost_centers == []
    assert snapshot.owners == []


def test_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_snapshot(tmp_path / "absent")


@pytest.mark.parametrize(
    "content",
    ["{not json", json.dumps({"txnId": 1}), json.dumps([{"amount": "lots"}])],
)
def test_unreadable_records_raise_snapshot_error(tmp_path: Path, content: str) -> None:
    (tmp_path / "transactions.json").write_text(content, encoding="utf-8")

    with pytest.raises(SnapshotError):
        load_snapshot(tmp_path)


def test_null_owner_list_does_not_abort_the_run(tmp_path: Path) -> None:
    _write(
        tmp_path / "transactions.json",
        [{"txnId": 1, "amount": 5, "deckId": 1, "afeId": 1, "owners": None}],
    )

    snapshot = load_snapshot(tmp_path)
    report = run_validation(snapshot)

    assert snapshot.transactions[0].owners == []
    integrity = next(s for s in report.suites if s.name == "Data Integrity")
    allocation = next(t for t in integrity.tests if t.id == "allocation-integrity")
    assert allocation.status == "passed"
