from __future__ import annotations

import json
import logging
from pathlib import Path

from typer.testing import CliRunner

from fin_graph_validation import __version__
from fin_graph_validation.cli import app
from fin_graph_validation.export import REPORT_FILE

runner = CliRunner()


def _write_snapshot(data_dir: Path, transaction_count: int = 200) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    transactions = [
        {
            "txnId": index + 1,
            "txnDate": "2024-03-01",
            "amount": 100.0,
            "description": "Compressor rental",
            "status": "posted",
            "deckId": index % 20 + 1,
            "afeId": index % 30 + 1,
            "billingCategory": "LOE",
            "owners": [{"ownerId": index % 15 + 1, "allocationPercentage": 100}],
        }
        for index in range(transaction_count)
    ]
    afes = [
        {"afeId": i, "afeNumber": f"AFE-{i:03d}", "status": "open", "totalBudget": 5000}
        for i in range(1, 31)
    ]
    decks = [
        {"deckId": i, "deckCode": f"D{i:02d}", "description": "Working interest"}
        for i in range(1, 21)
    ]
    owners = [
        {"ownerId": i, "ownerName": f"Owner {i}", "ownerStatus": "active"}
        for i in range(1, 16)
    ]
    for name, payload in (
        ("transactions.json", transactions),
        ("afes.json", afes),
        ("decks.json", decks),
        ("owners.json", owners),
    ):
        (data_dir / name).write_text(json.dumps(payload), encoding="utf-8")


def test_version_flag_prints_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_bare_invocation_prints_usage() -> None:
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "Usage: fgv" in result.output


def test_validate_writes_report_bundle(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    out_dir = tmp_path / "reports"
    _write_snapshot(data_dir)

    result = runner.invoke(app, ["validate", "--data", str(data_dir), "--out", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert "Validation report (static-data, v1.0)" in result.output
    assert "All validation tests passed!" in result.output
    payload = json.loads((out_dir / REPORT_FILE).read_text(encoding="utf-8"))
    assert payload["summary"]["failed"] == 0
    assert len(payload["suites"]) == 4
    for name in ("node_comparisons", "relationship_comparisons", "integrity_issues", "tests"):
        assert (out_dir / f"{name}.csv").exists()


def test_validate_strict_fails_on_failed_tests(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    _write_snapshot(data_dir, transaction_count=198)
    args = ["validate", "--data", str(data_dir), "--out", str(tmp_path / "out")]

    lenient = runner.invoke(app, args)
    strict = runner.invoke(app, args + ["--strict"])

    assert lenient.exit_code == 0, lenient.output
    assert strict.exit_code == 1
    assert "Strict mode: 1 validation test(s) failed." in strict.output
    assert (tmp_path / "out" / REPORT_FILE).exists()


def test_validate_reports_load_failures(tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["validate", "--data", str(tmp_path / "missing"), "--out", str(tmp_path / "out")],
    )

    assert result.exit_code == 1
    assert "Failed to run validation" in result.output
    assert not (tmp_path / "out").exists()


def test_global_options_flow_into_report(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    out_dir = tmp_path / "out"
    _write_snapshot(data_dir)

    result = runner.invoke(
        app,
        [
            "--environment",
            "staging",
            "--profile",
            "validate",
            "--data",
            str(data_dir),
            "--out",
            str(out_dir),
            "--no-csv",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads((out_dir / REPORT_FILE).read_text(encoding="utf-8"))
    assert payload["environment"] == "staging"
    assert payload["suites"][-1]["name"] == "Data Profile"
    assert sorted(path.name for path in out_dir.iterdir()) == [REPORT_FILE]


def test_config_file_overrides_thresholds(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    _write_snapshot(data_dir, transaction_count=195)
    config_path = tmp_path / "strict.yaml"
    config_path.write_text(
        "validation:\n  relationship_tolerance_pct: 1.0\n", encoding="utf-8"
    )

    result = runner.invoke(
        app,
        [
            "--config",
            str(config_path),
            "validate",
            "--data",
            str(data_dir),
            "--out",
            str(tmp_path / "out"),
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads((tmp_path / "out" / REPORT_FILE).read_text(encoding="utf-8"))
    rel_suite = next(s for s in payload["suites"] if s["name"] == "Relationship Validation")
    statuses = {test["id"]: test["status"] for test in rel_suite["tests"]}
    assert statuses["rel-count-CHARGED_TO"] == "failed"
    assert statuses["rel-count-PAYS"] == "passed"


def test_schema_command_prints_and_writes(tmp_path: Path) -> None:
    printed = runner.invoke(app, ["schema"])

    assert printed.exit_code == 0
    schema = json.loads(printed.output)
    assert schema["relationships"]["FUNDED_BY"]["to"] == "AFE"

    target = tmp_path / "schema.json"
    written = runner.invoke(app, ["schema", "--out", str(target)])

    assert written.exit_code == 0
    assert json.loads(target.read_text(encoding="utf-8")) == schema


def test_log_level_option_configures_package_logger() -> None:
    result = runner.invoke(app, ["--log-level", "WARNING", "schema"])

    assert result.exit_code == 0
    assert logging.getLogger("fin_graph_validation").level == logging.WARNING

    runner.invoke(app, ["schema"], env={"FGV_LOG_LEVEL": "DEBUG"})
    assert logging.getLogger("fin_graph_validation").level == logging.DEBUG
