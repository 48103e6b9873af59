from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

import polars as pl

from fin_graph_validation.models import Snapshot, ValidationReport
from fin_graph_validation.utils.io import write_csv_atomic, write_json_atomic
from fin_graph_validation.validation.report import run_validation

logger = logging.getLogger("fin_graph_validation.export")

FAILED_MESSAGE = "Failed to run validation"
REPORT_FILE = "validation_report.json"

NODE_COLUMNS = ("node_type", "expected", "actual", "match", "difference")
RELATIONSHIP_COLUMNS = (
    "relationship_type",
    "from_type",
    "to_type",
    "expected",
    "actual",
    "match",
    "difference",
)
ISSUE_COLUMNS = ("type", "severity", "node_type", "description", "affected_count")
TEST_COLUMNS = (
    "suite",
    "id",
    "name",
    "category",
    "status",
    "severity",
    "message",
    "expected",
    "actual",
    "difference",
    "percentage",
)


def report_payload(report: ValidationReport) -> Dict[str, Any]:
    return report.model_dump(mode="json", by_alias=True, exclude_none=True)


def success_envelope(report: ValidationReport) -> Dict[str, Any]:
    return {"success": True, "data": report_payload(report)}


def error_envelope(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message}


def run_validation_envelope(
    load: Callable[[], Snapshot], **kwargs: Any
) -> Tuple[Dict[str, Any], int]:
    """Load a snapshot and validate it, returning ``(envelope, status_code)``.

    Any failure yields an error envelope and a 500; no partial report is
    produced.
    """
    start = time.perf_counter()
    try:
        snapshot = load()
        report = run_validation(snapshot, started_at=start, **kwargs)
    except Exception as exc:
        logger.exception("Error running validation")
        return error_envelope(str(exc) or FAILED_MESSAGE), 500
    return success_envelope(report), 200


def _frame(rows: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> pl.DataFrame:
    data = {column: [row.get(column) for row in rows] for column in columns}
    # Columns with no values at all come back untyped.
    return pl.DataFrame(data, strict=False).with_columns(
        pl.col(pl.Null).cast(pl.String)
    )


def node_comparisons_frame(report: ValidationReport) -> pl.DataFrame:
    return _frame([row.model_dump() for row in report.node_comparisons], NODE_COLUMNS)


def relationship_comparisons_frame(report: ValidationReport) -> pl.DataFrame:
    return _frame(
        [row.model_dump() for row in report.relationship_comparisons],
        RELATIONSHIP_COLUMNS,
    )


def issues_frame(report: ValidationReport) -> pl.DataFrame:
    return _frame([issue.model_dump() for issue in report.integrity_issues], ISSUE_COLUMNS)


def results_frame(report: ValidationReport) -> pl.DataFrame:
    rows: List[Dict[str, Any]] = []
    for suite in report.suites:
        for test in suite.tests:
            result = test.result
            metrics = result.metrics if result is not None else None
            rows.append(
                {
                    "suite": suite.name,
                    "id": test.id,
                    "name": test.name,
                    "category": test.category,
                    "status": test.status,
                    "severity": result.severity if result else None,
                    "message": result.message if result else None,
                    "expected": float(metrics.expected) if metrics else None,
                    "actual": float(metrics.actual) if metrics else None,
                    "difference": float(metrics.difference) if metrics else None,
                    "percentage": metrics.percentage if metrics else None,
                }
            )
    return _frame(rows, TEST_COLUMNS)


def write_report_bundle(
    report: ValidationReport, out_dir: Path, *, csv: bool = True
) -> Dict[str, Path]:
    out_path = Path(out_dir)
    written: Dict[str, Path] = {"report": out_path / REPORT_FILE}
    write_json_atomic(written["report"], report_payload(report))

    if csv:
        frames = {
            "node_comparisons": node_comparisons_frame(report),
            "relationship_comparisons": relationship_comparisons_frame(report),
            "integrity_issues": issues_frame(report),
            "tests": results_frame(report),
        }
        for name, frame in frames.items():
            target = out_path / f"{name}.csv"
            write_csv_atomic(target, frame)
            written[name] = target

    logger.info("Wrote %d report files to %s", len(written), out_path)
    return written


__all__ = [
    "FAILED_MESSAGE",
    "REPORT_FILE",
    "error_envelope",
    "issues_frame",
    "node_comparisons_frame",
    "relationship_comparisons_frame",
    "report_payload",
    "results_frame",
    "run_validation_envelope",
    "success_envelope",
    "write_report_bundle",
]
