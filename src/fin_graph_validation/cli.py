from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, cast

import typer

from fin_graph_validation import __version__
from fin_graph_validation.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from fin_graph_validation.export import FAILED_MESSAGE, write_report_bundle
from fin_graph_validation.models import ValidationReport
from fin_graph_validation.schema import EXPECTED_SCHEMA
from fin_graph_validation.sources import load_snapshot
from fin_graph_validation.utils.io import write_json_atomic
from fin_graph_validation.utils.logging import init_logger, run_context
from fin_graph_validation.validation.report import run_validation

app = typer.Typer(
    add_completion=False, help="Validate financial graph snapshots against the expected schema."
)


def _version_callback(ctx: typer.Context, value: Optional[bool]) -> Optional[bool]:
    if not value or ctx.resilient_parsing:
        return value
    typer.echo(__version__)
    raise typer.Exit()


def _context_config(ctx: typer.Context) -> AppConfig:
    ctx_obj = ctx.obj or {}
    config = cast(Optional[AppConfig], ctx_obj.get("config"))
    if config is None:
        config = load_config(
            default_path=DEFAULT_CONFIG_PATH,
            override_yaml_path_or_none=None,
            env=os.environ,
            cli_overrides={},
        )
    return config


def _summary_lines(report: ValidationReport) -> list[str]:
    summary = report.summary
    lines = [
        f"Validation report ({report.environment}, v{report.version})",
        f"  tests: {summary.total}  passed: {summary.passed}  failed: {summary.failed}"
        f"  warnings: {summary.warnings}  success rate: {summary.success_rate:.1f}%",
    ]
    for suite in report.suites:
        failing = [
            test.name for test in suite.tests if test.status in ("failed", "warning")
        ]
        status = "ok" if not failing else f"{len(failing)} flagged"
        lines.append(f"  - {suite.name}: {len(suite.tests)} tests, {status}")
    for recommendation in report.recommendations:
        lines.append(f"  * {recommendation}")
    return lines


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=_version_callback,
        expose_value=False,
        is_eager=True,
        help="Show the application version and exit.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to an alternate YAML configuration file.",
    ),
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        help="Environment label recorded in the report.",
    ),
    profile: Optional[bool] = typer.Option(
        None,
        "--profile/--no-profile",
        help="Add the record profiling suite to the report.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level name, e.g. DEBUG or WARNING.",
    ),
) -> None:
    override_path = config_path if config_path else None
    cli_overrides: dict[str, object] = {}
    if environment is not None:
        cli_overrides["snapshot.environment"] = environment
    if profile is not None:
        cli_overrides["validation.profile_records"] = profile
    if log_level is not None:
        cli_overrides["logging.level"] = log_level

    config = load_config(
        default_path=DEFAULT_CONFIG_PATH,
        override_yaml_path_or_none=override_path,
        env=os.environ,
        cli_overrides=cli_overrides,
    )
    context_obj = ctx.ensure_object(dict)
    context_obj["config"] = config

    logger = init_logger("fin_graph_validation", level=config.logging.level)
    context_obj["logger"] = logger

    if ctx.invoked_subcommand is not None:
        run_cm = run_context(logger)
        run_id = run_cm.__enter__()
        context_obj["run_id"] = run_id

        def _close() -> None:
            run_cm.__exit__(None, None, None)

        ctx.call_on_close(_close)

    if ctx.invoked_subcommand is None:
        typer.echo(
            "Usage: fgv [OPTIONS] COMMAND [ARGS]...\n\nUse 'fgv --help' for more information."
        )
        raise typer.Exit()


@app.command("validate")
def validate_cmd(
    ctx: typer.Context,
    data: Optional[Path] = typer.Option(
        None,
        "--data",
        help="Snapshot directory holding the exported JSON files.",
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        help="Output directory for the report bundle.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with non-zero status if any validation test failed.",
    ),
    no_csv: bool = typer.Option(
        False,
        "--no-csv",
        help="Only write the JSON report.",
    ),
) -> None:
    """Run every validation suite over a snapshot and write the report."""
    ctx_obj = ctx.obj or {}
    logger = ctx_obj.get("logger")
    config = _context_config(ctx)

    data_dir = Path(data) if data else Path(config.paths.data)
    out_dir = Path(out) if out else Path(config.paths.reports)

    try:
        snapshot = load_snapshot(
            data_dir,
            extra_node_counts=config.snapshot.extra_node_counts,
            extra_relationship_counts=config.snapshot.extra_relationship_counts,
            environment=config.snapshot.environment,
        )
        report = run_validation(
            snapshot,
            thresholds=config.validation.thresholds(),
            profile=config.validation.profile_records,
            version=config.report.version,
        )
    except Exception as exc:
        typer.echo(f"{FAILED_MESSAGE}: {exc}", err=True)
        if logger:
            logger.error("Validation failed: %s", exc, exc_info=True)
        raise typer.Exit(code=1) from exc

    written = write_report_bundle(
        report, out_dir, csv=config.report.write_csv and not no_csv
    )

    for line in _summary_lines(report):
        typer.echo(line)
    typer.echo(f"Report written to {written['report']}")

    if strict and report.summary.failed > 0:
        typer.echo(
            f"Strict mode: {report.summary.failed} validation test(s) failed.", err=True
        )
        if logger:
            logger.warning("Strict validation failed with %d failures", report.summary.failed)
        raise typer.Exit(code=1)


@app.command("schema")
def schema_cmd(
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        help="Write the expected schema to this JSON file instead of stdout.",
    ),
) -> None:
    """Show the expected graph schema."""
    payload = EXPECTED_SCHEMA.model_dump(mode="json", by_alias=True, exclude_none=True)
    if out is None:
        typer.echo(json.dumps(payload, indent=2))
        return
    write_json_atomic(Path(out), payload)
    typer.echo(f"Schema written to {out}")


if __name__ == "__main__":  # pragma: no cover
    app()
