"""DVILab command-line interface."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import typer

from dvilab.core.backtest.types import BacktestSummary
from dvilab.core.config import AppConfig, dump_config_to_yaml, resolve_config
from dvilab.core.research.report import write_sweep_artifacts
from dvilab.core.research.sweeps import SweepResult
from dvilab.core.services import run_period_sweep, run_single_detailed, run_threshold_sweep
from dvilab.core.utils.errors import exit_code_for_exception
from dvilab.core.utils.logging import configure_logging, get_logger
from dvilab.core.utils.manifest import RunManifestWriter, make_run_id
from dvilab.core.utils.plotting import save_equity_curve_plot

app = typer.Typer(help="DVILab CLI", no_args_is_help=True)
INTERRUPTED_EXIT_CODE = 130

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Path to YAML configuration file. Defaults apply when omitted.",
)
LOG_LEVEL_OPTION = typer.Option(None, "--log-level", help="Override the configured log level.")
TICKER_OPTION = typer.Option(..., "--ticker", help="Provider ticker, for example JNJ.US.")
START_OPTION = typer.Option(..., "--start", help="Start date as YYYY or YYYYMMDD.")
END_OPTION = typer.Option(..., "--end", help="End date as YYYY or YYYYMMDD.")
THRESHOLD_OPTION = typer.Option(0.5, "--threshold", help="DVI value below which to go long.")
PLOT_OPTION = typer.Option(True, "--plot/--no-plot", help="Save chart artifacts.")
WORKERS_OPTION = typer.Option(
    None,
    "--workers",
    min=1,
    help="Concurrent evaluations (defaults to sweep.max_workers).",
)
PERIOD_YEARS_OPTION = typer.Option(..., "--period-years", min=1, help="Window length in years.")
RANGE_START_OPTION = typer.Option(..., "--range-start", help="First year of the sweep range.")
RANGE_END_OPTION = typer.Option(..., "--range-end", help="Last year of the sweep range.")
LOW_OPTION = typer.Option(..., "--low", help="First threshold.")
HIGH_OPTION = typer.Option(..., "--high", help="Last threshold, inclusive.")
INCREMENT_OPTION = typer.Option(..., "--increment", help="Threshold step.")
HOST_OPTION = typer.Option("127.0.0.1", "--host", help="Bind host.")
PORT_OPTION = typer.Option(8020, "--port", min=1, max=65535, help="Bind port.")

_SUMMARY_FIELDS: tuple[str, ...] = (
    "start",
    "end",
    "threshold",
    "observations",
    "long_count",
    "short_count",
    "long_pct",
    "short_pct",
    "cumulative_return",
)


@app.callback()
def callback() -> None:
    """DVILab CLI commands."""


def _print_summary(summary: BacktestSummary) -> None:
    """Print summary fields in deterministic order."""
    values = summary.to_dict()
    for key in _SUMMARY_FIELDS:
        typer.echo(f"{key}={values[key]}")


def _print_sweep(result: SweepResult) -> None:
    """Print sweep table, skipped iterations and counts."""
    typer.echo("label | observations | long | short | long_pct | short_pct | cumulative_return")
    for entry in result.entries:
        summary = entry.summary
        typer.echo(
            f"{entry.label} | {summary.observations} | {summary.long_count} | "
            f"{summary.short_count} | {summary.long_pct:.2f} | {summary.short_pct:.2f} | "
            f"{summary.cumulative_return:.3f}"
        )
    for skip in result.skipped:
        typer.echo(f"skipped={skip.label} | {skip.error_code} | {skip.reason}")
    typer.echo(f"attempted={result.attempted}")
    typer.echo(f"succeeded={result.succeeded}")
    typer.echo(f"skipped_count={len(result.skipped)}")
    if result.cancelled:
        typer.echo("cancelled=true")


def _handle_cli_exception(
    logger_name: str,
    context: str,
    exc: BaseException,
    manifest_writer: RunManifestWriter | None = None,
    exit_code: int | None = None,
) -> None:
    """Write failure manifest (if available), log diagnostics, and exit with typed code."""
    logger = get_logger(logger_name)
    manifest_path: Path | None = None
    if manifest_writer is not None:
        try:
            manifest_writer.mark_failure(exc)
            manifest_path = manifest_writer.write()
        except Exception as manifest_exc:
            logger.error("Failed to write failure manifest for %s: %s", context, manifest_exc)

    logger.exception("%s failed: %s", context, exc)
    default_code = "interrupted" if isinstance(exc, KeyboardInterrupt) else "internal_error"
    typer.echo(f"error={getattr(exc, 'error_code', default_code)}: {exc}")
    attempted = getattr(exc, "attempted", None)
    if attempted is not None:
        typer.echo(f"attempted={attempted}")
        typer.echo(f"skipped_count={getattr(exc, 'skipped', 0)}")
    if manifest_path is not None:
        typer.echo(f"manifest={manifest_path}")
    resolved_exit_code = exit_code if exit_code is not None else exit_code_for_exception(exc)
    raise typer.Exit(code=resolved_exit_code) from None


def _start_run(
    command: str,
    ticker: str,
    config: Path | None,
    log_level: str | None,
    inputs: dict[str, Any],
) -> tuple[AppConfig, RunManifestWriter]:
    """Load config, configure logging and open a run manifest."""
    app_config = resolve_config(config)
    configure_logging(log_level or app_config.logging.level)
    run_id = make_run_id(command, ticker)
    manifest_writer = RunManifestWriter(
        output_dir=app_config.output.artifacts_dir / run_id,
        command=command,
        run_id=run_id,
        ticker=ticker,
    )
    manifest_writer.set_inputs(
        inputs={**inputs, "config_path": str(config) if config is not None else None},
        config_yaml=dump_config_to_yaml(app_config),
    )
    return app_config, manifest_writer


def _run_sweep_command(
    command: str,
    ticker: str,
    config: Path | None,
    log_level: str | None,
    inputs: dict[str, Any],
    plot: bool,
    execute: Any,
) -> None:
    """Shared flow for sweep commands: run, persist artifacts, print, handle failures."""
    configure_logging()
    logger_name = __name__
    manifest_writer: RunManifestWriter | None = None

    try:
        app_config, manifest_writer = _start_run(command, ticker, config, log_level, inputs)
        result: SweepResult = execute(app_config)
        artifacts = write_sweep_artifacts(
            result,
            output_dir=manifest_writer.output_dir,
            save_plot=plot and app_config.output.save_plots,
        )
        artifact_paths = [str(path) for path in artifacts.paths()]
        manifest_writer.mark_completed(
            summary={
                "attempted": result.attempted,
                "succeeded": result.succeeded,
                "skipped": len(result.skipped),
                "cancelled": result.cancelled,
            },
            artifact_paths=artifact_paths,
            cancelled=result.cancelled,
        )
        manifest_path = manifest_writer.write()
    except KeyboardInterrupt as exc:
        _handle_cli_exception(
            logger_name=logger_name,
            context=f"{command.capitalize()} command",
            exc=exc,
            manifest_writer=manifest_writer,
            exit_code=INTERRUPTED_EXIT_CODE,
        )
    except Exception as exc:
        _handle_cli_exception(
            logger_name=logger_name,
            context=f"{command.capitalize()} command",
            exc=exc,
            manifest_writer=manifest_writer,
        )

    typer.echo(f"ticker={ticker}")
    _print_sweep(result)
    typer.echo(f"report={artifacts.report_path}")
    typer.echo(f"summary_json={artifacts.summary_json_path}")
    if artifacts.plot_path is not None:
        typer.echo(f"chart={artifacts.plot_path}")
    typer.echo(f"manifest={manifest_path}")
    if result.cancelled:
        raise typer.Exit(code=INTERRUPTED_EXIT_CODE)


@app.command("single")
def single(
    ticker: str = TICKER_OPTION,
    start: str = START_OPTION,
    end: str = END_OPTION,
    threshold: float = THRESHOLD_OPTION,
    config: Path | None = CONFIG_OPTION,
    plot: bool = PLOT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Backtest the DVI threshold rule over one date window."""
    configure_logging()
    logger_name = __name__
    manifest_writer: RunManifestWriter | None = None

    try:
        app_config, manifest_writer = _start_run(
            "single",
            ticker,
            config,
            log_level,
            {"ticker": ticker, "start": start, "end": end, "threshold": threshold},
        )
        detail = run_single_detailed(
            ticker=ticker,
            start=start,
            end=end,
            threshold=threshold,
            app_config=app_config,
        )
        artifact_paths: list[str] = []
        if plot and app_config.output.save_plots:
            plot_path = save_equity_curve_plot(
                detail.equity_curve,
                manifest_writer.output_dir,
                title=f"{ticker} DVI threshold {threshold:g}",
            )
            artifact_paths.append(str(plot_path))
        manifest_writer.mark_completed(
            summary=detail.summary.to_dict(),
            artifact_paths=artifact_paths,
        )
        manifest_path = manifest_writer.write()
    except Exception as exc:
        _handle_cli_exception(
            logger_name=logger_name,
            context="Single command",
            exc=exc,
            manifest_writer=manifest_writer,
        )

    typer.echo(f"ticker={ticker}")
    _print_summary(detail.summary)
    for path in artifact_paths:
        typer.echo(f"artifact={path}")
    typer.echo(f"manifest={manifest_path}")


@app.command("periods")
def periods(
    ticker: str = TICKER_OPTION,
    period_years: int = PERIOD_YEARS_OPTION,
    range_start: int = RANGE_START_OPTION,
    range_end: int = RANGE_END_OPTION,
    threshold: float = THRESHOLD_OPTION,
    workers: int | None = WORKERS_OPTION,
    config: Path | None = CONFIG_OPTION,
    plot: bool = PLOT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Backtest every sliding window of --period-years inside a year range."""

    def execute(app_config: AppConfig) -> SweepResult:
        return run_period_sweep(
            ticker=ticker,
            period_years=period_years,
            range_start=range_start,
            range_end=range_end,
            threshold=threshold,
            app_config=app_config,
            max_workers=workers,
            progress_callback=get_logger(__name__).info,
        )

    _run_sweep_command(
        command="periods",
        ticker=ticker,
        config=config,
        log_level=log_level,
        inputs={
            "ticker": ticker,
            "period_years": period_years,
            "range_start": range_start,
            "range_end": range_end,
            "threshold": threshold,
            "workers": workers,
        },
        plot=plot,
        execute=execute,
    )


@app.command("thresholds")
def thresholds(
    ticker: str = TICKER_OPTION,
    start: str = START_OPTION,
    end: str = END_OPTION,
    low: float = LOW_OPTION,
    high: float = HIGH_OPTION,
    increment: float = INCREMENT_OPTION,
    workers: int | None = WORKERS_OPTION,
    config: Path | None = CONFIG_OPTION,
    plot: bool = PLOT_OPTION,
    log_level: str | None = LOG_LEVEL_OPTION,
) -> None:
    """Backtest one window at every threshold from --low to --high inclusive."""

    def execute(app_config: AppConfig) -> SweepResult:
        return run_threshold_sweep(
            ticker=ticker,
            start=start,
            end=end,
            low=low,
            high=high,
            increment=increment,
            app_config=app_config,
            max_workers=workers,
            progress_callback=get_logger(__name__).info,
        )

    _run_sweep_command(
        command="thresholds",
        ticker=ticker,
        config=config,
        log_level=log_level,
        inputs={
            "ticker": ticker,
            "start": start,
            "end": end,
            "low": low,
            "high": high,
            "increment": increment,
            "workers": workers,
        },
        plot=plot,
        execute=execute,
    )


@app.command("serve")
def serve(
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    from dvilab.api.app import CONFIG_ENV_VAR

    configure_logging()
    if config is not None:
        os.environ[CONFIG_ENV_VAR] = str(config)
    uvicorn.run("dvilab.api.app:create_app", factory=True, host=host, port=port)


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
