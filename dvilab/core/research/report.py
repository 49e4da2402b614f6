"""Sweep report, JSON summary and chart artifacts."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from dvilab.core.research.sweeps import SweepEntry, SweepResult
from dvilab.core.utils.errors import ArtifactError
from dvilab.core.utils.plotting import save_returns_bar_chart

ENTRY_COLUMNS: list[str] = [
    "label",
    "start",
    "end",
    "threshold",
    "observations",
    "long_count",
    "short_count",
    "long_pct",
    "short_pct",
    "cumulative_return",
]
SKIP_COLUMNS: list[str] = ["label", "error_code", "reason"]

_CHART_LABELS: dict[str, tuple[str, str]] = {
    "period": ("Cumulative Return by Window", "Window"),
    "threshold": ("Cumulative Return by Threshold", "Threshold"),
}


@dataclass(frozen=True)
class SweepArtifacts:
    """Paths of written sweep artifacts."""

    report_path: Path
    summary_json_path: Path
    plot_path: Path | None

    def paths(self) -> list[Path]:
        """Return every written path."""
        written = [self.report_path, self.summary_json_path]
        if self.plot_path is not None:
            written.append(self.plot_path)
        return written


def _markdown_table(rows: list[dict[str, Any]], columns: list[str]) -> list[str]:
    """Render markdown table lines."""
    if not rows:
        return ["_No rows_"]

    header = "| " + " | ".join(columns) + " |"
    separator = "| " + " | ".join(["---"] * len(columns)) + " |"
    body: list[str] = []
    for row in rows:
        rendered_values: list[str] = []
        for column in columns:
            value = row.get(column, "")
            if isinstance(value, float):
                rendered_values.append(f"{value:g}")
            else:
                rendered_values.append(str(value))
        body.append("| " + " | ".join(rendered_values) + " |")
    return [header, separator, *body]


def best_and_worst(result: SweepResult) -> tuple[SweepEntry, SweepEntry] | None:
    """Return the highest and lowest cumulative return entries; ties keep sweep order."""
    if not result.entries:
        return None
    best = max(result.entries, key=lambda entry: entry.summary.cumulative_return)
    worst = min(result.entries, key=lambda entry: entry.summary.cumulative_return)
    return best, worst


def save_sweep_bar_chart(result: SweepResult, output_path: Path) -> Path:
    """
    Render cumulative return per sweep entry as a two-color bar chart.

    Args:
        result: Sweep result in presentation order.
        output_path: Output image path.

    Returns:
        Saved plot path.
    """
    title, xlabel = _CHART_LABELS[result.kind]
    return save_returns_bar_chart(
        labels=[entry.label for entry in result.entries],
        cumulative_returns=[entry.summary.cumulative_return for entry in result.entries],
        output_path=output_path,
        title=f"{result.ticker}: {title}",
        xlabel=xlabel,
    )


def _write_markdown_report(result: SweepResult, output_dir: Path) -> Path:
    """Write the sweep markdown report and return its path."""
    report_path = output_dir / "sweep_report.md"
    lines: list[str] = [
        f"# {result.kind.capitalize()} Sweep Report: {result.ticker}",
        "",
        f"Generated: {datetime.now(tz=UTC).isoformat()}",
        "",
        f"- attempted: {result.attempted}",
        f"- succeeded: {result.succeeded}",
        f"- skipped: {len(result.skipped)}",
        f"- cancelled: {str(result.cancelled).lower()}",
    ]

    extremes = best_and_worst(result)
    if extremes is not None:
        best, worst = extremes
        lines.append(f"- best: {best.label} ({best.summary.cumulative_return:g})")
        lines.append(f"- worst: {worst.label} ({worst.summary.cumulative_return:g})")

    entry_rows = [{"label": entry.label, **entry.summary.to_dict()} for entry in result.entries]
    lines.extend(["", "## Results"])
    lines.extend(_markdown_table(entry_rows, ENTRY_COLUMNS))

    lines.extend(["", "## Skipped"])
    lines.extend(_markdown_table([skip.to_row() for skip in result.skipped], SKIP_COLUMNS))

    report_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return report_path


def write_sweep_artifacts(
    result: SweepResult,
    output_dir: Path,
    save_plot: bool = True,
) -> SweepArtifacts:
    """
    Persist report, JSON summary and optional chart for a sweep.

    Args:
        result: Completed sweep result.
        output_dir: Artifact directory.
        save_plot: Whether to render the bar chart.

    Returns:
        Written artifact paths.
    """
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        report_path = _write_markdown_report(result, output_dir)
        summary_json_path = output_dir / "sweep_summary.json"
        summary_json_path.write_text(
            json.dumps(result.to_dict(), indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise ArtifactError(f"Failed to write sweep artifacts to {output_dir}: {exc}") from exc

    plot_path: Path | None = None
    if save_plot and result.entries:
        plot_path = save_sweep_bar_chart(result, output_dir / "sweep_returns.png")

    return SweepArtifacts(
        report_path=report_path,
        summary_json_path=summary_json_path,
        plot_path=plot_path,
    )
