"""Plotting utilities for local research artifacts."""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from dvilab.core.utils.errors import ArtifactError

POSITIVE_COLOR = "#2B9348"
NON_POSITIVE_COLOR = "#C1121F"


def get_matplotlib_pyplot() -> Any:
    """
    Import and return ``matplotlib.pyplot`` with a writable config directory.

    Returns:
        Imported pyplot module.
    """
    if "MPLCONFIGDIR" not in os.environ:
        mpl_config_dir = Path("/tmp/dvilab-mplconfig")
        mpl_config_dir.mkdir(parents=True, exist_ok=True)
        os.environ["MPLCONFIGDIR"] = str(mpl_config_dir)

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    return plt


def bar_colors(values: Sequence[float]) -> list[str]:
    """Color positive values one way, negative and zero values another."""
    return [POSITIVE_COLOR if value > 0 else NON_POSITIVE_COLOR for value in values]


def save_returns_bar_chart(
    labels: Sequence[str],
    cumulative_returns: Sequence[float],
    output_path: Path,
    title: str,
    xlabel: str,
) -> Path:
    """
    Save a two-color bar chart of cumulative returns.

    Args:
        labels: Bar labels in display order.
        cumulative_returns: Cumulative return per bar.
        output_path: Output image path.
        title: Chart title.
        xlabel: X-axis label.

    Returns:
        Saved plot path.
    """
    plt = get_matplotlib_pyplot()
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        values = [float(value) for value in cumulative_returns]

        figure, axis = plt.subplots(figsize=(max(8, len(values) * 0.5), 4))
        axis.bar(list(labels), values, color=bar_colors(values))
        axis.axhline(0.0, color="#333333", linewidth=0.8)
        axis.set_title(title)
        axis.set_xlabel(xlabel)
        axis.set_ylabel("Cumulative Return")
        axis.tick_params(axis="x", rotation=45)
        axis.grid(alpha=0.2, axis="y", linestyle="--", linewidth=0.7)
        figure.tight_layout()
        figure.savefig(output_path, dpi=150)
        plt.close(figure)
        return output_path
    except Exception as exc:
        raise ArtifactError(f"Failed to save bar chart to {output_path}: {exc}") from exc


def save_equity_curve_plot(
    equity_curve: pd.Series,
    output_dir: Path,
    title: str = "Equity Curve",
    filename: str = "equity_curve.png",
) -> Path:
    """
    Save the compounded equity curve of a single-window backtest.

    The curve starts from 1.0 and a baseline marks break-even. The line is
    colored by the sign of the final return.

    Args:
        equity_curve: Equity series indexed by datetime.
        output_dir: Artifact directory.
        title: Chart title.
        filename: Output image filename.

    Returns:
        Saved plot path.
    """
    plot_path = output_dir / filename
    plt = get_matplotlib_pyplot()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        final_return = float(equity_curve.iloc[-1]) - 1.0 if not equity_curve.empty else 0.0

        figure, axis = plt.subplots(figsize=(10, 4))
        axis.plot(
            equity_curve.index,
            equity_curve.values,
            linewidth=1.2,
            color=bar_colors([final_return])[0],
        )
        axis.axhline(1.0, color="#333333", linewidth=0.8)
        axis.set_title(f"{title} (cumulative return {final_return:.3f})")
        axis.set_xlabel("Date")
        axis.set_ylabel("Equity")
        axis.grid(alpha=0.25, linestyle="--", linewidth=0.7)
        figure.tight_layout()
        figure.savefig(plot_path, dpi=150)
        plt.close(figure)
        return plot_path
    except Exception as exc:
        raise ArtifactError(f"Failed to save equity curve plot to {plot_path}: {exc}") from exc
