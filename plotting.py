import os
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from loguru import logger
from matplotlib.ticker import FuncFormatter
from typing import List, Optional

from config import ProjectionConfig
from constants import CLIENT_LINE_COLOR, COMPARISON_LINE_COLOR


def _thousands_formatter(x_val, pos):
    return f"${x_val / 1e3:,.0f}K" if x_val != 0 else "0"


def _save_figure(filename: str, dpi_setting: int, label: str) -> None:
    try:
        file_directory = os.path.dirname(filename)
        if file_directory:
            os.makedirs(file_directory, exist_ok=True)

        plt.savefig(filename, dpi=dpi_setting)
        logger.info(f"{label} plot saved to {filename} (DPI: {dpi_setting})")
    except Exception as e:
        logger.exception(f"Error saving {label.lower()} plot '{filename}': {e}")
    finally:
        plt.close()


def plot_projection_comparison(
    result,
    input_config: ProjectionConfig,
    filename: str,
    dpi_setting: int = 150,
):
    """
    Plots contract value and benefit base for the client contract and the comparison
    product, with annual income as bars and a marker at the income start year.

    Args:
        result: ComparisonResult from the scenario simulator.
        input_config: Scenario settings, used for the title and income start year.
        filename: The full path and filename to save the plot to.
        dpi_setting: The DPI (dots per inch) for the saved image.
    """
    if not result.client:
        logger.warning(f"No trajectory data to plot for '{filename}'. Skipping.")
        return

    fig, (ax_value, ax_income) = plt.subplots(
        2, 1, figsize=(12, 8), sharex=True, gridspec_kw={"height_ratios": [3, 1]}
    )

    years = np.array([p.year for p in result.client])
    series = [
        ("Client", result.client, CLIENT_LINE_COLOR, result.client_payout_rate),
        ("Comparison", result.comparison, COMPARISON_LINE_COLOR, result.comparison_payout_rate),
    ]

    for name, points, color, rate in series:
        ax_value.plot(
            years,
            [p.value for p in points],
            color=color,
            linewidth=1.8,
            label=f"{name} Contract Value ({rate * 100:.2f}% payout)",
        )
        ax_value.plot(
            years,
            [p.benefit_base for p in points],
            color=color,
            linestyle="--",
            linewidth=1.0,
            label=f"{name} Benefit Base",
        )

    bar_width = 0.4
    ax_income.bar(
        years - bar_width / 2,
        [p.income for p in result.client],
        width=bar_width,
        color=CLIENT_LINE_COLOR,
        label="Client Income",
    )
    ax_income.bar(
        years + bar_width / 2,
        [p.income for p in result.comparison],
        width=bar_width,
        color=COMPARISON_LINE_COLOR,
        label="Comparison Income",
    )

    income_year = years[0] + input_config.income_start
    if income_year <= years[-1]:
        for ax in (ax_value, ax_income):
            ax.axvline(
                x=income_year,
                color="black",
                linestyle="--",
                linewidth=1.0,
                label="_nolegend_" if ax is ax_income else f"Income Starts ({income_year})",
            )
    else:
        logger.info(
            f"Income start {income_year} is beyond the plot's x-axis range ({years[-1]}). Line not plotted."
        )

    ax_value.set_title(
        f"Annuity Projection - Scenario: {input_config.Nickname} ({input_config.mode} returns)",
        fontsize=11,
    )
    ax_value.set_ylabel("Balance", fontsize=9)
    ax_income.set_ylabel("Annual Income", fontsize=9)
    ax_income.set_xlabel("Year", fontsize=9)
    for ax in (ax_value, ax_income):
        ax.yaxis.set_major_formatter(FuncFormatter(_thousands_formatter))
        ax.tick_params(axis="both", which="major", labelsize=7)
        ax.grid(True, linestyle=":", alpha=0.6)
        ax.legend(fontsize=7.5, loc="best")
    ax_value.set_ylim(bottom=0)

    fig.tight_layout()
    _save_figure(filename, dpi_setting, "Projection")


def plot_value_bands(
    percentiles_df: Optional[pd.DataFrame],
    sample_paths: Optional[List[List[float]]],
    input_config: ProjectionConfig,
    filename: str,
    dpi_setting: int = 150,
):
    """Plots Monte Carlo contract-value percentile bands with a few sample paths."""
    if percentiles_df is None or percentiles_df.empty:
        logger.warning(f"No percentile data to plot for '{filename}'. Skipping.")
        return

    plt.figure(figsize=(12, 7))
    ax = plt.gca()
    x_axis = np.asarray(percentiles_df.index)

    if sample_paths:
        for i, path in enumerate(sample_paths):
            if len(path) != len(x_axis):
                logger.warning(
                    f"Sample path {i} length mismatch (expected {len(x_axis)}, got {len(path)}). Skipping."
                )
                continue
            ax.plot(x_axis, path, color="grey", alpha=0.25, linewidth=0.6, label="_nolegend_")

    bands = [
        (0.05, 0.95, "salmon", 0.15, "5th-95th Percentile Range"),
        (0.25, 0.75, "skyblue", 0.25, "25th-75th Percentile Range"),
    ]
    for low, high, color, alpha, label in bands:
        if low in percentiles_df.columns and high in percentiles_df.columns:
            ax.fill_between(
                x_axis,
                percentiles_df[low],
                percentiles_df[high],
                color=color,
                alpha=alpha,
                label=label,
                interpolate=True,
            )

    if 0.5 in percentiles_df.columns:
        ax.plot(
            x_axis,
            percentiles_df[0.5],
            color="blue",
            linewidth=1.8,
            label="Median (50th Percentile)",
        )

    ax.set_xlabel("Year", fontsize=9)
    ax.set_ylabel("Contract Value", fontsize=9)
    ax.set_title(
        f"Contract Value Bands - Scenario: {input_config.Nickname}", fontsize=11
    )
    ax.yaxis.set_major_formatter(FuncFormatter(_thousands_formatter))
    ax.tick_params(axis="both", which="major", labelsize=7)
    ax.grid(True, linestyle=":", alpha=0.6)
    ax.set_xlim(left=x_axis[0], right=x_axis[-1])
    ax.set_ylim(bottom=0)
    ax.legend(fontsize=7.5, loc="best")
    plt.tight_layout()

    _save_figure(filename, dpi_setting, "Bands")
