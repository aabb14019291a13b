"""
Dwelling demand report generation.

Generates reports from generated dwelling profiles including annual
statistics and visualizations. Supports markdown and HTML output.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime
import logging

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.figure

from loadgen.models.calendar import MINUTES_PER_DAY
from loadgen.simulation.engine import DwellingProfile

logger = logging.getLogger(__name__)


@dataclass
class DemandMetrics:
    """
    Aggregated metrics of one dwelling year.

    Attributes:
        run_id: Database run ID
        n_days: Number of simulated days
        lighting_kwh: Annual lighting energy
        appliance_kwh: Annual appliance energy (incl. baseload and cold appliances)
        total_kwh: Annual combined energy
        peak_w: Peak combined demand
        peak_day: Fractional day of year of the peak
        mean_active_fraction: Share of the year with active occupants
        load_factor: Mean over peak combined demand
        lighting_share: Lighting share of the combined energy
        appliance_energy: Annual energy per appliance
    """
    run_id: int
    n_days: int
    lighting_kwh: float
    appliance_kwh: float
    total_kwh: float
    peak_w: float
    peak_day: float
    mean_active_fraction: float
    load_factor: float
    lighting_share: float
    appliance_energy: Dict[str, float]


class ReportGenerator:
    """
    Generate dwelling demand reports.

    Example:
        >>> reporter = ReportGenerator(output_dir="output/reports")
        >>> reporter.add_profile(profile)
        >>> report_path = reporter.generate_report(run_id=1, run_params=params)
    """

    def __init__(self, output_dir: str = "output/reports"):
        """
        Args:
            output_dir: Directory receiving one sub-directory per run
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.profile: Optional[DwellingProfile] = None
        self.daily: Optional[pd.DataFrame] = None

        logger.debug(f"Reports go to {self.output_dir}")

    def add_profile(self, profile: DwellingProfile) -> None:
        """Add the generated dwelling profile to report on."""
        self.profile = profile
        self.daily = profile.daily_summary()
        logger.info(f"Added profile: {len(self.daily)} days")

    def _require_profile(self) -> DwellingProfile:
        if self.profile is None:
            raise ValueError("No profile available. Call add_profile() first.")
        return self.profile

    def compute_metrics(self) -> DemandMetrics:
        """
        Compute annual metrics from the profile.

        Raises:
            ValueError: If no profile has been added
        """
        profile = self._require_profile()
        energy = profile.annual_energy()
        total = profile.total_w

        peak_minute = int(np.argmax(total)) if total.size else 0
        peak_w = float(total[peak_minute]) if total.size else 0.0
        mean_w = float(total.mean()) if total.size else 0.0

        return DemandMetrics(
            run_id=0,  # Set by caller
            n_days=len(self.daily),
            lighting_kwh=energy["lighting_kwh"],
            appliance_kwh=energy["appliance_kwh"],
            total_kwh=energy["total_kwh"],
            peak_w=peak_w,
            peak_day=1.0 + peak_minute / MINUTES_PER_DAY,
            mean_active_fraction=profile.mean_active_fraction,
            load_factor=mean_w / peak_w if peak_w > 0 else 0.0,
            lighting_share=energy["lighting_kwh"] / energy["total_kwh"] if energy["total_kwh"] > 0 else 0.0,
            appliance_energy=dict(profile.appliance_energy),
        )

    def create_energy_plot(self, figsize: Tuple[int, int] = (10, 6)) -> matplotlib.figure.Figure:
        """Daily lighting, appliance and combined energy over the year."""
        self._require_profile()

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(self.daily["day"], self.daily["total_kwh"], linewidth=1.5, color="darkred", label="Total")
        ax.plot(self.daily["day"], self.daily["appliance_kwh"], linewidth=1, label="Appliances")
        ax.plot(self.daily["day"], self.daily["lighting_kwh"], linewidth=1, label="Lighting")

        mean_energy = self.daily["total_kwh"].mean()
        ax.axhline(
            mean_energy,
            color="gray",
            linestyle="--",
            linewidth=1,
            label=f"Mean: {mean_energy:.1f} kWh/day",
        )

        ax.set_xlabel("Day of year", fontsize=12)
        ax.set_ylabel("Energy (kWh/day)", fontsize=12)
        ax.set_title("Daily Electricity Demand", fontsize=14, fontweight="bold")
        ax.grid(True, alpha=0.3)
        ax.legend()

        plt.tight_layout()
        return fig

    def create_load_shape_plot(self, figsize: Tuple[int, int] = (10, 6)) -> matplotlib.figure.Figure:
        """Mean demand by minute of day, averaged over the year."""
        profile = self._require_profile()

        days = profile.occupancy.size // MINUTES_PER_DAY
        shape_total = profile.total_w[: days * MINUTES_PER_DAY].reshape(days, MINUTES_PER_DAY).mean(axis=0)
        shape_light = profile.lighting_w[: days * MINUTES_PER_DAY].reshape(days, MINUTES_PER_DAY).mean(axis=0)
        hours = np.arange(MINUTES_PER_DAY) / 60.0

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(hours, shape_total, linewidth=2, label="Total")
        ax.plot(hours, shape_light, linewidth=1.5, label="Lighting")

        ax.set_xlabel("Hour of day", fontsize=12)
        ax.set_ylabel("Mean demand (W)", fontsize=12)
        ax.set_title("Average Daily Load Shape", fontsize=14, fontweight="bold")
        ax.set_xlim(0, 24)
        ax.grid(True, alpha=0.3)
        ax.legend()

        plt.tight_layout()
        return fig

    def create_end_use_plot(
        self,
        metrics: DemandMetrics,
        figsize: Tuple[int, int] = (8, 8),
    ) -> matplotlib.figure.Figure:
        """Pie chart of annual energy by end use."""
        fig, ax = plt.subplots(figsize=figsize)

        shares = {"Lighting": metrics.lighting_kwh}
        shares.update({name: kwh for name, kwh in metrics.appliance_energy.items() if kwh > 0})
        other = metrics.appliance_kwh - sum(metrics.appliance_energy.values())
        if other > 0:
            shares["Baseload"] = other

        ax.pie(
            list(shares.values()),
            labels=list(shares.keys()),
            autopct="%1.1f%%",
            startangle=90,
            textprops={"fontsize": 10},
        )
        ax.set_title("Annual Energy by End Use", fontsize=14, fontweight="bold")

        plt.tight_layout()
        return fig

    @staticmethod
    def _metric_rows(metrics: DemandMetrics) -> List[Tuple[str, str]]:
        return [
            ("Run ID", str(metrics.run_id)),
            ("Simulated Days", str(metrics.n_days)),
            ("Lighting (kWh/yr)", f"{metrics.lighting_kwh:,.0f}"),
            ("Appliances (kWh/yr)", f"{metrics.appliance_kwh:,.0f}"),
            ("Total (kWh/yr)", f"{metrics.total_kwh:,.0f}"),
            ("Peak Demand (W)", f"{metrics.peak_w:,.0f}"),
            ("Peak Day", f"{metrics.peak_day:.3f}"),
            ("Active Occupancy", f"{metrics.mean_active_fraction:.1%}"),
            ("Load Factor", f"{metrics.load_factor:.3f}"),
            ("Lighting Share", f"{metrics.lighting_share:.1%}"),
        ]

    def create_summary_table(self, metrics: DemandMetrics) -> str:
        """Markdown table of the headline metrics."""
        rows = ["| Metric | Value |", "|---|---|"]
        rows += [f"| {label} | {value} |" for label, value in self._metric_rows(metrics)]
        return "\n".join(rows)

    def generate_report(
        self,
        run_id: int,
        run_params: Optional[Dict[str, Any]] = None,
        format: str = "markdown",
        include_plots: bool = True,
    ) -> str:
        """
        Write a report of the profile for one run.

        Args:
            run_id: Archive run ID, used to name the report directory
            run_params: Configuration to embed (markdown only)
            format: "markdown" or "html"
            include_plots: Save and link the PNG figures

        Returns:
            Path of the written report

        Raises:
            ValueError: If the format is unknown or no profile was added
        """
        writers = {"markdown": self._write_markdown, "html": self._write_html}
        if format not in writers:
            raise ValueError(f"Unknown format: {format}")

        metrics = self.compute_metrics()
        metrics.run_id = run_id

        run_dir = self.output_dir / f"run_{run_id}"
        run_dir.mkdir(exist_ok=True)
        plots = self._save_plots(metrics, run_dir) if include_plots else {}

        report_path = writers[format](metrics, run_params, plots, run_dir)
        logger.info(f"Wrote {format} report for run {run_id} -> {report_path}")
        return str(report_path)

    def _save_plots(self, metrics: DemandMetrics, run_dir: Path) -> Dict[str, str]:
        """Save every figure as PNG; returns title -> file name."""
        figures = [
            ("Daily Energy", "daily_energy.png", self.create_energy_plot()),
            ("Load Shape", "load_shape.png", self.create_load_shape_plot()),
            ("End Use", "end_use.png", self.create_end_use_plot(metrics)),
        ]
        saved = {}
        for title, filename, fig in figures:
            fig.savefig(run_dir / filename, dpi=150, bbox_inches="tight")
            plt.close(fig)
            saved[title] = filename
        logger.debug(f"Saved {len(saved)} plots to {run_dir}")
        return saved

    @staticmethod
    def _stamp() -> str:
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def _write_markdown(
        self,
        metrics: DemandMetrics,
        run_params: Optional[Dict[str, Any]],
        plots: Dict[str, str],
        run_dir: Path,
    ) -> Path:
        parts = [
            f"# Dwelling Demand Report - Run {metrics.run_id}",
            f"_Generated {self._stamp()}_",
            "## Summary",
            self.create_summary_table(metrics),
        ]

        if metrics.appliance_energy:
            energy = pd.Series(metrics.appliance_energy, name="kWh/yr").sort_values(ascending=False)
            rows = ["| Appliance | kWh/yr |", "|---|---|"]
            rows += [f"| {name} | {kwh:,.1f} |" for name, kwh in energy.items()]
            parts += ["## Appliances", "\n".join(rows)]

        if run_params:
            parts += ["## Configuration", "```json\n" + json.dumps(run_params, indent=2, default=str) + "\n```"]

        if plots:
            parts.append("## Figures")
            parts += [f"### {title}\n\n![{title}]({filename})" for title, filename in plots.items()]

        parts += ["## Notes", self._describe(metrics)]

        report_path = run_dir / f"report_run_{metrics.run_id}.md"
        report_path.write_text("\n\n".join(parts) + "\n")
        return report_path

    def _write_html(
        self,
        metrics: DemandMetrics,
        run_params: Optional[Dict[str, Any]],
        plots: Dict[str, str],
        run_dir: Path,
    ) -> Path:
        table = pd.DataFrame(self._metric_rows(metrics), columns=["Metric", "Value"]).to_html(
            index=False, border=0
        )
        figures = "\n".join(
            f"<figure><img src='{filename}' alt='{title}'><figcaption>{title}</figcaption></figure>"
            for title, filename in plots.items()
        )
        title = f"Dwelling Demand Report - Run {metrics.run_id}"
        page = HTML_PAGE.format(
            title=title,
            stamp=self._stamp(),
            table=table,
            figures=figures,
            notes=self._describe(metrics).replace("\n\n", "</p><p>"),
        )

        report_path = run_dir / f"report_run_{metrics.run_id}.html"
        report_path.write_text(page)
        return report_path

    def _describe(self, metrics: DemandMetrics) -> str:
        notes = [
            f"The dwelling used {metrics.total_kwh:,.0f} kWh over {metrics.n_days} days, "
            f"{metrics.lighting_share:.1%} of it for lighting.",
            f"Combined demand peaked at {metrics.peak_w:,.0f} W on day {int(metrics.peak_day)} "
            f"(load factor {metrics.load_factor:.3f}).",
        ]
        if metrics.appliance_energy:
            name, kwh = max(metrics.appliance_energy.items(), key=lambda x: x[1])
            notes.append(f"{name} was the largest appliance load at {kwh:,.0f} kWh.")
        notes.append(f"Occupants were active {metrics.mean_active_fraction:.1%} of the year.")
        return "\n\n".join(notes)


HTML_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
body {{ font-family: Helvetica, sans-serif; max-width: 900px; margin: 2em auto; color: #222; }}
table.dataframe {{ border-collapse: collapse; }}
table.dataframe th, table.dataframe td {{ padding: 4px 14px; border-bottom: 1px solid #ccc; text-align: left; }}
figure {{ margin: 1.5em 0; }}
figure img {{ max-width: 100%; }}
.stamp {{ color: #888; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p class="stamp">Generated {stamp}</p>
<h2>Summary</h2>
{table}
{figures}
<h2>Notes</h2>
<p>{notes}</p>
</body>
</html>
"""
