"""Reporting: CSV, TXT and PNG outputs of a pipeline run."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from src.contracts.alert import AlertEvaluationResult
from src.contracts.analysis import Anomaly, ConsumptionAnalysisResult, ConsumptionStats
from src.contracts.simulation import AccuracyAnalysis, AutoSimulation, SimulationRecord
from src.contracts.tariff import ConsumptionCostCalculation

log = logging.getLogger(__name__)


def _atomic_write(path: str, content: str) -> None:
    """Write *content* to *path* via a temp file + rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(
        dir=str(target.parent),
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def _fmt_opt(value: float | None, fmt: str = ".2f", unit: str = "") -> str:
    return "n/a" if value is None else f"{value:{fmt}}{unit}"


# ═══════════════════════════════════════════════════════════════════════════
#  CSV writers
# ═══════════════════════════════════════════════════════════════════════════


def write_stats_csv(analyses: dict[str, ConsumptionAnalysisResult], path: str) -> None:
    lines = [ConsumptionStats.csv_header()]
    for scope_id, res in analyses.items():
        lines.append(res.stats.to_csv_row(scope_id))
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote stats → %s (%d scopes)", path, len(analyses))


def write_breakdown_csv(analyses: dict[str, ConsumptionAnalysisResult], path: str) -> None:
    lines = ["scope_id,bucket_start,consumption_kwh"]
    rows = 0
    for scope_id, res in analyses.items():
        for entry in res.breakdown:
            lines.append(f"{scope_id},{entry.timestamp.isoformat()},{entry.consumption:.4f}")
            rows += 1
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote breakdown → %s (%d rows)", path, rows)


def write_costs_csv(costs: dict[str, ConsumptionCostCalculation], path: str) -> None:
    lines = [ConsumptionCostCalculation.csv_header()]
    for site, calc in costs.items():
        lines.append(calc.to_csv_row(site))
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote costs → %s (%d sites)", path, len(costs))


def write_anomalies_csv(anomalies: list[Anomaly], path: str) -> None:
    lines = [Anomaly.csv_header()]
    lines.extend(a.to_csv_row() for a in anomalies)
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote anomalies → %s (%d rows)", path, len(anomalies))


def write_alerts_csv(results: list[AlertEvaluationResult], path: str) -> None:
    lines = [AlertEvaluationResult.csv_header()]
    lines.extend(r.to_csv_row() for r in results)
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote alert evaluations → %s (%d rows)", path, len(results))


def write_simulations_csv(simulations: list[SimulationRecord], path: str) -> None:
    lines = [SimulationRecord.csv_header()]
    lines.extend(s.to_csv_row() for s in simulations)
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote simulations → %s (%d rows)", path, len(simulations))


# ═══════════════════════════════════════════════════════════════════════════
#  TXT report
# ═══════════════════════════════════════════════════════════════════════════


def write_report_txt(results: dict[str, Any], path: str) -> None:
    """Plain-text summary of a pipeline run."""
    lines: list[str] = []
    lines.append("=" * 60)
    lines.append("  SmartEnergy Consumption Report")
    lines.append("=" * 60)
    lines.append("")

    for scope_id, res in results.get("analyses", {}).items():
        lines.append(f"--- {scope_id} ---")
        lines.append(f"  Period:           {res.period_start:%Y-%m-%d %H:%M} → {res.period_end:%Y-%m-%d %H:%M}")
        lines.append(f"  Total:            {res.total:.3f} kWh")
        lines.append(f"  Average reading:  {res.average:.3f} kWh")
        lines.append(f"  Peak / min:       {res.peak:.3f} / {res.min:.3f} kWh")
        lines.append(f"  Readings:         {res.data_points}")
        proj = results.get("projections", {}).get(scope_id)
        if proj is not None:
            flag = " (insufficient history)" if proj.insufficient_history else ""
            lines.append(
                f"  Projection:       {proj.projected_total:.3f} kWh over "
                f"{proj.horizon_days:g} days, {proj.confidence.value} confidence{flag}"
            )
        lines.append("")

    costs: dict[str, ConsumptionCostCalculation] = results.get("costs", {})
    if costs:
        lines.append("--- Costs ---")
        for site, calc in costs.items():
            info = calc.tariff_info
            lines.append(
                f"  {site}: total {calc.total_cost:.2f} "
                f"(regular {calc.breakdown.regular_cost:.2f}, peak {calc.peak_cost:.2f}, "
                f"flag {calc.flag_cost:.2f}; flag={info.current_flag.value} @ {info.flag_value:g}/kWh)"
            )
        lines.append("")

    scan = results.get("anomaly_scan")
    if scan is not None:
        lines.append("--- Anomalies ---")
        lines.append(
            f"  Flagged: {len(scan.anomalies)}  evaluated: {scan.evaluated}  "
            f"skipped (insufficient history): {scan.skipped_insufficient_history}"
        )
        for a in scan.anomalies[:10]:
            lines.append(f"  - {a.message}")
        lines.append("")

    fired = [r for r in results.get("alerts", []) if r.should_trigger]
    lines.append("--- Alerts ---")
    lines.append(f"  Evaluated: {len(results.get('alerts', []))}  firing: {len(fired)}")
    for r in fired:
        lines.append(f"  ! [{r.alert_id}] {r.message}")
    lines.append("")

    autos: list[AutoSimulation] = results.get("auto_simulations", [])
    if autos:
        lines.append("--- Auto simulations ---")
        for auto in autos:
            sim = auto.simulation
            lines.append(
                f"  {sim.simulation_id} ({auto.scope_id}): {auto.adjusted_consumption:.3f} kWh, "
                f"cost {auto.total_cost:.2f} for {sim.start_date:%Y-%m-%d} → {sim.end_date:%Y-%m-%d}"
            )
            lines.append(f"    {auto.description}")
        lines.append("")

    accuracy: AccuracyAnalysis | None = results.get("accuracy")
    if accuracy is not None:
        lines.append("--- Simulation accuracy ---")
        lines.append(f"  Simulations:      {accuracy.total_simulations}")
        lines.append(f"  With real data:   {accuracy.simulations_with_real}")
        lines.append(f"  Not computable:   {accuracy.not_computable}")
        lines.append(f"  Mean |variance|:  {_fmt_opt(accuracy.average_variance, unit='%')}")
        lines.append(f"  Accuracy:         {_fmt_opt(accuracy.accuracy_percentage, unit='%')}")
        lines.append("")

    lines.append("=" * 60)
    _atomic_write(path, "\n".join(lines) + "\n")
    log.info("Wrote report → %s", path)


# ═══════════════════════════════════════════════════════════════════════════
#  Plots (matplotlib)
# ═══════════════════════════════════════════════════════════════════════════


def write_plots(
    analyses: dict[str, ConsumptionAnalysisResult],
    costs: dict[str, ConsumptionCostCalculation],
    out_dir: str,
) -> None:
    """Generate PNG charts into out_dir/plots/."""
    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        log.warning("matplotlib not installed — skipping plots")
        return

    plots_dir = Path(out_dir) / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)

    # ── 1. Consumption breakdown per scope ───────────────────────────
    if analyses:
        fig, ax = plt.subplots(figsize=(10, 5))
        for scope_id, res in analyses.items():
            xs = [e.timestamp for e in res.breakdown]
            ys = [e.consumption for e in res.breakdown]
            ax.plot(xs, ys, marker="o", linewidth=1.2, label=scope_id)
        ax.set_ylabel("Consumption (kWh)")
        ax.set_title("Consumption Breakdown")
        ax.legend()
        fig.autofmt_xdate()
        fig.tight_layout()
        fig.savefig(str(plots_dir / "breakdown.png"), dpi=150)
        plt.close(fig)
        log.info("Wrote plots/breakdown.png")

    # ── 2. Stacked cost components per site ──────────────────────────
    if costs:
        fig, ax = plt.subplots(figsize=(8, 5))
        sites = list(costs)
        regular = [costs[s].breakdown.regular_cost for s in sites]
        peak = [costs[s].peak_cost for s in sites]
        flag = [costs[s].flag_cost for s in sites]
        ax.bar(sites, regular, label="Regular", color="#27ae60", edgecolor="black", linewidth=0.5)
        ax.bar(sites, peak, bottom=regular, label="Peak", color="#e67e22",
               edgecolor="black", linewidth=0.5)
        ax.bar(sites, flag, bottom=[r + p for r, p in zip(regular, peak)], label="Flag",
               color="#e74c3c", edgecolor="black", linewidth=0.5)
        ax.set_ylabel("Cost")
        ax.set_title("Cost Components by Site")
        ax.legend()
        fig.tight_layout()
        fig.savefig(str(plots_dir / "costs.png"), dpi=150)
        plt.close(fig)
        log.info("Wrote plots/costs.png")
