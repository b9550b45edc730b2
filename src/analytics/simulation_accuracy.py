"""Simulation Accuracy Evaluator — estimate vs. realized consumption.

    variance = (real - estimated) / estimated * 100     (signed %)

A zero estimate makes the variance *not computable*; it is reported as
``None`` and never as 0 % or infinity.  Aggregates skip such records and
count them separately.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable

from src.analytics.stats import compute_stats
from src.contracts.enums import ScopeLevel
from src.contracts.errors import InvalidInputError
from src.contracts.reading import ConsumptionReading
from src.contracts.simulation import AccuracyAnalysis, ScopeAccuracy, SimulationRecord

log = logging.getLogger(__name__)


def is_computable(simulation: SimulationRecord) -> bool:
    return simulation.estimated_consumption != 0


def compute_variance(simulation: SimulationRecord, real_consumption: float) -> float | None:
    """Signed percentage error of the estimate, or None when not computable."""
    if real_consumption < 0:
        raise InvalidInputError("real_consumption must be >= 0")
    if not is_computable(simulation):
        log.debug("Simulation %s has a zero estimate — variance not computable",
                  simulation.simulation_id)
        return None
    est = simulation.estimated_consumption
    return (real_consumption - est) / est * 100


def with_realized(simulation: SimulationRecord, real_consumption: float) -> SimulationRecord:
    """Return a new record carrying the real consumption and derived variance."""
    return dataclasses.replace(
        simulation,
        real_consumption=real_consumption,
        variance=compute_variance(simulation, real_consumption),
    )


def evaluate_against_readings(
    simulation: SimulationRecord,
    readings: Iterable[ConsumptionReading],
) -> SimulationRecord:
    """Realize *simulation* from readings over ``[start_date, end_date)``."""
    stats = compute_stats(readings, simulation.start_date, simulation.end_date)
    return with_realized(simulation, stats.total)


def average_variance(simulations: Iterable[SimulationRecord]) -> float | None:
    """Mean signed variance over records that have one; None if none do."""
    vals = [s.variance for s in simulations if s.variance is not None]
    if not vals:
        return None
    return sum(vals) / len(vals)


def accuracy_analysis(simulations: Iterable[SimulationRecord]) -> AccuracyAnalysis:
    """Summarise how close past estimates were to what actually happened.

    ``average_variance`` here is the mean *absolute* variance and
    ``accuracy_percentage = max(0, 100 - average_variance)``.
    """
    sims = list(simulations)
    realized = [s for s in sims if s.real_consumption is not None]
    scored = [s for s in realized if s.variance is not None]
    not_computable = len(realized) - len(scored)

    if not scored:
        return AccuracyAnalysis(
            total_simulations=len(sims),
            simulations_with_real=len(realized),
            not_computable=not_computable,
            average_variance=None,
            accuracy_percentage=None,
            by_scope=[ScopeAccuracy(scope=sc, average_variance=None, count=0) for sc in ScopeLevel],
        )

    avg_abs = sum(abs(s.variance) for s in scored) / len(scored)  # type: ignore[arg-type]
    ranked = sorted(scored, key=lambda s: abs(s.variance))  # type: ignore[arg-type]

    by_scope = []
    for sc in ScopeLevel:
        group = [abs(s.variance) for s in scored if s.scope == sc]  # type: ignore[arg-type]
        by_scope.append(
            ScopeAccuracy(
                scope=sc,
                average_variance=sum(group) / len(group) if group else None,
                count=len(group),
            )
        )

    return AccuracyAnalysis(
        total_simulations=len(sims),
        simulations_with_real=len(realized),
        not_computable=not_computable,
        average_variance=avg_abs,
        accuracy_percentage=max(0.0, 100 - avg_abs),
        most_accurate=ranked[0],
        least_accurate=ranked[-1],
        by_scope=by_scope,
    )
