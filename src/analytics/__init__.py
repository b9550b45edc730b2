"""SmartEnergy Analytics — consumption analysis core and batch runner.

Modules
───────
  peak_window         — classify instants and intervals as peak / off-peak
  tariff_engine       — consumption + schedule → cost with peak / flag split
  stats               — period statistics and bucketed breakdowns
  anomaly             — flag readings that deviate from a device's history
  projector           — project consumption over a horizon, auto simulations
  alert_engine        — compare current values against alert thresholds
  simulation_accuracy — variance of past estimates against real consumption
  loaders             — readings CSV/JSONL and YAML config → contracts
  reporter            — write CSV, TXT, PNG outputs
  pipeline            — orchestrate the full flow
  cli                 — argparse entry-point
"""
