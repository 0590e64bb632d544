"""
Parameter sensitivity analysis for the Rebellion model.

Runs a selection of predefined parameter sets, writes one summary row per run to
summary.csv and renders a time series and rebellion-size chart per run, plus a bar
chart comparing the stability index across runs.

Usage:
    python parameter_explorer.py --list
    python parameter_explorer.py 1 "High Cop Density" --steps 100 --seed 7
    python parameter_explorer.py --all --repetitions 3 --workers 4 --out-dir results
"""

import argparse
import csv
import logging
import os
import sys
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

from rebellion_model import ConfigurationError, K, MAX_LOCAL_RELATED, RebellionConfig, RebellionModel, THRESHOLD
from rebellion_stats import summarize_run
from visualization import plot_parameter_interaction, plot_rebellion_size, plot_time_series

logger = logging.getLogger(__name__)

WORLD_SIZE = 40
SIMULATION_STEPS = 100
REPETITIONS = 1


@dataclass(frozen=True)
class ParameterSet:
    cop_density: float
    agent_density: float
    legitimacy: float
    jail_term: int
    vision: int
    description: str
    local_legitimacy: bool = False
    max_local_related: float = MAX_LOCAL_RELATED

    def to_config(self, world_size=WORLD_SIZE):
        return RebellionConfig(
            width=world_size,
            height=world_size,
            vision=self.vision,
            max_jail_term=self.jail_term,
            agent_density=self.agent_density,
            cop_density=self.cop_density,
            k=K,
            threshold=THRESHOLD,
            government_legitimacy=self.legitimacy,
            local_legitimacy=self.local_legitimacy,
            max_local_related=self.max_local_related,
        )


PARAMETER_SETS = (
    # Baseline
    ParameterSet(0.04, 0.7, 0.82, 30, 7, "Baseline"),

    # Single parameter variations
    ParameterSet(0.08, 0.7, 0.82, 30, 7, "High Cop Density"),
    ParameterSet(0.02, 0.7, 0.82, 30, 7, "Low Cop Density"),
    ParameterSet(0.04, 0.8, 0.82, 30, 7, "High Agent Density"),
    ParameterSet(0.04, 0.6, 0.82, 30, 7, "Low Agent Density"),
    ParameterSet(0.04, 0.7, 0.9, 30, 7, "High Legitimacy"),
    ParameterSet(0.04, 0.7, 0.7, 30, 7, "Low Legitimacy"),
    ParameterSet(0.04, 0.7, 0.82, 40, 7, "Long Jail Term"),
    ParameterSet(0.04, 0.7, 0.82, 20, 7, "Short Jail Term"),
    ParameterSet(0.04, 0.7, 0.82, 30, 9, "Large Vision"),
    ParameterSet(0.04, 0.7, 0.82, 30, 5, "Small Vision"),

    # Combined variations
    ParameterSet(0.08, 0.7, 0.9, 40, 7, "High Repression"),
    ParameterSet(0.02, 0.8, 0.7, 20, 5, "Low Control"),
    ParameterSet(0.04, 0.8, 0.7, 30, 9, "High Tension"),
    ParameterSet(0.06, 0.6, 0.9, 30, 7, "Stable Society"),

    # Extreme scenarios
    ParameterSet(0.09, 0.9, 0.6, 50, 9, "Extreme Unrest"),
    ParameterSet(0.09, 0.5, 0.95, 50, 5, "Extreme Control"),

    # Local legitimacy
    ParameterSet(0.04, 0.7, 0.82, 30, 7, "Local Legitimacy - High Cop Activity",
                 local_legitimacy=True, max_local_related=5.0),
    ParameterSet(0.04, 0.7, 0.82, 30, 7, "Local Legitimacy - Low Cop Activity",
                 local_legitimacy=True, max_local_related=15.0),
)

SUMMARY_FIELDS = [
    "ExperimentID", "Repetition", "Description", "CopDensity", "AgentDensity",
    "Legitimacy", "JailTerm", "Vision", "LocalLegitimacy", "Seed",
    "AvgActive", "AvgJailed", "AvgQuiet", "MaxActive", "MaxJailed", "MaxQuiet",
    "MinActive", "MinJailed", "MinQuiet", "OutbreakCount", "RebellionFrequency",
    "AvgRebellionSize", "MaxRebellionSize", "TotalRebellionSteps",
    "StabilityIndex", "RecoveryTime",
]


@dataclass(frozen=True)
class ExperimentResult:
    experiment_id: int
    repetition: int
    params: ParameterSet
    seed: object
    stats: dict
    summary: object


def run_experiment(experiment_id, params, steps=SIMULATION_STEPS, world_size=WORLD_SIZE,
                   seed=None, repetition=1):
    """Run one parameter set for `steps` ticks and summarize the resulting counts."""
    logger.info(
        "Running experiment %d.%d (%s): cop=%.2f, agent=%.2f, leg=%.2f, jail=%d, vision=%d",
        experiment_id, repetition, params.description, params.cop_density,
        params.agent_density, params.legitimacy, params.jail_term, params.vision)
    model = RebellionModel.from_config(params.to_config(world_size), seed=seed)
    model.run(steps)
    return ExperimentResult(
        experiment_id=experiment_id,
        repetition=repetition,
        params=params,
        seed=seed,
        stats=model.stats,
        summary=summarize_run(model.stats),
    )


def summary_row(result):
    params, summary = result.params, result.summary
    return {
        "ExperimentID": result.experiment_id,
        "Repetition": result.repetition,
        "Description": params.description,
        "CopDensity": f"{params.cop_density:.2f}",
        "AgentDensity": f"{params.agent_density:.2f}",
        "Legitimacy": f"{params.legitimacy:.2f}",
        "JailTerm": params.jail_term,
        "Vision": params.vision,
        "LocalLegitimacy": params.local_legitimacy,
        "Seed": "" if result.seed is None else result.seed,
        "AvgActive": f"{summary.active.mean:.2f}",
        "AvgJailed": f"{summary.jailed.mean:.2f}",
        "AvgQuiet": f"{summary.quiet.mean:.2f}",
        "MaxActive": summary.active.maximum,
        "MaxJailed": summary.jailed.maximum,
        "MaxQuiet": summary.quiet.maximum,
        "MinActive": summary.active.minimum,
        "MinJailed": summary.jailed.minimum,
        "MinQuiet": summary.quiet.minimum,
        "OutbreakCount": summary.outbreak_count,
        "RebellionFrequency": f"{summary.rebellion_frequency:.4f}",
        "AvgRebellionSize": f"{summary.avg_rebellion_size:.2f}",
        "MaxRebellionSize": summary.max_rebellion_size,
        "TotalRebellionSteps": summary.total_rebellion_steps,
        "StabilityIndex": f"{summary.stability_index:.4f}",
        "RecoveryTime": f"{summary.recovery_time:.2f}",
    }


def select_parameter_sets(selectors):
    """
    Resolve 1-based indices or descriptions (case-insensitive) into parameter sets.
    Raises ValueError for anything that matches no set.
    """
    by_name = {params.description.lower(): params for params in PARAMETER_SETS}
    selected = []
    for selector in selectors:
        if selector.isdigit():
            index = int(selector)
            if not 1 <= index <= len(PARAMETER_SETS):
                raise ValueError(f"No parameter set with index {index}")
            selected.append(PARAMETER_SETS[index - 1])
        elif selector.lower() in by_name:
            selected.append(by_name[selector.lower()])
        else:
            raise ValueError(f"Unknown parameter set: {selector!r}")
    return selected


def plan_runs(parameter_sets, repetitions, seed):
    """Experiment ids, repetitions and seeds for every run; seeds are consecutive from `seed`."""
    runs = []
    run_index = 0
    for experiment_id, params in enumerate(parameter_sets, start=1):
        for repetition in range(1, repetitions + 1):
            run_seed = None if seed is None else seed + run_index
            runs.append((experiment_id, params, run_seed, repetition))
            run_index += 1
    return runs


def run_all(parameter_sets, steps=SIMULATION_STEPS, repetitions=REPETITIONS,
            world_size=WORLD_SIZE, seed=None, workers=1):
    """
    Run every selected parameter set `repetitions` times. Each run owns its own model,
    so with workers > 1 runs are spread over separate processes.
    """
    runs = plan_runs(parameter_sets, repetitions, seed)
    if workers <= 1:
        return [run_experiment(exp_id, params, steps, world_size, run_seed, rep)
                for exp_id, params, run_seed, rep in runs]

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(run_experiment, exp_id, params, steps, world_size, run_seed, rep)
            for exp_id, params, run_seed, rep in runs
        ]
        return [future.result() for future in futures]


def write_summary(path, results):
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=SUMMARY_FIELDS)
        writer.writeheader()
        for result in results:
            writer.writerow(summary_row(result))


def write_charts(results_dir, results):
    for result in results:
        name = f"experiment_{result.experiment_id}_{result.repetition}"
        title = f"Experiment {result.experiment_id} ({result.params.description})"
        plot_time_series(result.stats, title=f"{title} Time Series",
                         path=os.path.join(results_dir, f"{name}_timeseries.png"))
        plot_rebellion_size(result.stats['active_agents'], title=f"{title} Rebellion Size",
                            path=os.path.join(results_dir, f"{name}_rebellion_size.png"))

    plot_parameter_interaction(
        [result.params.description for result in results],
        [result.params.cop_density for result in results],
        [result.params.legitimacy for result in results],
        [result.summary.stability_index for result in results],
        path=os.path.join(results_dir, "parameter_interaction.png"),
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Rebellion model parameter exploration")
    p.add_argument("sets", nargs="*", help="Parameter set indices (1-based) or descriptions")
    p.add_argument("--all", action="store_true", help="Run every parameter set")
    p.add_argument("--list", action="store_true", help="List the parameter sets and exit")
    p.add_argument("--steps", type=int, default=SIMULATION_STEPS)
    p.add_argument("--repetitions", type=int, default=REPETITIONS)
    p.add_argument("--world-size", type=int, default=WORLD_SIZE)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--workers", type=int, default=1)
    p.add_argument("--out-dir", default=None,
                   help="Results directory (default: parameter_exploration_results_<timestamp>)")
    p.add_argument("--no-charts", action="store_true")
    p.add_argument("--log-level", default="INFO")
    args = p.parse_args(argv)

    if args.steps < 0:
        p.error("--steps must be non-negative")
    if args.repetitions < 1:
        p.error("--repetitions must be at least 1")
    if args.list:
        return args
    if args.all:
        args.parameter_sets = list(PARAMETER_SETS)
    elif args.sets:
        try:
            args.parameter_sets = select_parameter_sets(args.sets)
        except ValueError as exc:
            p.error(str(exc))
    else:
        p.error("select at least one parameter set, or pass --all")

    try:
        for params in args.parameter_sets:
            params.to_config(args.world_size)
    except ConfigurationError as exc:
        p.error(str(exc))
    return args


def main(argv=None):
    args = parse_args(argv)
    if args.list:
        for index, params in enumerate(PARAMETER_SETS, start=1):
            print(f"{index:2d}. {params.description}")
        return 0

    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    results_dir = args.out_dir or f"parameter_exploration_results_{int(time.time() * 1000)}"
    os.makedirs(results_dir, exist_ok=True)

    results = run_all(args.parameter_sets, steps=args.steps, repetitions=args.repetitions,
                      world_size=args.world_size, seed=args.seed, workers=args.workers)

    write_summary(os.path.join(results_dir, "summary.csv"), results)
    if not args.no_charts:
        write_charts(results_dir, results)

    print(f"Simulation completed. Results saved in: {results_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
