"""
Main script to run the Rebellion Model simulation.

Runs one model for a number of steps, prints a status block per step at debug level,
and optionally writes the counts to CSV and plots them.

Usage:
    python run_rebellion.py --steps 200 --seed 42 --csv simulation_results.csv --plot states.png
    python run_rebellion.py --animate
"""

import argparse
import csv
import logging
import sys

import matplotlib.pyplot as plt

from rebellion_model import (
    ConfigurationError,
    GOVERNMENT_LEGITIMACY,
    INITIAL_AGENT_DENSITY,
    INITIAL_COP_DENSITY,
    K,
    MAX_JAIL_TERM,
    MAX_LOCAL_RELATED,
    RebellionConfig,
    RebellionModel,
    THRESHOLD,
    VISION,
)
from rebellion_stats import summarize_run
from visualization import Visualization, plot_time_series

logger = logging.getLogger(__name__)

CSV_HEADER = ['TimeStep', 'ActiveAgents', 'JailedAgents', 'QuietAgents', 'TotalCops']


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Run the Rebellion (civil violence) model")
    p.add_argument("--width", type=int, default=40)
    p.add_argument("--height", type=int, default=40)
    p.add_argument("--vision", type=float, default=VISION)
    p.add_argument("--max-jail-term", type=int, default=MAX_JAIL_TERM)
    p.add_argument("--agent-density", type=float, default=INITIAL_AGENT_DENSITY)
    p.add_argument("--cop-density", type=float, default=INITIAL_COP_DENSITY)
    p.add_argument("--k", type=float, default=K)
    p.add_argument("--threshold", type=float, default=THRESHOLD)
    p.add_argument("--legitimacy", type=float, default=GOVERNMENT_LEGITIMACY)
    p.add_argument("--no-movement", action="store_true",
                   help="Keep agents in place (cops still move)")
    p.add_argument("--local-legitimacy", action="store_true",
                   help="Let arrests within vision lower the legitimacy agents perceive")
    p.add_argument("--max-local-related", type=float, default=MAX_LOCAL_RELATED)
    p.add_argument("--steps", type=int, default=200)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--csv", dest="csv_path", default=None,
                   help="Write per-step counts and summary statistics to this CSV file")
    p.add_argument("--plot", dest="plot_path", default=None,
                   help="Save the agent-state time series to this image file")
    p.add_argument("--show", action="store_true", help="Display the time series when done")
    p.add_argument("--animate", action="store_true", help="Show a live animation instead")
    p.add_argument("--log-level", default="INFO")
    args = p.parse_args(argv)

    if args.steps < 0:
        p.error("--steps must be non-negative")
    try:
        args.config = RebellionConfig(
            width=args.width,
            height=args.height,
            vision=args.vision,
            max_jail_term=args.max_jail_term,
            agent_density=args.agent_density,
            cop_density=args.cop_density,
            k=args.k,
            threshold=args.threshold,
            government_legitimacy=args.legitimacy,
            movement=not args.no_movement,
            local_legitimacy=args.local_legitimacy,
            max_local_related=args.max_local_related,
        )
    except ConfigurationError as exc:
        p.error(str(exc))
    return args


def log_status(model):
    logger.debug(
        "Time step %d: active=%d jailed=%d quiet=%d cops=%d",
        model.time, model.active_count(), model.jailed_count(),
        model.quiet_count(), model.cop_count())


def write_results_csv(path, stats, cop_count, summary):
    """
    Write one row per recorded step followed by a Max/Min/Average block per series.
    Step 0 holds the counts right after setup.
    """
    with open(path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        rows = zip(stats['active_agents'], stats['jailed_agents'], stats['quiet_agents'])
        for step, (active, jailed, quiet) in enumerate(rows):
            writer.writerow([step, active, jailed, quiet, cop_count])

        writer.writerow([])
        writer.writerow(['Statistics'])
        writer.writerow(['Category', 'Max', 'Min', 'Average'])
        for name, series in (('Active', summary.active),
                             ('Jailed', summary.jailed),
                             ('Quiet', summary.quiet)):
            writer.writerow([name, series.maximum, series.minimum, f"{series.mean:.2f}"])


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("Setting up model...")
    model = RebellionModel.from_config(args.config, seed=args.seed)

    if args.animate:
        vis = Visualization(model)
        vis.animate(frames=args.steps)
    else:
        print(f"Running model for {args.steps} steps...")
        for _ in range(args.steps):
            model.tick()
            log_status(model)

    summary = summarize_run(model.stats)
    print(f"Simulation finished after {model.time} steps: "
          f"active={model.active_count()} jailed={model.jailed_count()} "
          f"quiet={model.quiet_count()} cops={model.cop_count()}")
    print(f"Outbreaks: {summary.outbreak_count}, "
          f"stability index: {summary.stability_index:.4f}, "
          f"recovery time: {summary.recovery_time:.2f}")

    if args.csv_path:
        write_results_csv(args.csv_path, model.stats, model.cop_count(), summary)
        print(f"Results written to {args.csv_path}")
    if args.plot_path:
        plot_time_series(model.stats, path=args.plot_path)
        print(f"Time series saved to {args.plot_path}")
    if args.show:
        plot_time_series(model.stats)
        plt.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
