"""
Summary statistics over the per-step agent counts of a Rebellion model run.

An outbreak is a contiguous run of steps with at least one active agent. The
stability index is the population standard deviation of the active-agent counts;
lower values indicate a more stable system.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SeriesSummary:
    minimum: int
    maximum: int
    mean: float


@dataclass(frozen=True)
class RunSummary:
    """Aggregated statistics of one run."""
    steps: int
    active: SeriesSummary
    jailed: SeriesSummary
    quiet: SeriesSummary
    outbreak_count: int
    rebellion_frequency: float
    avg_rebellion_size: float
    max_rebellion_size: int
    total_rebellion_steps: int
    stability_index: float
    recovery_time: float


def series_summary(values):
    if len(values) == 0:
        return SeriesSummary(0, 0, 0.0)
    values = np.asarray(values)
    return SeriesSummary(int(values.min()), int(values.max()), float(values.mean()))


def outbreak_episodes(active_counts):
    """
    Return (start_step, length) for each outbreak. An outbreak still running at the
    end of the series counts with the steps observed so far.
    """
    episodes = []
    start = None
    for step, count in enumerate(active_counts):
        if count > 0 and start is None:
            start = step
        elif count == 0 and start is not None:
            episodes.append((start, step - start))
            start = None
    if start is not None:
        episodes.append((start, len(active_counts) - start))
    return episodes


def outbreak_count(active_counts):
    return len(outbreak_episodes(active_counts))


def stability_index(active_counts):
    if len(active_counts) == 0:
        return 0.0
    return float(np.std(active_counts))


def recovery_time(active_counts):
    """Mean length of the outbreaks in the series, 0.0 if there were none."""
    episodes = outbreak_episodes(active_counts)
    if not episodes:
        return 0.0
    return float(np.mean([length for _, length in episodes]))


def summarize_run(stats, include_initial=False):
    """
    Summarize the `stats` history of a RebellionModel.

    The history starts with the counts recorded by `setup`; they are left out unless
    `include_initial` is set, so the summary covers ticks only.
    """
    start = 0 if include_initial else 1
    active = list(stats['active_agents'][start:])
    jailed = list(stats['jailed_agents'][start:])
    quiet = list(stats['quiet_agents'][start:])

    episodes = outbreak_episodes(active)
    steps = len(active)
    active_summary = series_summary(active)
    return RunSummary(
        steps=steps,
        active=active_summary,
        jailed=series_summary(jailed),
        quiet=series_summary(quiet),
        outbreak_count=len(episodes),
        rebellion_frequency=len(episodes) / steps if steps else 0.0,
        avg_rebellion_size=active_summary.mean,
        max_rebellion_size=active_summary.maximum,
        total_rebellion_steps=sum(length for _, length in episodes),
        stability_index=stability_index(active),
        recovery_time=recovery_time(active),
    )
