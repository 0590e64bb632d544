"""Tests for matplotlib rendering of model state and run statistics."""

import matplotlib.colors as mcolors

from rebellion_model import Location
from visualization import (
    Visualization,
    plot_parameter_interaction,
    plot_rebellion_size,
    plot_time_series,
)

STATS = {
    'active_agents': [0, 3, 5, 1],
    'jailed_agents': [0, 0, 2, 4],
    'quiet_agents': [10, 7, 3, 5],
}


def test_time_series_saved(tmp_path):
    path = tmp_path / "series.png"
    plot_time_series(STATS, path=str(path))
    assert path.exists()


def test_time_series_returned_for_display():
    fig = plot_time_series(STATS)
    ax = fig.axes[0]
    assert [line.get_label() for line in ax.get_lines()] == ['Active', 'Jailed', 'Quiet']
    assert list(ax.get_lines()[0].get_ydata()) == STATS['active_agents']


def test_rebellion_size_saved(tmp_path):
    path = tmp_path / "size.png"
    plot_rebellion_size(STATS['active_agents'], path=str(path))
    assert path.exists()


def test_parameter_interaction_saved(tmp_path):
    path = tmp_path / "interaction.png"
    plot_parameter_interaction(["Baseline", "High Cop Density"], [0.04, 0.08], [0.82, 0.82],
                               [12.5, 3.2], path=str(path))
    assert path.exists()


class TestVisualization:

    def test_markers_follow_the_model(self, empty_model):
        agent = empty_model.add_agent(Location(2, 2), risk_aversion=1.0, perceived_hardship=0.0)
        prisoner = empty_model.add_agent(Location(7, 7))
        prisoner.go_to_jail(3)
        empty_model.add_cop(Location(5, 5))

        vis = Visualization(empty_model)
        assert len(vis.agent_markers) == 2
        assert len(vis.cop_markers) == 1
        assert vis._get_agent_color(prisoner) == 'black'
        assert vis._get_agent_color(agent) == mcolors.to_rgba('green', 0.3)

        artists = vis.update(0)
        assert empty_model.time == 1
        assert len(artists) == 2 + 1 + 3

    def test_active_agents_are_red(self, empty_model):
        agent = empty_model.add_agent(Location(2, 2))
        agent.active = True
        vis = Visualization(empty_model)
        assert vis._get_agent_color(agent) == 'red'

    def test_show_final_state(self, baseline_model):
        baseline_model.run(3)
        vis = Visualization(baseline_model)
        vis.show_final_state()
        assert len(vis.lines['active_agents'].get_xdata()) == 4


def test_animation_ticks_once_per_frame(tmp_path, empty_model):
    empty_model.add_agent(Location(2, 2))
    empty_model.add_cop(Location(5, 5))
    vis = Visualization(empty_model)
    assert empty_model.time == 0

    ani = vis.build_animation(frames=5)
    ani.save(str(tmp_path / "run.gif"), writer="pillow", fps=5)

    assert empty_model.time == 5
    assert len(empty_model.stats['active_agents']) == 6
