"""
Matplotlib rendering for the Rebellion model: a live grid view, agent-state time
series, rebellion size over time, and the stability bar chart of a parameter sweep.
"""

import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
import matplotlib.animation as animation
from matplotlib.patches import Circle, RegularPolygon

SERIES_STYLES = (
    ('active_agents', 'r-', 'Active'),
    ('jailed_agents', 'k-', 'Jailed'),
    ('quiet_agents', 'g-', 'Quiet'),
)


class Visualization:
    """
    Handles visualization of the Rebellion model using Matplotlib.
    """
    def __init__(self, model):
        self.model = model
        self.fig, (self.ax1, self.ax2) = plt.subplots(1, 2, figsize=(15, 7))
        self.fig.suptitle('Civil Violence Model', fontsize=16)

        # Setup grid visualization
        self.ax1.set_xlim(-1, model.width)
        self.ax1.set_ylim(-1, model.height)
        self.ax1.set_title('Agent States')
        self.ax1.set_aspect('equal')
        self.ax1.axis('off')

        # Setup statistics plot
        self.ax2.set_xlim(0, 100)  # Will be updated dynamically
        self.ax2.set_ylim(0, max(1, len(model.agents)))
        self.ax2.set_xlabel('Time')
        self.ax2.set_ylabel('Number of Agents')
        self.ax2.set_title('Agent States Over Time')

        # Initialize lines for statistics
        self.lines = {}
        for key, style, label in SERIES_STYLES:
            self.lines[key], = self.ax2.plot([], [], style, label=label)
        self.ax2.legend()

        # Initialize agent and cop markers
        self.agent_markers = []
        self.cop_markers = []
        self._init_markers()

    def _init_markers(self):
        """Initialize visual markers for agents and cops."""
        for agent in self.model.agents:
            marker = Circle((agent.location.x, agent.location.y), 0.4,
                            color=self._get_agent_color(agent))
            self.ax1.add_patch(marker)
            self.agent_markers.append(marker)

        for cop in self.model.cops:
            marker = RegularPolygon((cop.location.x, cop.location.y), numVertices=3,
                                    radius=0.5, color='cyan')
            self.ax1.add_patch(marker)
            self.cop_markers.append(marker)

    def _get_agent_color(self, agent):
        """Determine the color of an agent based on its state."""
        if agent.jailed:
            return 'black'
        elif agent.active:
            return 'red'
        else:
            # Scale color based on grievance (green -> darker green for higher grievance)
            grievance = agent.calculate_grievance()
            return mcolors.to_rgba('green', 0.3 + 0.7 * grievance)

    def refresh(self):
        """Redraw markers and statistics lines from the current model state."""
        for agent, marker in zip(self.model.agents, self.agent_markers):
            marker.center = (agent.location.x, agent.location.y)
            marker.set_color(self._get_agent_color(agent))

        for cop, marker in zip(self.model.cops, self.cop_markers):
            marker.xy = (cop.location.x, cop.location.y)

        x = list(range(len(self.model.stats['active_agents'])))
        for key, line in self.lines.items():
            line.set_data(x, self.model.stats[key])

        # Adjust plot limits if needed
        if len(x) > 1:
            self.ax2.set_xlim(0, len(x))

    def _artists(self):
        return self.agent_markers + self.cop_markers + list(self.lines.values())

    def init_frame(self):
        """Draw the current state without advancing the model."""
        self.refresh()
        return self._artists()

    def update(self, frame):
        """Advance the model one time step and draw the new state."""
        self.model.tick()
        self.refresh()
        return self._artists()

    def build_animation(self, frames=100):
        """
        Animation that ticks the model exactly once per frame and stops after the
        last frame.
        """
        return animation.FuncAnimation(
            self.fig, self.update, frames=frames, init_func=self.init_frame,
            interval=100, blit=True, repeat=False
        )

    def animate(self, frames=100):
        """Create an animation of the model running."""
        ani = self.build_animation(frames)
        plt.tight_layout()
        plt.show()
        return ani

    def show_final_state(self):
        """Draw the current state of the model without animation."""
        self.refresh()
        plt.tight_layout()


def _finish(fig, path):
    if path is not None:
        fig.savefig(path)
        plt.close(fig)
    return fig


def plot_time_series(stats, title='Agent States Over Time', path=None):
    """
    Plot active, jailed and quiet counts over time.

    Saves the figure to `path` and closes it when a path is given; otherwise the
    open figure is returned for display.
    """
    fig, ax = plt.subplots(figsize=(10, 6))
    for key, style, label in SERIES_STYLES:
        values = stats[key]
        ax.plot(range(len(values)), values, style, label=label)
    ax.set_title(title)
    ax.set_xlabel('Time Steps')
    ax.set_ylabel('Number of Agents')
    ax.legend()
    ax.grid(alpha=0.3)
    fig.tight_layout()
    return _finish(fig, path)


def plot_rebellion_size(active_counts, title='Rebellion Size Over Time', path=None):
    """Plot the number of active agents per step as bars."""
    fig, ax = plt.subplots(figsize=(10, 6))
    ax.bar(range(len(active_counts)), active_counts, color='red', alpha=0.6, width=1.0)
    ax.set_title(title)
    ax.set_xlabel('Time Steps')
    ax.set_ylabel('Active Agents')
    fig.tight_layout()
    return _finish(fig, path)


def plot_parameter_interaction(labels, cop_densities, legitimacies, stability_indices,
                               title='Parameter Interaction: Stability Index', path=None):
    """
    Bar chart of the stability index of each experiment, annotated with its cop
    density and legitimacy. Lower bars are more stable runs.
    """
    fig, ax = plt.subplots(figsize=(12, 7))
    positions = range(len(stability_indices))
    ax.bar(positions, stability_indices, color='blue', alpha=0.5)
    ax.set_xticks(list(positions))
    ax.set_xticklabels(
        [f"{label}\nCop={cop:.2f}\nLeg={leg:.2f}"
         for label, cop, leg in zip(labels, cop_densities, legitimacies)],
        fontsize=7, rotation=45, ha='right')
    ax.set_title(title)
    ax.set_ylabel('Stability Index (std of active agents)')
    fig.tight_layout()
    return _finish(fig, path)
