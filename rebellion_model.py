"""
Rebellion Model: A Python implementation of the Civil Violence model by Epstein (2002).

This model simulates the dynamics of civil violence between citizens and law enforcement
on a grid that wraps around on both axes. Citizens ("agents") have individual grievance
levels based on perceived hardship and government legitimacy, and decide whether to rebel
based on their grievance and risk assessment. Cops patrol the grid and jail active agents.
"""

import logging
import numbers
import random
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

# Default slider values, as in the NetLogo model
K = 2.3  # Factor for determining arrest probability
THRESHOLD = 0.1  # Threshold for rebellion
VISION = 7
MAX_JAIL_TERM = 30
GOVERNMENT_LEGITIMACY = 0.82
INITIAL_COP_DENSITY = 0.04
INITIAL_AGENT_DENSITY = 0.70
MAX_LOCAL_RELATED = 10.0

# Largest fraction of legitimacy that local arrests can take away
LOCAL_LEGITIMACY_WEIGHT = 0.5


class ConfigurationError(ValueError):
    """Raised when the model is given parameters outside their documented ranges."""


def _is_int(value):
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _check_grid_parameters(width, height, vision, max_jail_term):
    for name, value in (('width', width), ('height', height), ('max_jail_term', max_jail_term)):
        if not _is_int(value):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Grid dimensions must be positive, got {width}x{height}")
    if not vision > 0:
        raise ConfigurationError(f"vision must be positive, got {vision}")
    if max_jail_term <= 0:
        raise ConfigurationError(f"max_jail_term must be positive, got {max_jail_term}")


@dataclass(frozen=True)
class RebellionConfig:
    """
    Immutable set of parameters for one simulation run.

    Every field is validated on construction; out-of-range values raise
    ConfigurationError instead of being clamped.
    """
    width: int = 40
    height: int = 40
    vision: float = VISION
    max_jail_term: int = MAX_JAIL_TERM
    agent_density: float = INITIAL_AGENT_DENSITY
    cop_density: float = INITIAL_COP_DENSITY
    k: float = K
    threshold: float = THRESHOLD
    government_legitimacy: float = GOVERNMENT_LEGITIMACY
    movement: bool = True
    local_legitimacy: bool = False
    max_local_related: float = MAX_LOCAL_RELATED

    def __post_init__(self):
        _check_grid_parameters(self.width, self.height, self.vision, self.max_jail_term)
        for name in ('agent_density', 'cop_density'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        # Oversubscribed grids are rejected rather than silently under-populated
        if self.agent_density + self.cop_density > 1.0:
            raise ConfigurationError(
                f"Sum of agent and cop densities must not exceed 1, "
                f"got {self.agent_density} + {self.cop_density}")
        if not self.k > 0:
            raise ConfigurationError(f"k must be positive, got {self.k}")
        if not self.threshold >= 0:
            raise ConfigurationError(f"threshold must be non-negative, got {self.threshold}")
        if not 0.0 <= self.government_legitimacy <= 1.0:
            raise ConfigurationError(
                f"government_legitimacy must be within [0, 1], got {self.government_legitimacy}")
        if not self.max_local_related > 0:
            raise ConfigurationError(
                f"max_local_related must be positive, got {self.max_local_related}")


@dataclass(frozen=True)
class Location:
    """An (x, y) coordinate on the grid. Actors replace their location on move."""
    x: int
    y: int


def toroidal_delta(a, b, extent):
    """Distance between two coordinates on one axis of length `extent` that wraps around."""
    delta = abs(a - b)
    return min(delta, extent - delta)


class Cell:
    """
    Represents a single location in the grid.

    A cell holds at most one free occupant (an agent or a cop). Jailed agents are
    parked in `jailed` and do not count as occupants, so other actors may move in.
    """
    def __init__(self, location):
        self.location = location
        self.occupant = None
        self.jailed = []
        self.arrests = 0  # Arrests ever made on this cell
        self.neighborhood = []  # Will be populated with cells within vision

    def is_empty(self):
        """Returns True if no free agent or cop is on the cell."""
        return self.occupant is None

    def get_active_agent(self):
        """Returns the active agent on this cell, or None."""
        occupant = self.occupant
        if isinstance(occupant, Agent) and occupant.active:
            return occupant
        return None


class Agent:
    """
    Represents a citizen in the model that can decide to rebel based on grievance and risk.
    """
    def __init__(self, location, model, risk_aversion, perceived_hardship):
        self.location = location
        self.model = model
        self.risk_aversion = risk_aversion
        self.perceived_hardship = perceived_hardship
        self.active = False
        self.jail_term = 0

    @property
    def jailed(self):
        return self.jail_term > 0

    def move_to(self, cell):
        """Move the agent to a new cell."""
        current_cell = self.model.cell_at(self.location)
        if current_cell.occupant is self:
            current_cell.occupant = None

        assert cell.is_empty(), f"Cell {cell.location} is already occupied"
        cell.occupant = self
        self.location = cell.location

    def move(self):
        """
        Implements Rule M: Move to a random empty site within vision if movement is enabled
        and the agent is not in jail. Stays put when no such site exists.
        """
        if self.jailed or not self.model.movement:
            return
        target = self.model.random_empty_cell(self.model.cell_at(self.location).neighborhood)
        if target is not None:
            self.move_to(target)

    def determine_behavior(self):
        """
        Implements Rule A: Determine if agent should be actively rebelling based on
        grievance and risk assessment.
        """
        if self.jailed:
            return
        grievance = self.calculate_grievance()
        risk = self.risk_aversion * self.estimated_arrest_probability()
        self.active = (grievance - risk > self.model.threshold)

    def calculate_grievance(self):
        """
        Calculate agent's grievance based on perceived hardship and government legitimacy.
        """
        return self.perceived_hardship * (1 - self.model.legitimacy_at(self.location))

    def estimated_arrest_probability(self):
        """
        Calculate estimated probability of arrest based on local cop and active agent counts.
        """
        return self.model.arrest_probability_at(self.location, exclude=self)

    def go_to_jail(self, jail_term):
        """Take the agent off the grid for `jail_term` ticks."""
        assert jail_term > 0, f"Jail term must be positive, got {jail_term}"
        self.active = False
        self.jail_term = jail_term

        current_cell = self.model.cell_at(self.location)
        if current_cell.occupant is self:
            current_cell.occupant = None
        current_cell.jailed.append(self)


class Cop:
    """
    Represents a law enforcement officer that arrests actively rebelling agents.
    """
    def __init__(self, location, model):
        self.location = location
        self.model = model

    def move_to(self, cell):
        """Move the cop to a new cell."""
        current_cell = self.model.cell_at(self.location)
        if current_cell.occupant is self:
            current_cell.occupant = None

        assert cell.is_empty(), f"Cell {cell.location} is already occupied"
        cell.occupant = self
        self.location = cell.location

    def move(self):
        """
        Implements Rule M for cops: Move to a random empty site within vision.
        """
        target = self.model.random_empty_cell(self.model.cell_at(self.location).neighborhood)
        if target is not None:
            self.move_to(target)

    def enforce(self):
        """
        Implements Rule C: Look for active agents within vision and arrest one if found.
        """
        current_cell = self.model.cell_at(self.location)
        active_agents = []

        # Check all cells in neighborhood for active agents
        for cell in current_cell.neighborhood:
            agent = cell.get_active_agent()
            if agent is not None:
                active_agents.append(agent)

        if active_agents:
            # Arrest a random active agent
            suspect = self.model.random.choice(active_agents)
            suspect_cell = self.model.cell_at(suspect.location)
            suspect.go_to_jail(self.model.random.randint(1, self.model.max_jail_term))
            suspect_cell.arrests += 1
            # Move to the cell of the arrested agent
            self.move_to(suspect_cell)


class RebellionModel:
    """
    Main simulation class that manages the grid, agents, cops, and simulation rules.

    The model is created with its grid geometry, populated once with `setup`, and then
    advanced with `tick`. All randomness comes from `self.random`, so two models built
    with the same seed and parameters produce the same sequence of counts.
    """
    def __init__(self, width, height, vision=VISION, max_jail_term=MAX_JAIL_TERM,
                 seed=None, movement=True):
        _check_grid_parameters(width, height, vision, max_jail_term)
        self.width = width
        self.height = height
        self.vision = vision
        self.max_jail_term = max_jail_term
        self.movement = movement  # Equivalent to MOVEMENT? toggle
        self.seed = seed
        self.random = random.Random(seed)
        self.config = None

        # Initialize grid and populations
        self.grid = [[Cell(Location(x, y)) for x in range(width)] for y in range(height)]
        self.cells = [cell for row in self.grid for cell in row]
        self.agents = []
        self.cops = []
        self.requested_agents = 0
        self.requested_cops = 0
        self.time = 0

        # Initialize neighborhood for each cell
        self._init_neighborhoods()

        # Statistics tracking
        self.stats = {
            'active_agents': [],
            'quiet_agents': [],
            'jailed_agents': []
        }

    @classmethod
    def from_config(cls, config, seed=None):
        """Build a model from a RebellionConfig and run `setup` with it."""
        model = cls(config.width, config.height, vision=config.vision,
                    max_jail_term=config.max_jail_term, seed=seed, movement=config.movement)
        model.setup(
            agent_density=config.agent_density,
            cop_density=config.cop_density,
            k=config.k,
            threshold=config.threshold,
            government_legitimacy=config.government_legitimacy,
            local_legitimacy=config.local_legitimacy,
            max_local_related=config.max_local_related,
        )
        return model

    def _init_neighborhoods(self):
        """
        Initialize the neighborhood for each cell based on vision radius.

        The offsets within vision are computed once on the torus, so a radius larger
        than the grid never lists the same cell twice.
        """
        offsets = [
            (dx, dy)
            for dy in range(self.height)
            for dx in range(self.width)
            if self._within_radius(toroidal_delta(0, dx, self.width),
                                   toroidal_delta(0, dy, self.height))
        ]
        for cell in self.cells:
            x, y = cell.location.x, cell.location.y
            cell.neighborhood = [
                self.grid[(y + dy) % self.height][(x + dx) % self.width]
                for dx, dy in offsets
            ]

    def _within_radius(self, dx, dy):
        # Euclidean distance, compared squared to stay exact on integer deltas
        return dx * dx + dy * dy <= self.vision * self.vision

    def in_vision(self, a, b):
        """Return True if location `b` is within vision of location `a`, with wrap-around."""
        return self._within_radius(toroidal_delta(a.x, b.x, self.width),
                                   toroidal_delta(a.y, b.y, self.height))

    def cell_at(self, location):
        if not (0 <= location.x < self.width and 0 <= location.y < self.height):
            raise ValueError(
                f"{location} out of bounds for {self.width}x{self.height} grid")
        return self.grid[location.y][location.x]

    def random_empty_cell(self, cells):
        """Pick a uniformly random empty cell among `cells`, or None if all are occupied."""
        targets = [cell for cell in cells if cell.is_empty()]
        if not targets:
            return None
        return self.random.choice(targets)

    # Parameters fixed by setup
    @property
    def k(self):
        return self._require_config().k

    @property
    def threshold(self):
        return self._require_config().threshold

    @property
    def government_legitimacy(self):
        return self._require_config().government_legitimacy

    def _require_config(self):
        if self.config is None:
            raise RuntimeError("setup() must be called before running the model")
        return self.config

    def setup(self, agent_density=INITIAL_AGENT_DENSITY, cop_density=INITIAL_COP_DENSITY,
              k=K, threshold=THRESHOLD, government_legitimacy=GOVERNMENT_LEGITIMACY,
              local_legitimacy=False, max_local_related=MAX_LOCAL_RELATED):
        """
        Initialize the simulation by creating cops and agents based on density settings.

        round(density * width * height) actors of each kind are requested, cops first,
        each on a uniformly sampled empty cell. If the grid runs out of empty cells the
        remaining actors are not placed and a warning is logged.
        """
        if self.config is not None:
            raise RuntimeError("setup() has already been called on this model")

        # Raises ConfigurationError before anything is placed
        self.config = RebellionConfig(
            width=self.width,
            height=self.height,
            vision=self.vision,
            max_jail_term=self.max_jail_term,
            agent_density=agent_density,
            cop_density=cop_density,
            k=k,
            threshold=threshold,
            government_legitimacy=government_legitimacy,
            movement=self.movement,
            local_legitimacy=local_legitimacy,
            max_local_related=max_local_related,
        )

        # Create a list of all available positions
        available_cells = [cell for cell in self.cells if cell.is_empty()]
        self.random.shuffle(available_cells)

        # Calculate number of cops and agents
        total_cells = self.width * self.height
        self.requested_cops = round(cop_density * total_cells)
        self.requested_agents = round(agent_density * total_cells)

        # Create cops
        for _ in range(min(self.requested_cops, len(available_cells))):
            self.add_cop(available_cells.pop().location)

        # Create agents
        for _ in range(min(self.requested_agents, len(available_cells))):
            self.add_agent(available_cells.pop().location)

        if len(self.cops) < self.requested_cops or len(self.agents) < self.requested_agents:
            logger.warning(
                "Grid of %d cells is full: placed %d of %d cops and %d of %d agents",
                total_cells, len(self.cops), self.requested_cops,
                len(self.agents), self.requested_agents)
        logger.info("Placed %d agents and %d cops on a %dx%d grid",
                    len(self.agents), len(self.cops), self.width, self.height)

        # Initialize statistics
        self._update_stats()

    def add_agent(self, location, risk_aversion=None, perceived_hardship=None):
        """
        Place a new quiet agent on an empty cell. Traits not given are drawn uniformly
        from [0, 1) using the model's random source.
        """
        cell = self.cell_at(location)
        if not cell.is_empty():
            raise ValueError(f"Cell {location} is already occupied")
        if risk_aversion is None:
            risk_aversion = self.random.random()
        if perceived_hardship is None:
            perceived_hardship = self.random.random()

        agent = Agent(location, self, risk_aversion, perceived_hardship)
        cell.occupant = agent
        self.agents.append(agent)
        return agent

    def add_cop(self, location):
        """Place a new cop on an empty cell."""
        cell = self.cell_at(location)
        if not cell.is_empty():
            raise ValueError(f"Cell {location} is already occupied")

        cop = Cop(location, self)
        cell.occupant = cop
        self.cops.append(cop)
        return cop

    def tick(self):
        """
        Advance the simulation by one time step, applying all rules.

        The phases run in a fixed order over the whole population: movement,
        agent behavior, enforcement, then jail decay.
        """
        self._require_config()

        # Rule M: Move agents and cops
        for agent in self.agents:
            agent.move()

        for cop in self.cops:
            cop.move()
        if __debug__:
            self._check_invariants("movement")

        # Rule A: Agents determine behavior
        for agent in self.agents:
            agent.determine_behavior()
        if __debug__:
            self._check_invariants("behavior")

        # Rule C: Cops enforce
        for cop in self.cops:
            cop.enforce()
        if __debug__:
            self._check_invariants("enforcement")

        # Reduce jail terms
        for agent in self.agents:
            if agent.jailed:
                agent.jail_term -= 1
                if agent.jail_term == 0:
                    self._release(agent)
        if __debug__:
            self._check_invariants("jail decay")

        # Update statistics
        self.time += 1
        self._update_stats()

    def step(self):
        """Alias of `tick`."""
        self.tick()

    def _release(self, agent):
        """
        Put a freed agent back on the grid. If its cell has been taken in the meantime,
        the agent is displaced to an empty cell within vision, or anywhere on the grid.
        """
        cell = self.cell_at(agent.location)
        cell.jailed.remove(agent)
        if cell.is_empty():
            cell.occupant = agent
            return

        target = self.random_empty_cell(cell.neighborhood)
        if target is None:
            target = self.random_empty_cell(self.cells)
        # Never None: the grid holds no more actors than cells
        logger.debug("Released agent displaced from %s to %s", cell.location, target.location)
        target.occupant = agent
        agent.location = target.location

    def _check_invariants(self, phase):
        for agent in self.agents:
            assert agent.jail_term >= 0, f"Negative jail term after {phase}"
            assert not (agent.jailed and agent.active), (
                f"Jailed agent at {agent.location} is active after {phase}")
        for cell in self.cells:
            occupant = cell.occupant
            if occupant is not None:
                assert occupant.location == cell.location, (
                    f"Occupant of {cell.location} recorded at {occupant.location} after {phase}")
                assert not (isinstance(occupant, Agent) and occupant.jailed), (
                    f"Jailed agent occupies {cell.location} after {phase}")

    def run(self, steps):
        """Run the simulation for a specified number of steps."""
        for _ in range(steps):
            self.tick()
        return self.stats

    def legitimacy_at(self, location):
        """
        Legitimacy perceived at a location. Equal to the government legitimacy unless
        local legitimacy is enabled, in which case arrests made within vision lower it.
        """
        config = self._require_config()
        if not config.local_legitimacy:
            return config.government_legitimacy
        arrests = sum(cell.arrests for cell in self.cell_at(location).neighborhood)
        pressure = min(1.0, arrests / config.max_local_related)
        return config.government_legitimacy * (1 - LOCAL_LEGITIMACY_WEIGHT * pressure)

    def arrest_probability_at(self, location, exclude=None):
        """
        Estimated probability of arrest at a location, P = 1 - exp(-k * floor(C / (A + 1))),
        where C counts cops and A counts active agents within vision. `exclude` is left
        out of the active count (an agent does not count itself).
        """
        cops = 0
        active_agents = 0
        for cell in self.cell_at(location).neighborhood:
            occupant = cell.occupant
            if isinstance(occupant, Cop):
                cops += 1
            elif isinstance(occupant, Agent) and occupant.active and occupant is not exclude:
                active_agents += 1

        return float(1 - np.exp(-self.k * np.floor(cops / (active_agents + 1))))

    def active_count(self):
        return sum(1 for agent in self.agents if agent.active and not agent.jailed)

    def jailed_count(self):
        return sum(1 for agent in self.agents if agent.jailed)

    def quiet_count(self):
        return sum(1 for agent in self.agents if not agent.active and not agent.jailed)

    def cop_count(self):
        return len(self.cops)

    def _update_stats(self):
        """
        Update statistics about the current state of the simulation.
        """
        self.stats['active_agents'].append(self.active_count())
        self.stats['jailed_agents'].append(self.jailed_count())
        self.stats['quiet_agents'].append(self.quiet_count())
