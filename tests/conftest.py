import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from rebellion_model import RebellionModel


@pytest.fixture
def empty_model():
    """A 10x10 model set up with no agents or cops, for placing actors by hand."""
    model = RebellionModel(10, 10, vision=2, max_jail_term=5, seed=1)
    model.setup(agent_density=0.0, cop_density=0.0, k=2.3, threshold=0.1,
                government_legitimacy=0.5)
    return model


@pytest.fixture
def still_model():
    """Like empty_model, but agents never move on their own."""
    model = RebellionModel(10, 10, vision=2, max_jail_term=5, seed=1, movement=False)
    model.setup(agent_density=0.0, cop_density=0.0, k=2.3, threshold=0.1,
                government_legitimacy=0.5)
    return model


@pytest.fixture
def baseline_model():
    model = RebellionModel(40, 40, vision=7, max_jail_term=30, seed=2024)
    model.setup(agent_density=0.7, cop_density=0.04, k=2.3, threshold=0.1,
                government_legitimacy=0.82)
    return model


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
