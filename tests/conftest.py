from __future__ import annotations

import pytest

try:
    from hypothesis import HealthCheck, settings
except ImportError:  # pragma: no cover
    settings = None
    HealthCheck = None

from search_coverage.common.constants import (
    EPS_GEOM,
    RNG_SEEDS,
    TOL_NUM,
    seed_everywhere,
)
from search_coverage.data.schemas import SimulationConfig
from search_coverage.sim.engine import SearchSimulation


TEST_SEED = RNG_SEEDS.get("tests", 1337)
seed_everywhere(TEST_SEED)

if settings is not None:  # pragma: no branch
    settings.register_profile(
        "ci",
        max_examples=40,
        deadline=None,
        derandomize=True,
        print_blob=True,
        suppress_health_check=(
            HealthCheck.filter_too_much,
            HealthCheck.too_slow,
        ),
    )
    settings.load_profile("ci")


@pytest.fixture(scope="session")
def tol() -> float:
    return TOL_NUM


@pytest.fixture(scope="session")
def eps() -> float:
    return EPS_GEOM


@pytest.fixture
def sim() -> SearchSimulation:
    return SearchSimulation(config=SimulationConfig(seed=TEST_SEED))
