import random

import pytest

from pairs.engine import EngineContext
from pairs.types import GameConfig
from tests.helpers import FakeClock


def pytest_addoption(parser):
    parser.addoption(
        "--skip-temporal",
        action="store_true",
        default=False,
        help="skip tests that start the Temporal time-skipping test server",
    )


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--skip-temporal"):
        return
    skip = pytest.mark.skip(reason="--skip-temporal given")
    for item in items:
        if "temporal" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return GameConfig()


@pytest.fixture
def context(config, clock):
    return EngineContext(config=config, rng=random.Random(1234), clock=clock)
