import os

import pytest
from loguru import logger

from config import ProjectionConfig

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture
def sample_book_path():
    return os.path.join(REPO_ROOT, "data", "sample_book.csv")


@pytest.fixture
def default_config_path():
    return os.path.join(REPO_ROOT, "config.json")


@pytest.fixture
def fixed_config():
    """Ten-year fixed-growth scenario with income from year 0."""
    return ProjectionConfig(
        scenario="FixedTest",
        start_value=100000,
        initial_benefit_base=120000,
        years=10,
        income_start=0,
        payout_rate=0.06,
        rollup_rate=0.05,
        mode="fixed",
        client_age=62,
        start_year=2025,
        seed=11,
    )


@pytest.fixture
def random_config():
    return ProjectionConfig(
        scenario="RandomTest",
        start_value=200000,
        years=10,
        income_start=3,
        payout_rate=0.05,
        rollup_rate=0.06,
        mode="random",
        client_age=70,
        start_year=2030,
        seed=7,
        num_paths=50,
    )


@pytest.fixture
def loguru_messages():
    """Collects loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
