import pytest

from attrflow import Engine, default_engine


@pytest.fixture(autouse=True)
def _reset_default_engine():
    """Every test starts with an empty queue and no open atomic block."""
    default_engine.reset()
    yield
    default_engine.reset()


@pytest.fixture
def engine():
    return Engine()
