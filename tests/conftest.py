import pytest

from relmodel.config import Environment, RelModelConfig, reset_config, set_config
from relmodel.persistence import get_memory_persistence


@pytest.fixture(autouse=True)
def testing_config():
    """Fresh testing configuration for every test"""
    config = RelModelConfig.for_environment(Environment.TESTING)
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(autouse=True)
def memory_store():
    """Empty in-memory store for every test"""
    store = get_memory_persistence()
    store.clear()
    yield store
    store.clear()
