import logging
import os
import random

import numpy as np
import pytest

from geoxform.core.config import Settings, set_settings
from geoxform.transform.factory import TransformFactory
from geoxform.transform.pool import TransformPool


def pytest_configure(config: pytest.Config) -> None:  # noqa: ARG001
    config.addinivalue_line("markers", "oracle: compares against pyproj when it is installed")


@pytest.fixture(autouse=True)
def seed_rng() -> None:
    random.seed(0)
    np.random.seed(0)
    os.environ["PYTHONHASHSEED"] = "0"


@pytest.fixture(autouse=True)
def default_settings():
    """Run every test with default settings, restoring the lazy ones afterwards."""
    set_settings(Settings())
    yield
    set_settings(None)
    # CLI runs attach handlers to captured streams
    package_logger = logging.getLogger("geoxform")
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture()
def factory() -> TransformFactory:
    return TransformFactory(pool=TransformPool())


@pytest.fixture()
def self_check():
    set_settings(Settings(self_check=True))
    yield
    set_settings(Settings())
