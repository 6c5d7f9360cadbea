import os
import sys

import pytest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from signal_engine.config import EngineConfig
from mock_data import make_bars, make_options_chain, make_auxiliary


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def bars():
    return make_bars()


@pytest.fixture
def chain():
    return make_options_chain()


@pytest.fixture
def auxiliary():
    return make_auxiliary()
