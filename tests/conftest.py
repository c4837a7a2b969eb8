import sys
from dataclasses import replace
from pathlib import Path

import pytest

# Ensure the repository root (which contains the `skytrade_explorer` package) is importable in tests.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from skytrade_explorer.common.config import AppConfig
from skytrade_explorer.common.geo import HexIndexer


@pytest.fixture(scope="session")
def indexer():
    return HexIndexer()


@pytest.fixture
def app_config():
    config = AppConfig()
    return replace(config, viewport=replace(config.viewport, debounce_seconds=0.01))
