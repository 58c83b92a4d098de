import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure the repository root (which contains the `neighborhoods` package) is importable in tests.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from neighborhoods.common.geo import GridSnapper  # noqa: E402
from neighborhoods.core.colorizer import Colorizer  # noqa: E402
from neighborhoods.core.normalizer import LocationNormalizer  # noqa: E402
from neighborhoods.store.color_store import InMemoryColorStore  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapper():
    return GridSnapper()


@pytest.fixture
def colorizer():
    return Colorizer(store=InMemoryColorStore(), rng=random.Random(7))


@pytest.fixture
def normalizer(snapper):
    return LocationNormalizer(snapper, clock=lambda: FIXED_NOW)
