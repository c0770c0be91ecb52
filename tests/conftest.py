import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import numpy as np
import pytest

from qismel.state import FeatureMap, StateTensor


@pytest.fixture
def small_state():
    return StateTensor.create(
        np.arange(12, dtype=np.float32) / 4.0,
        (3, 4),
        features=[FeatureMap("object", (0, 0)), FeatureMap("color", (1, 2))],
        source="test",
        embeddings={"image": [0.5, 0.25, 1.0], "audio": [1.0, 0.0]},
        sensors={"temperature": 21.5, "humidity": 40.0},
    )


@pytest.fixture
def next_state():
    return StateTensor.create(np.ones(12, dtype=np.float32), (3, 4), source="test")


@pytest.fixture
def actions():
    return ["move", "grab", "drop", "use"]
