from __future__ import annotations

import asyncio

import numpy as np
import pytest

from qismel.errors import ConfigError
from qismel.fingerprint import compute_state_action_fingerprint
from qismel.perception import PerceptionModel
from qismel.signals import cross_modal_coherence, feature_density
from qismel.utils import cosine_similarity


def test_default_perception_layout():
    state = PerceptionModel(seed=0).perceive()
    assert state.shape == (10, 10, 10)
    assert state.datatype == "float32"
    assert state.image_embedding.shape == (128,)
    assert state.audio_embedding.shape == (64,)
    assert set(state.sensors) == {"temperature", "humidity", "pressure"}
    assert [f.coordinates for f in state.features] == [(0, 0, 0), (1, 0, 0), (2, 0, 0)]
    assert all(f.type == "symbolic" for f in state.features)
    assert state.metadata.source == "perception"
    assert 0.0 <= float(state.data.min()) and float(state.data.max()) < 1.0


def test_seeded_perception_is_reproducible():
    a = PerceptionModel(seed=42)
    b = PerceptionModel(seed=42)
    for _ in range(3):
        sa, sb = a.perceive(), b.perceive()
        assert compute_state_action_fingerprint(sa, "move") == compute_state_action_fingerprint(sb, "move")
    assert compute_state_action_fingerprint(a.perceive(), "move") != compute_state_action_fingerprint(
        a.perceive(), "move"
    )


def test_async_perceive():
    state = asyncio.run(PerceptionModel(shape=(3, 2), seed=1).perceive_async())
    assert state.shape == (3, 2)
    assert [f.coordinates for f in state.features] == [(0, 0), (1, 0), (2, 0)]


def test_small_shapes_need_fewer_feature_names():
    with pytest.raises(ConfigError):
        PerceptionModel(shape=(2, 2))
    with pytest.raises(ConfigError):
        PerceptionModel(shape=(0, 4), feature_names=())
    state = PerceptionModel(shape=(2, 2), feature_names=("object", "color"), seed=3).perceive()
    assert [f.coordinates for f in state.features] == [(0, 0), (1, 0)]
    bare = PerceptionModel(shape=(1,), feature_names=(), seed=3).perceive()
    assert bare.features == ()


def test_from_raw():
    state = PerceptionModel.from_raw(
        {
            "shape": [2, 2],
            "data": [0.0, 0.25, 0.5, 1.0],
            "features": [{"name": "cup", "coordinates": [1, 0], "type": "object"}],
            "embeddings": {"image": [1.0, 0.0]},
            "sensors": {"temperature": 19.0},
            "task_context": "fetch",
        }
    )
    assert state.get((1, 1)) == 1.0
    assert state.features[0].type == "object"
    assert state.sensors["temperature"] == 19.0
    assert state.task_context == "fetch"
    assert state.environment_context is None
    assert state.metadata.processing_steps == ("from_raw",)
    with pytest.raises(ConfigError):
        PerceptionModel.from_raw({"shape": [2, 2], "data": [0.0]})


def test_structural_signal_providers():
    state = PerceptionModel.from_raw(
        {
            "shape": [2, 2],
            "data": [0.0, 0.0, 0.0, 0.0],
            "features": [{"name": "a", "coordinates": [0, 0]}],
            "embeddings": {"image": [1.0, 0.0], "audio": [1.0, 0.0]},
        }
    )
    assert feature_density(state) == 0.25
    assert cross_modal_coherence(state) == pytest.approx(1.0)
    bare = state.replace(embeddings={})
    assert cross_modal_coherence(bare) == 0.0


def test_cosine_similarity_pads_shorter_vector():
    assert cosine_similarity([1.0, 0.0, 0.0], [1.0]) == pytest.approx(1.0)
    assert cosine_similarity([0.0, 1.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity(np.zeros(3), np.ones(3)) == 0.0
    assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)


def test_cosine_similarity_of_non_finite_embedding_is_zero():
    assert cosine_similarity([float("nan"), 1.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity([1.0], [float("inf")]) == 0.0

