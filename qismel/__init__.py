"""QISMEL package: multimodal state tensors and weighted action-value learning.

Modules:
- tensor: fixed-shape numeric buffer with coordinate indexing and algebra
- state: immutable multimodal state snapshot (buffer, features, embeddings, sensors)
- fingerprint: exact (state, action) keys
- value_table: fingerprint -> value estimates, locking and persistence
- signals: the five auxiliary signal providers
- engine: greedy selection and the weighted temporal-difference update
- config: engine weights and agent loop settings, YAML loading
- perception: stand-in multimodal perception provider
- memory: short-term/long-term keyed memory and the narrative log of agent events
- agent: bounded perceive/select/act/update loop
- errors: error taxonomy
- utils: helpers and shared utilities
"""

from .errors import (
    ConfigError,
    DegenerateRangeError,
    FrozenTensorError,
    QismelError,
    ShapeMismatch,
    SignalError,
    TensorIndexError,
)
from .tensor import TensorBuffer
from .state import FeatureMap, Metadata, StateTensor
from .fingerprint import compute_state_action_fingerprint
from .value_table import ValueTable
from .signals import SignalProviders, SignalValues
from .config import AgentConfig, Config, QismelConfig, load_config
from .engine import EnginePhase, QISMELEngine, UpdateRecord
