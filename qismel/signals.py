from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence
import numpy as np

from .errors import SignalError
from .state import StateTensor
from .utils import cosine_similarity

IntrinsicFn = Callable[[StateTensor, str], float]
StateFn = Callable[[StateTensor], float]
ContextFn = Callable[[str, str], float]
PopulationFn = Callable[[Sequence[Any]], float]


@dataclass(frozen=True)
class SignalValues:
    intrinsic: float
    symbolic: float
    meta_learning: float
    evolutionary: float
    latent: float


@dataclass
class SignalProviders:
    """The five auxiliary scalar sources consumed by the value update.

    Each provider is an opaque function; its range is not checked and it may
    return different values for the same arguments. A provider that raises,
    or returns something that is not a number, surfaces as SignalError.
    """

    intrinsic: IntrinsicFn
    symbolic: StateFn
    meta_learning: ContextFn
    evolutionary: PopulationFn
    latent: StateFn
    population: Sequence[Any] = field(default_factory=tuple)

    def evaluate(self, state: StateTensor, action: str) -> SignalValues:
        task = state.task_context or ""
        env = state.environment_context or ""
        return SignalValues(
            intrinsic=_call("intrinsic", self.intrinsic, state, action),
            symbolic=_call("symbolic", self.symbolic, state),
            meta_learning=_call("meta_learning", self.meta_learning, task, env),
            evolutionary=_call("evolutionary", self.evolutionary, self.population),
            latent=_call("latent", self.latent, state),
        )


def _call(name: str, fn: Callable[..., Any], *args: Any) -> float:
    try:
        value = fn(*args)
    except Exception as exc:
        raise SignalError(name, f"provider raised {type(exc).__name__}: {exc}") from exc
    if isinstance(value, bool):
        raise SignalError(name, f"provider returned a bool ({value!r}), expected a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SignalError(name, f"provider returned non-numeric {value!r}") from exc


# -------------------- Stock Providers --------------------

def zero_signals() -> SignalProviders:
    """Providers that always return 0, reducing the update to plain Q-learning."""
    return SignalProviders(
        intrinsic=lambda s, a: 0.0,
        symbolic=lambda s: 0.0,
        meta_learning=lambda task, env: 0.0,
        evolutionary=lambda population: 0.0,
        latent=lambda s: 0.0,
    )


def random_signals(seed: Optional[int] = None) -> SignalProviders:
    """Uniform [0, 1) placeholders for every signal."""
    rng = np.random.default_rng(seed)
    return SignalProviders(
        intrinsic=lambda s, a: float(rng.random()),
        symbolic=lambda s: float(rng.random()),
        meta_learning=lambda task, env: float(rng.random()),
        evolutionary=lambda population: float(rng.random()),
        latent=lambda s: float(rng.random()),
    )


def feature_density(state: StateTensor) -> float:
    return len(state.features) / float(state.buffer.size)


def cross_modal_coherence(state: StateTensor) -> float:
    # Cosine similarity between image and audio embeddings; 0 if either is missing.
    image, audio = state.image_embedding, state.audio_embedding
    if image is None or audio is None:
        return 0.0
    return cosine_similarity(image.astype(np.float64), audio.astype(np.float64))


def default_signals(seed: Optional[int] = None) -> SignalProviders:
    """Random intrinsic/meta/evolutionary terms with structural symbolic and latent terms."""
    rng = np.random.default_rng(seed)
    return SignalProviders(
        intrinsic=lambda s, a: float(rng.random()),
        symbolic=feature_density,
        meta_learning=lambda task, env: float(rng.random()),
        evolutionary=lambda population: float(rng.random()),
        latent=cross_modal_coherence,
    )
