from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import numpy as np

from .errors import ConfigError
from .state import FeatureMap, Metadata, StateTensor
from .tensor import TensorBuffer


@dataclass
class PerceptionModel:
    """Stand-in perception provider producing multimodal StateTensors.

    Readings are drawn from a seeded generator; nothing here models a real
    sensor. Replace with any callable returning a StateTensor.
    """

    shape: Tuple[int, ...] = (10, 10, 10)
    image_dim: int = 128
    audio_dim: int = 64
    feature_names: Tuple[str, ...] = ("object", "color", "shape")
    seed: Optional[int] = None
    task_context: Optional[str] = None
    environment_context: Optional[str] = None
    rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.shape = tuple(self.shape)
        self.feature_names = tuple(self.feature_names)
        if not self.shape or any(isinstance(d, bool) or not isinstance(d, int) or d <= 0 for d in self.shape):
            raise ConfigError(f"perception shape must be positive integers, got {self.shape}")
        # Feature i is placed at (i, 0, ...), one per slice of the first axis.
        if self.shape[0] < len(self.feature_names):
            raise ConfigError(
                f"shape {self.shape} has room for {self.shape[0]} features on axis 0, "
                f"got {len(self.feature_names)} feature names"
            )
        self.rng = np.random.default_rng(self.seed)

    def perceive(self) -> StateTensor:
        size = int(np.prod(self.shape))
        features = [
            FeatureMap(name=f"{name}_{self._token()}", coordinates=(i,) + (0,) * (len(self.shape) - 1))
            for i, name in enumerate(self.feature_names)
        ]
        return StateTensor(
            buffer=TensorBuffer(self.shape, self.rng.random(size, dtype=np.float32), "float32"),
            features=tuple(features),
            metadata=Metadata(source="perception", processing_steps=("perceive",)),
            embeddings={
                "image": self.rng.random(self.image_dim, dtype=np.float32),
                "audio": self.rng.random(self.audio_dim, dtype=np.float32),
            },
            sensors={
                "temperature": float(self.rng.random() * 100.0),
                "humidity": float(self.rng.random() * 100.0),
                "pressure": float(self.rng.random() * 1000.0),
            },
            task_context=self.task_context,
            environment_context=self.environment_context,
        )

    async def perceive_async(self) -> StateTensor:
        await asyncio.sleep(0)
        return self.perceive()

    def _token(self) -> str:
        return format(int(self.rng.integers(0, 36 ** 5)), "x")

    @staticmethod
    def from_raw(raw_input: Dict[str, Any]) -> StateTensor:
        """Build a StateTensor from an explicit reading.

        raw_input format:
        {
          "shape": [int, ...], "data": [float, ...], "datatype": "float32",
          "features": [{"name": str, "coordinates": [int, ...], "type": str}],
          "embeddings": {"image": [float, ...], "audio": [...]},
          "sensors": {"temperature": float, ...},
          "task_context": str, "environment_context": str,
          "source": str
        }
        """
        features: List[FeatureMap] = [
            FeatureMap(f["name"], tuple(int(c) for c in f["coordinates"]), f.get("type", "symbolic"))
            for f in raw_input.get("features", [])
        ]
        return StateTensor(
            buffer=TensorBuffer(
                tuple(raw_input["shape"]),
                np.asarray(raw_input["data"]),
                raw_input.get("datatype", "float32"),
            ),
            features=tuple(features),
            metadata=Metadata(source=raw_input.get("source", "raw"), processing_steps=("from_raw",)),
            embeddings=dict(raw_input.get("embeddings", {})),
            sensors=dict(raw_input.get("sensors", {})),
            task_context=raw_input.get("task_context"),
            environment_context=raw_input.get("environment_context"),
        )
