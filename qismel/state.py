from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import networkx as nx
import numpy as np

from .tensor import TensorBuffer


@dataclass(frozen=True)
class FeatureMap:
    name: str
    coordinates: Tuple[int, ...]
    type: str = "symbolic"

    def __str__(self) -> str:
        coords = ", ".join(str(c) for c in self.coordinates)
        return f"{self.type}:{self.name}@({coords})"


@dataclass(frozen=True)
class Metadata:
    source: str = ""
    processing_steps: Tuple[str, ...] = ()
    custom_fields: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "processing_steps", tuple(self.processing_steps))
        object.__setattr__(self, "custom_fields", MappingProxyType(dict(self.custom_fields)))

    def with_step(self, step: str) -> "Metadata":
        return Metadata(self.source, self.processing_steps + (step,), dict(self.custom_fields))

    def with_field(self, key: str, value: Any) -> "Metadata":
        fields = dict(self.custom_fields)
        fields[key] = value
        return Metadata(self.source, self.processing_steps, fields)


@dataclass(frozen=True, eq=False)
class StateTensor:
    """Immutable multimodal state snapshot.

    Combines a shaped numeric buffer with symbolic side-channels:
      - features: named point annotations located by tensor coordinates
      - metadata: source, processing-step log, custom fields
      - embeddings: optional per-modality vectors (e.g. "image", "audio")
      - sensors: optional named scalar readings
      - task_context / environment_context: optional context strings

    The buffer and embeddings are stored read-only. Every transformation
    returns a new StateTensor and records itself as a processing step.
    """

    buffer: TensorBuffer
    features: Tuple[FeatureMap, ...] = ()
    metadata: Metadata = field(default_factory=Metadata)
    embeddings: Mapping[str, np.ndarray] = field(default_factory=lambda: MappingProxyType({}))
    sensors: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    task_context: Optional[str] = None
    environment_context: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "buffer", self.buffer.freeze())
        features = tuple(self.features)
        for feature in features:
            # Raises TensorIndexError for coordinates outside the buffer.
            self.buffer.index_of(feature.coordinates)
        object.__setattr__(self, "features", features)
        embeddings: Dict[str, np.ndarray] = {}
        for modality, vector in self.embeddings.items():
            arr = np.array(vector, dtype=np.float32, copy=True).ravel()
            arr.flags.writeable = False
            embeddings[str(modality)] = arr
        object.__setattr__(self, "embeddings", MappingProxyType(embeddings))
        object.__setattr__(
            self, "sensors", MappingProxyType({str(k): float(v) for k, v in self.sensors.items()})
        )

    @staticmethod
    def create(
        data: Any,
        shape: Sequence[int],
        datatype: str = "float32",
        features: Iterable[FeatureMap] = (),
        *,
        source: str = "",
        embeddings: Optional[Mapping[str, Any]] = None,
        sensors: Optional[Mapping[str, float]] = None,
        task_context: Optional[str] = None,
        environment_context: Optional[str] = None,
    ) -> "StateTensor":
        return StateTensor(
            buffer=TensorBuffer(tuple(shape), np.asarray(data), datatype),
            features=tuple(features),
            metadata=Metadata(source=source),
            embeddings=dict(embeddings or {}),
            sensors=dict(sensors or {}),
            task_context=task_context,
            environment_context=environment_context,
        )

    # -------------------- Accessors --------------------

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.buffer.shape

    @property
    def data(self) -> np.ndarray:
        return self.buffer.data

    @property
    def datatype(self) -> str:
        return self.buffer.datatype

    @property
    def image_embedding(self) -> Optional[np.ndarray]:
        return self.embeddings.get("image")

    @property
    def audio_embedding(self) -> Optional[np.ndarray]:
        return self.embeddings.get("audio")

    def get(self, coords: Sequence[int]) -> Any:
        return self.buffer.get(coords)

    def same_as(self, other: "StateTensor") -> bool:
        if not self.buffer.same_as(other.buffer):
            return False
        if self.embeddings.keys() != other.embeddings.keys():
            return False
        if any(not np.array_equal(v, other.embeddings[k]) for k, v in self.embeddings.items()):
            return False
        return (
            self.features == other.features
            and dict(self.sensors) == dict(other.sensors)
            and self.task_context == other.task_context
            and self.environment_context == other.environment_context
        )

    # -------------------- Derivations --------------------

    def replace(self, **changes: Any) -> "StateTensor":
        fields = {
            "buffer": self.buffer,
            "features": self.features,
            "metadata": self.metadata,
            "embeddings": self.embeddings,
            "sensors": self.sensors,
            "task_context": self.task_context,
            "environment_context": self.environment_context,
        }
        fields.update(changes)
        return StateTensor(**fields)

    def with_value(self, coords: Sequence[int], value: Any) -> "StateTensor":
        buffer = self.buffer.copy()
        buffer.set(coords, value)
        return self.replace(buffer=buffer, metadata=self.metadata.with_step("set"))

    def with_metadata(self, key: str, value: Any) -> "StateTensor":
        return self.replace(metadata=self.metadata.with_field(key, value))

    def with_processing_step(self, step: str) -> "StateTensor":
        return self.replace(metadata=self.metadata.with_step(step))

    def with_context(self, task_context: Optional[str], environment_context: Optional[str]) -> "StateTensor":
        return self.replace(task_context=task_context, environment_context=environment_context)

    def with_features(self, features: Iterable[FeatureMap]) -> "StateTensor":
        return self.replace(features=tuple(features))

    def transpose(self) -> "StateTensor":
        features = tuple(
            FeatureMap(f.name, tuple(reversed(f.coordinates)), f.type) for f in self.features
        )
        return self.replace(
            buffer=self.buffer.transpose(),
            features=features,
            metadata=self.metadata.with_step("transpose"),
        )

    def normalize(self) -> "StateTensor":
        return self.replace(buffer=self.buffer.normalize(), metadata=self.metadata.with_step("normalize"))

    def add(self, other: "StateTensor") -> "StateTensor":
        return self.replace(buffer=self.buffer.add(other.buffer), metadata=self.metadata.with_step("add"))

    def multiply(self, other: "StateTensor") -> "StateTensor":
        return self.replace(
            buffer=self.buffer.multiply(other.buffer), metadata=self.metadata.with_step("multiply")
        )

    def concatenate(self, other: "StateTensor", axis: int) -> "StateTensor":
        buffer = self.buffer.concatenate(other.buffer, axis)
        offset = self.shape[axis]
        shifted: List[FeatureMap] = []
        for f in other.features:
            coords = list(f.coordinates)
            coords[axis] += offset
            shifted.append(FeatureMap(f.name, tuple(coords), f.type))
        return self.replace(
            buffer=buffer,
            features=self.features + tuple(shifted),
            metadata=self.metadata.with_step(f"concatenate(axis={axis})"),
        )

    # -------------------- Graph View --------------------

    def feature_graph(self, radius: int = 2) -> nx.Graph:
        """Proximity graph over features: edges join annotations within `radius` (Manhattan)."""
        graph = nx.Graph()
        for f in self.features:
            graph.add_node(f.name, coordinates=f.coordinates, type=f.type)
        for i, a in enumerate(self.features):
            for b in self.features[i + 1:]:
                dist = sum(abs(x - y) for x, y in zip(a.coordinates, b.coordinates))
                if dist <= radius:
                    graph.add_edge(a.name, b.name, weight=1.0 / (1 + dist))
        return graph

    # -------------------- Serialization --------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "buffer": self.buffer.to_dict(),
            "features": [
                {"name": f.name, "coordinates": list(f.coordinates), "type": f.type} for f in self.features
            ],
            "metadata": {
                "source": self.metadata.source,
                "processing_steps": list(self.metadata.processing_steps),
                "custom_fields": dict(self.metadata.custom_fields),
            },
            "embeddings": {k: v.tolist() for k, v in sorted(self.embeddings.items())},
            "sensors": dict(sorted(self.sensors.items())),
            "task_context": self.task_context,
            "environment_context": self.environment_context,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "StateTensor":
        meta = data.get("metadata", {})
        return StateTensor(
            buffer=TensorBuffer.from_dict(data["buffer"]),
            features=tuple(
                FeatureMap(item["name"], tuple(item["coordinates"]), item.get("type", "symbolic"))
                for item in data.get("features", [])
            ),
            metadata=Metadata(
                source=meta.get("source", ""),
                processing_steps=tuple(meta.get("processing_steps", [])),
                custom_fields=dict(meta.get("custom_fields", {})),
            ),
            embeddings=dict(data.get("embeddings", {})),
            sensors=dict(data.get("sensors", {})),
            task_context=data.get("task_context"),
            environment_context=data.get("environment_context"),
        )
