from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple
import math
import numpy as np

from .errors import (
    ConfigError,
    DegenerateRangeError,
    FrozenTensorError,
    ShapeMismatch,
    TensorIndexError,
)


@dataclass(eq=False)
class TensorBuffer:
    """Fixed-shape numeric buffer stored as a flat row-major numpy array.

    Construction always copies the incoming data, so a buffer never shares
    memory with the caller's array or with the buffer it was derived from.
    Every algebra operation returns a new buffer; operands are never touched,
    so a failed operation cannot leave a half-written result behind. Only
    ``set`` writes in place, and only on buffers that have not been frozen.
    """

    shape: Tuple[int, ...]
    data: np.ndarray
    datatype: str = "float64"

    def __post_init__(self) -> None:
        self.shape = _validate_shape(self.shape)
        try:
            dtype = np.dtype(self.datatype)
        except TypeError as exc:
            raise ConfigError(f"unknown datatype {self.datatype!r}") from exc
        self.datatype = dtype.name
        self.data = np.array(self.data, dtype=dtype, copy=True).ravel()
        expected = math.prod(self.shape)
        if self.data.shape[0] != expected:
            raise ConfigError(
                f"data length {self.data.shape[0]} does not match shape {self.shape} (expected {expected})"
            )

    @staticmethod
    def zeros(shape: Sequence[int], datatype: str = "float64") -> "TensorBuffer":
        shape = _validate_shape(shape)
        return TensorBuffer(shape, np.zeros(math.prod(shape), dtype=datatype), datatype)

    @staticmethod
    def from_array(array: Any, datatype: str | None = None) -> "TensorBuffer":
        arr = np.array(array, copy=True)
        if arr.ndim == 0:
            arr = arr.reshape(1)
        return TensorBuffer(tuple(arr.shape), arr.ravel(), datatype or arr.dtype.name)

    # -------------------- Indexing --------------------

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return int(self.data.shape[0])

    @property
    def frozen(self) -> bool:
        return not self.data.flags.writeable

    def index_of(self, coords: Sequence[int]) -> int:
        coords = tuple(coords)
        if len(coords) != len(self.shape):
            raise TensorIndexError(
                f"expected {len(self.shape)} coordinates for shape {self.shape}, got {len(coords)}"
            )
        index = 0
        for axis, (c, dim) in enumerate(zip(coords, self.shape)):
            if isinstance(c, bool) or not isinstance(c, (int, np.integer)):
                raise TensorIndexError(f"coordinate {c!r} on axis {axis} is not an integer")
            if c < 0 or c >= dim:
                raise TensorIndexError(f"coordinate {c} out of range [0, {dim}) on axis {axis}")
            index = index * dim + int(c)
        return index

    def coords_of(self, index: int) -> Tuple[int, ...]:
        if index < 0 or index >= self.size:
            raise TensorIndexError(f"flat index {index} out of range [0, {self.size})")
        return tuple(int(c) for c in np.unravel_index(index, self.shape))

    def get(self, coords: Sequence[int]) -> Any:
        return self.data[self.index_of(coords)].item()

    def set(self, coords: Sequence[int], value: Any) -> None:
        index = self.index_of(coords)
        if self.frozen:
            raise FrozenTensorError(f"buffer of shape {self.shape} is read-only")
        self.data[index] = value

    # -------------------- Copies --------------------

    def copy(self) -> "TensorBuffer":
        return TensorBuffer(self.shape, self.data, self.datatype)

    def freeze(self) -> "TensorBuffer":
        if self.frozen:
            return self
        frozen = TensorBuffer(self.shape, self.data, self.datatype)
        frozen.data.flags.writeable = False
        return frozen

    def to_numpy(self) -> np.ndarray:
        return self.data.reshape(self.shape).copy()

    def same_as(self, other: "TensorBuffer") -> bool:
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    # -------------------- Algebra --------------------

    def add(self, other: "TensorBuffer") -> "TensorBuffer":
        self._require_same_shape(other, "add")
        return _from_flat(self.shape, self.data + other.data)

    def multiply(self, other: "TensorBuffer") -> "TensorBuffer":
        self._require_same_shape(other, "multiply")
        return _from_flat(self.shape, self.data * other.data)

    def equals(self, other: "TensorBuffer") -> "TensorBuffer":
        self._require_same_shape(other, "equals")
        return TensorBuffer(self.shape, (self.data == other.data).astype(np.uint8), "uint8")

    def apply(self, fn: Callable[[float], float]) -> "TensorBuffer":
        mapped = np.array([fn(v) for v in self.data.tolist()], dtype=float)
        return TensorBuffer(self.shape, mapped, "float64")

    def transpose(self) -> "TensorBuffer":
        moved = np.transpose(self.data.reshape(self.shape))
        return TensorBuffer(tuple(moved.shape), moved, self.datatype)

    def normalize(self) -> "TensorBuffer":
        """Rescale linearly to [0, 1].

        Raises DegenerateRangeError when every element is equal, or when the
        range is not finite (NaN or infinite values, or a span that overflows
        float64).
        """
        values = self.data.astype(np.float64)
        lo, hi = float(values.min()), float(values.max())
        if hi == lo:
            raise DegenerateRangeError(f"cannot normalize constant tensor (min == max == {lo})")
        if not math.isfinite(hi - lo):
            raise DegenerateRangeError(f"cannot normalize tensor with non-finite range [{lo}, {hi}]")
        scaled = (values - lo) / (hi - lo)
        datatype = self.datatype if self.data.dtype.kind == "f" else "float64"
        return TensorBuffer(self.shape, scaled, datatype)

    def concatenate(self, other: "TensorBuffer", axis: int) -> "TensorBuffer":
        if axis < 0 or axis >= self.rank:
            raise ConfigError(f"invalid concatenation axis {axis} for rank {self.rank}")
        if other.rank != self.rank:
            raise ShapeMismatch(
                f"concatenate needs equal ranks, got {self.shape} and {other.shape}", self.shape, other.shape
            )
        for i, (a, b) in enumerate(zip(self.shape, other.shape)):
            if i != axis and a != b:
                raise ShapeMismatch(
                    f"concatenate along axis {axis} needs matching dimension {i}: {self.shape} vs {other.shape}",
                    self.shape,
                    other.shape,
                )
        joined = np.concatenate([self.data.reshape(self.shape), other.data.reshape(other.shape)], axis=axis)
        return _from_flat(tuple(joined.shape), joined.ravel())

    def stack(self, others: Iterable["TensorBuffer"], axis: int = 0) -> "TensorBuffer":
        others = list(others)
        if axis < 0 or axis > self.rank:
            raise ConfigError(f"invalid stacking axis {axis} for rank {self.rank}")
        for other in others:
            self._require_same_shape(other, "stack")
        arrays = [t.data.reshape(t.shape) for t in [self] + others]
        stacked = np.stack(arrays, axis=axis)
        return _from_flat(tuple(stacked.shape), stacked.ravel())

    def slice(self, start: Sequence[int], end: Sequence[int]) -> "TensorBuffer":
        start, end = tuple(start), tuple(end)
        if len(start) != self.rank or len(end) != self.rank:
            raise TensorIndexError(f"slice bounds must have {self.rank} components")
        for axis, (s, e, dim) in enumerate(zip(start, end, self.shape)):
            if not 0 <= s < e <= dim:
                raise TensorIndexError(f"invalid slice [{s}, {e}) on axis {axis} of size {dim}")
        window = tuple(slice(s, e) for s, e in zip(start, end))
        sub = self.data.reshape(self.shape)[window]
        return TensorBuffer(tuple(sub.shape), sub, self.datatype)

    def _require_same_shape(self, other: "TensorBuffer", op: str) -> None:
        if self.shape != other.shape:
            raise ShapeMismatch(
                f"{op} needs identical shapes, got {self.shape} and {other.shape}", self.shape, other.shape
            )

    # -------------------- Serialization --------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"shape": list(self.shape), "datatype": self.datatype, "data": self.data.tolist()}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "TensorBuffer":
        datatype = data.get("datatype", "float64")
        return TensorBuffer(tuple(data["shape"]), np.array(data["data"], dtype=datatype), datatype)


# -------------------- Utilities --------------------

def _validate_shape(shape: Sequence[int]) -> Tuple[int, ...]:
    dims: List[int] = list(shape)
    if not dims:
        raise ConfigError("shape must have at least one dimension")
    for dim in dims:
        if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)) or dim <= 0:
            raise ConfigError(f"shape dimensions must be positive integers, got {tuple(dims)}")
    return tuple(int(d) for d in dims)


def _from_flat(shape: Tuple[int, ...], values: np.ndarray) -> TensorBuffer:
    return TensorBuffer(shape, values, values.dtype.name)
