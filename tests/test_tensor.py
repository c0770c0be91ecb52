"""TensorBuffer indexing, algebra and error behavior."""

from __future__ import annotations

import numpy as np
import pytest

from qismel.errors import (
    ConfigError,
    DegenerateRangeError,
    FrozenTensorError,
    ShapeMismatch,
    TensorIndexError,
)
from qismel.tensor import TensorBuffer


def _grid(rows, cols):
    return TensorBuffer.from_array(np.arange(rows * cols, dtype=np.float64).reshape(rows, cols))


@pytest.mark.parametrize("coords", [(0, 0, 0), (1, 2, 3), (0, 1, 2), (1, 0, 3)])
def test_set_then_get_returns_value(coords):
    t = TensorBuffer.zeros((2, 3, 4))
    t.set(coords, 7.25)
    assert t.get(coords) == 7.25
    assert float(t.data.sum()) == 7.25


def test_row_major_index_mapping():
    t = TensorBuffer.zeros((2, 3))
    assert t.index_of((0, 0)) == 0
    assert t.index_of((1, 2)) == 5
    assert t.coords_of(4) == (1, 1)
    for i in range(t.size):
        assert t.index_of(t.coords_of(i)) == i


@pytest.mark.parametrize("coords", [(0,), (0, 0, 0), (2, 0), (0, 3), (-1, 0)])
def test_bad_coordinates_raise_index_error(coords):
    t = TensorBuffer.zeros((2, 3))
    with pytest.raises(IndexError):
        t.get(coords)
    with pytest.raises(TensorIndexError):
        t.set(coords, 1.0)
    assert float(t.data.sum()) == 0.0


@pytest.mark.parametrize("shape", [(), (0, 2), (2, -1), (2.5,)])
def test_invalid_shape_is_config_error(shape):
    with pytest.raises(ConfigError):
        TensorBuffer.zeros(shape)


def test_data_length_must_match_shape():
    with pytest.raises(ConfigError):
        TensorBuffer((2, 2), np.array([1.0, 2.0, 3.0]))


def test_transpose_twice_restores_2d():
    t = _grid(2, 3)
    tt = t.transpose()
    assert tt.shape == (3, 2)
    assert tt.get((2, 1)) == t.get((1, 2))
    back = tt.transpose()
    assert back.shape == t.shape
    assert back.same_as(t)


def test_transpose_reverses_all_axes():
    t = TensorBuffer.from_array(np.arange(24).reshape(2, 3, 4))
    tt = t.transpose()
    assert tt.shape == (4, 3, 2)
    for i in range(2):
        for j in range(3):
            for k in range(4):
                assert tt.get((k, j, i)) == t.get((i, j, k))


@pytest.mark.parametrize("shape", [(4,), (1, 3), (3, 1), (1, 1, 2)])
def test_transpose_of_degenerate_shapes_is_independent(shape):
    t = TensorBuffer.zeros(shape)
    tt = t.transpose()
    assert tt.shape == tuple(reversed(shape))
    tt.set((0,) * len(shape), 7.0)
    assert t.get((0,) * len(shape)) == 0.0


def test_constructor_copies_caller_array():
    arr = np.zeros(4)
    t = TensorBuffer((2, 2), arr)
    arr[0] = 9.0
    assert t.get((0, 0)) == 0.0
    t.set((1, 1), 3.0)
    assert arr[3] == 0.0


@pytest.mark.parametrize(
    "derive",
    [
        lambda t: t.copy(),
        lambda t: t.transpose(),
        lambda t: t.normalize(),
        lambda t: t.add(TensorBuffer.zeros(t.shape)),
        lambda t: t.multiply(TensorBuffer.from_array(np.ones(t.shape))),
        lambda t: t.apply(lambda v: v),
        lambda t: t.slice((0, 0), t.shape),
        lambda t: t.concatenate(TensorBuffer.zeros(t.shape), 0),
        lambda t: t.stack([]),
        lambda t: TensorBuffer.from_dict(t.to_dict()),
    ],
)
def test_derived_buffers_never_alias_their_source(derive):
    t = _grid(1, 3)
    derived = derive(t)
    assert not np.shares_memory(derived.data, t.data)
    derived.data[...] = -1.0
    assert t.data.tolist() == [0.0, 1.0, 2.0]


@pytest.mark.parametrize("shape", [(3,), (2, 2)])
def test_derived_buffers_of_frozen_source_are_writable(shape):
    frozen = TensorBuffer.zeros(shape).freeze()
    assert frozen.frozen
    assert not frozen.transpose().frozen
    assert not frozen.copy().frozen


def test_normalize_maps_range_to_unit_interval():
    t = TensorBuffer.from_array([[3.0, 1.0], [5.0, 9.0]])
    n = t.normalize()
    assert n.data.min() >= 0.0 and n.data.max() <= 1.0
    assert n.get((0, 1)) == 0.0
    assert n.get((1, 1)) == 1.0
    assert n.get((1, 0)) == pytest.approx(0.5)


def test_normalize_integer_buffer_becomes_float():
    n = TensorBuffer.from_array([0, 2, 4]).normalize()
    assert n.datatype == "float64"
    assert n.data.tolist() == [0.0, 0.5, 1.0]


def test_normalize_constant_tensor_raises():
    t = TensorBuffer((2, 2), np.full(4, 3.0))
    with pytest.raises(DegenerateRangeError):
        t.normalize()


@pytest.mark.parametrize(
    "values",
    [[0.0, float("nan"), 1.0], [0.0, float("inf")], [-float("inf"), 1.0], [-1e308, 1e308]],
)
def test_normalize_non_finite_range_raises(values):
    t = TensorBuffer.from_array(values)
    with pytest.raises(DegenerateRangeError):
        t.normalize()
    assert t.shape == (len(values),)


def test_add_and_multiply_elementwise():
    a = _grid(2, 2)
    b = TensorBuffer.from_array([[2.0, 2.0], [3.0, 3.0]])
    assert a.add(b).data.tolist() == [2.0, 3.0, 5.0, 6.0]
    assert a.multiply(b).data.tolist() == [0.0, 2.0, 6.0, 9.0]
    assert a.data.tolist() == [0.0, 1.0, 2.0, 3.0]


@pytest.mark.parametrize("op", ["add", "multiply", "equals"])
def test_binary_ops_require_same_shape(op):
    a = _grid(2, 3)
    b = _grid(3, 2)
    with pytest.raises(ShapeMismatch):
        getattr(a, op)(b)


def test_equals_mask():
    a = TensorBuffer.from_array([1.0, 2.0, 3.0])
    b = TensorBuffer.from_array([1.0, 0.0, 3.0])
    mask = a.equals(b)
    assert mask.datatype == "uint8"
    assert mask.data.tolist() == [1, 0, 1]


def test_apply_elementwise_function():
    t = TensorBuffer.from_array([-1.0, 0.5, 2.0])
    clipped = t.apply(lambda v: min(max(v, 0.0), 1.0))
    assert clipped.data.tolist() == [0.0, 0.5, 1.0]


def test_concatenate_along_each_axis():
    a = TensorBuffer.from_array([[1, 2], [3, 4]])
    b = TensorBuffer.from_array([[5, 6], [7, 8]])
    rows = a.concatenate(b, 0)
    cols = a.concatenate(b, 1)
    assert rows.shape == (4, 2)
    assert cols.shape == (2, 4)
    np.testing.assert_array_equal(rows.to_numpy(), [[1, 2], [3, 4], [5, 6], [7, 8]])
    np.testing.assert_array_equal(cols.to_numpy(), [[1, 2, 5, 6], [3, 4, 7, 8]])


def test_concatenate_mismatch_leaves_operands_untouched():
    a = _grid(2, 3)
    b = _grid(3, 2)
    before_a, before_b = a.data.copy(), b.data.copy()
    with pytest.raises(ShapeMismatch):
        a.concatenate(b, 0)
    np.testing.assert_array_equal(a.data, before_a)
    np.testing.assert_array_equal(b.data, before_b)
    assert a.shape == (2, 3) and b.shape == (3, 2)


def test_concatenate_rank_mismatch_and_bad_axis():
    a = _grid(2, 2)
    with pytest.raises(ShapeMismatch):
        a.concatenate(TensorBuffer.zeros((2,)), 0)
    with pytest.raises(ConfigError):
        a.concatenate(_grid(2, 2), 2)


def test_slice_and_stack():
    t = TensorBuffer.from_array(np.arange(12).reshape(3, 4))
    window = t.slice((1, 1), (3, 3))
    np.testing.assert_array_equal(window.to_numpy(), [[5, 6], [9, 10]])
    with pytest.raises(TensorIndexError):
        t.slice((0, 0), (4, 1))
    stacked = window.stack([window, window], axis=0)
    assert stacked.shape == (3, 2, 2)
    with pytest.raises(ShapeMismatch):
        window.stack([t])


def test_frozen_buffer_rejects_writes():
    t = TensorBuffer.zeros((2, 2))
    frozen = t.freeze()
    with pytest.raises(FrozenTensorError):
        frozen.set((0, 0), 1.0)
    t.set((0, 0), 1.0)
    assert frozen.get((0, 0)) == 0.0
    assert frozen.freeze() is frozen
    writable = frozen.copy()
    writable.set((1, 1), 2.0)
    assert writable.get((1, 1)) == 2.0


def test_dict_round_trip():
    t = TensorBuffer.from_array(np.arange(6, dtype=np.float32).reshape(2, 3))
    restored = TensorBuffer.from_dict(t.to_dict())
    assert restored.datatype == "float32"
    assert restored.same_as(t)
