"""Reference combination algorithms for sparse operands.

Every algorithm takes ``(a, b, op, flip)``. ``flip`` means the caller's
logical operand order was ``(b, a)``, so ``op`` is applied as
``op(b_value, a_value)``. The names describe which positions the result
covers: ``union`` and ``intersection`` of stored patterns, ``identity``
where the implicit zero leaves the other operand unchanged, ``pattern`` for
the sparse operand's own pattern, and ``full`` for every position.
"""

from __future__ import annotations

import jax.numpy as jnp

from .errors import DimensionError
from .values import DenseMatrix, SparseMatrix


def _apply(op, x, y, flip: bool):
    if flip:
        return op(y, x)
    return op(x, y)


def _require_same_shape(a, b) -> tuple[int, int]:
    if tuple(a.shape) != tuple(b.shape):
        raise DimensionError(tuple(a.shape), tuple(b.shape))
    return b.shape


def _dense_result(rows: list[list[object]], shape: tuple[int, int]) -> DenseMatrix:
    if not rows or not rows[0]:
        return DenseMatrix(jnp.zeros(shape))
    return DenseMatrix(jnp.asarray(rows).reshape(shape))


def _sparse_result(entries: dict[tuple[int, int], object], shape: tuple[int, int]) -> SparseMatrix:
    return SparseMatrix(shape, {pos: value for pos, value in entries.items() if value != 0})


def sparse_sparse_union(a: SparseMatrix, b: SparseMatrix, op, flip: bool) -> SparseMatrix:
    shape = _require_same_shape(a, b)
    entries: dict[tuple[int, int], object] = {}
    for pos in sorted(set(a.entries) | set(b.entries)):
        entries[pos] = _apply(op, a.get(*pos), b.get(*pos), flip)
    return _sparse_result(entries, shape)


def sparse_sparse_intersection(a: SparseMatrix, b: SparseMatrix, op, flip: bool) -> SparseMatrix:
    shape = _require_same_shape(a, b)
    entries: dict[tuple[int, int], object] = {}
    for pos, value in a.items():
        if b.has(*pos):
            entries[pos] = _apply(op, value, b.get(*pos), flip)
    return _sparse_result(entries, shape)


def sparse_sparse_full(a: SparseMatrix, b: SparseMatrix, op, flip: bool) -> DenseMatrix:
    shape = _require_same_shape(a, b)
    rows, cols = shape
    values = [[_apply(op, a.get(i, j), b.get(i, j), flip) for j in range(cols)] for i in range(rows)]
    return _dense_result(values, shape)


def dense_sparse_identity(d: DenseMatrix, s: SparseMatrix, op, flip: bool) -> DenseMatrix:
    """Dense result: ``op`` where ``s`` stores a value, ``d`` elsewhere.

    Only valid for operators where combining with zero is the identity on
    the dense side, e.g. addition.
    """
    shape = _require_same_shape(d, s)
    values = d.value_of()
    for (i, j), value in s.items():
        values[i][j] = _apply(op, values[i][j], value, flip)
    return _dense_result(values, shape)


def dense_sparse_intersection(d: DenseMatrix, s: SparseMatrix, op, flip: bool) -> SparseMatrix:
    shape = _require_same_shape(d, s)
    values = d.value_of()
    entries = {(i, j): _apply(op, values[i][j], value, flip) for (i, j), value in s.items()}
    return _sparse_result(entries, shape)


def dense_sparse_full(d: DenseMatrix, s: SparseMatrix, op, flip: bool) -> DenseMatrix:
    shape = _require_same_shape(d, s)
    rows, cols = shape
    values = d.value_of()
    out = [[_apply(op, values[i][j], s.get(i, j), flip) for j in range(cols)] for i in range(rows)]
    return _dense_result(out, shape)


def sparse_scalar_identity(s: SparseMatrix, b, op, flip: bool) -> DenseMatrix:
    """Dense result: ``op`` on stored values, ``b`` at implicit zeros."""
    rows, cols = s.shape
    out = [[_apply(op, s.get(i, j), b, flip) if s.has(i, j) else b for j in range(cols)] for i in range(rows)]
    return _dense_result(out, s.shape)


def sparse_scalar_pattern(s: SparseMatrix, b, op, flip: bool) -> SparseMatrix:
    entries = {pos: _apply(op, value, b, flip) for pos, value in s.items()}
    return _sparse_result(entries, s.shape)


def sparse_scalar_full(s: SparseMatrix, b, op, flip: bool) -> DenseMatrix:
    rows, cols = s.shape
    out = [[_apply(op, s.get(i, j), b, flip) for j in range(cols)] for i in range(rows)]
    return _dense_result(out, s.shape)
