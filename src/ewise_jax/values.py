"""Matrix value model and the matrix construction service."""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Iterator

import jax.numpy as jnp

from .errors import DimensionError


def is_scalar(value: object) -> bool:
    if isinstance(value, numbers.Number):
        return True
    if isinstance(value, jnp.ndarray):
        return value.ndim == 0
    return False


def is_array(value: object) -> bool:
    return isinstance(value, list)


@dataclass(frozen=True, eq=False)
class DenseMatrix:
    """Dense storage: every element is held in one jax array."""

    data: jnp.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", jnp.asarray(self.data))

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(int(d) for d in self.data.shape)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    def value_of(self) -> list:
        return self.data.tolist()

    def to_dense(self) -> "DenseMatrix":
        return self

    def __repr__(self) -> str:
        return f"DenseMatrix({self.value_of()!r})"


@dataclass(frozen=True, eq=False)
class SparseMatrix:
    """Two-dimensional dictionary-of-keys storage.

    Positions without an entry are implicit zeros. Entries are kept in
    row-major order so iteration is deterministic.
    """

    shape: tuple[int, int]
    entries: dict[tuple[int, int], object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        shape = tuple(int(d) for d in self.shape)
        if len(shape) != 2:
            raise DimensionError(len(shape), 2)
        rows, cols = shape
        cleaned: dict[tuple[int, int], object] = {}
        for (row, col), value in sorted(self.entries.items()):
            if not (0 <= row < rows and 0 <= col < cols):
                raise IndexError(f"Index ({row}, {col}) out of range for sparse matrix of shape {shape}")
            cleaned[(int(row), int(col))] = value
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "entries", cleaned)

    @classmethod
    def from_dense(cls, value) -> "SparseMatrix":
        if isinstance(value, DenseMatrix):
            arr = value.data
        else:
            arr = jnp.asarray(value)
        if arr.ndim != 2:
            raise DimensionError(arr.ndim, 2)
        rows, cols = (int(d) for d in arr.shape)
        flat = arr.tolist()
        entries = {
            (row, col): flat[row][col]
            for row in range(rows)
            for col in range(cols)
            if flat[row][col] != 0
        }
        return cls((rows, cols), entries)

    @property
    def ndim(self) -> int:
        return 2

    @property
    def nnz(self) -> int:
        return len(self.entries)

    def get(self, row: int, col: int, default=0):
        return self.entries.get((row, col), default)

    def has(self, row: int, col: int) -> bool:
        return (row, col) in self.entries

    def items(self) -> Iterator[tuple[tuple[int, int], object]]:
        return iter(self.entries.items())

    def positions(self) -> Iterator[tuple[int, int]]:
        rows, cols = self.shape
        for row in range(rows):
            for col in range(cols):
                yield row, col

    def value_of(self) -> list:
        rows, cols = self.shape
        return [[self.get(row, col) for col in range(cols)] for row in range(rows)]

    def to_dense(self) -> DenseMatrix:
        return DenseMatrix(jnp.asarray(self.value_of()).reshape(self.shape))

    def __repr__(self) -> str:
        return f"SparseMatrix(shape={self.shape}, entries={self.entries!r})"


def matrix(value) -> DenseMatrix | SparseMatrix:
    """Wrap a nested list or array into a matrix value.

    Matrix values pass through unchanged so callers can normalise mixed
    inputs without checking first.
    """
    if isinstance(value, (DenseMatrix, SparseMatrix)):
        return value
    if is_array(value):
        return DenseMatrix(jnp.asarray(value))
    if isinstance(value, jnp.ndarray) and value.ndim > 0:
        return DenseMatrix(value)
    raise TypeError(f"Cannot construct a matrix from {type(value).__name__}")


def sparse(value) -> SparseMatrix:
    if isinstance(value, SparseMatrix):
        return value
    if isinstance(value, (DenseMatrix, list)) or (isinstance(value, jnp.ndarray) and value.ndim > 0):
        return SparseMatrix.from_dense(value)
    raise TypeError(f"Cannot construct a sparse matrix from {type(value).__name__}")

