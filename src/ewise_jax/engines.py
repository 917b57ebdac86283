"""Dense-pair and mixed/scalar elementwise engines on top of JAX."""

from __future__ import annotations

import os
from typing import Callable, Final

import jax
import jax.numpy as jnp

from .errors import DimensionError
from .values import DenseMatrix, SparseMatrix, is_scalar

_USE_VECTORIZED_KERNELS: Final[bool] = os.environ.get("EWISE_JAX_DISABLE_VECTORIZED_KERNELS", "0") != "1"
_JITTED_KERNELS: dict[Callable, Callable] = {}
_KERNEL_CACHE_STATS: dict[str, int] = {"hits": 0, "misses": 0, "vectorized_calls": 0, "elementwise_calls": 0}


def _jitted_kernel(op) -> Callable | None:
    if not _USE_VECTORIZED_KERNELS:
        return None
    kernel = getattr(op, "kernel", None)
    if kernel is None:
        return None
    fn = _JITTED_KERNELS.get(kernel)
    if fn is None:
        _KERNEL_CACHE_STATS["misses"] += 1
        fn = jax.jit(kernel)
        _JITTED_KERNELS[kernel] = fn
    else:
        _KERNEL_CACHE_STATS["hits"] += 1
    return fn


def _is_numeric_array(arr: jnp.ndarray) -> bool:
    return bool(jnp.issubdtype(arr.dtype, jnp.number))


def _broadcast_shape(left: tuple[int, ...], right: tuple[int, ...]) -> tuple[int, ...]:
    try:
        return tuple(int(d) for d in jnp.broadcast_shapes(left, right))
    except ValueError as exc:
        raise DimensionError(left, right) from exc


def _pack_results(values: list[object], shape: tuple[int, ...]) -> jnp.ndarray:
    if not values:
        return jnp.zeros(shape)
    if all(isinstance(value, (DenseMatrix, SparseMatrix)) for value in values):
        # Matrix-valued elements stack along new trailing axes.
        stacked = jnp.stack([value.to_dense().data for value in values])
        return stacked.reshape(shape + stacked.shape[1:])
    return jnp.asarray(values).reshape(shape)


def dense_pair(a: DenseMatrix, b: DenseMatrix, op) -> DenseMatrix:
    """Combine two dense matrices element by element.

    Shapes broadcast NumPy-style; ``op`` always receives ``(a_ij, b_ij)`` in
    the caller's order.
    """
    shape = _broadcast_shape(a.shape, b.shape)
    left = jnp.broadcast_to(a.data, shape)
    right = jnp.broadcast_to(b.data, shape)

    kernel = _jitted_kernel(op)
    if kernel is not None and _is_numeric_array(left) and _is_numeric_array(right):
        _KERNEL_CACHE_STATS["vectorized_calls"] += 1
        return DenseMatrix(kernel(left, right))

    _KERNEL_CACHE_STATS["elementwise_calls"] += 1
    values = [op(x, y) for x, y in zip(jnp.ravel(left).tolist(), jnp.ravel(right).tolist())]
    return DenseMatrix(_pack_results(values, shape))


def mixed_scalar(a: DenseMatrix, b, op, flip: bool) -> DenseMatrix:
    """Combine every element of ``a`` with the single operand ``b``.

    With ``flip`` the operator is applied as ``op(b, a_ij)``: the logical
    operand order is reversed while the positional order stays ``(a, b)``.
    """
    kernel = _jitted_kernel(op)
    if kernel is not None and is_scalar(b) and _is_numeric_array(a.data):
        _KERNEL_CACHE_STATS["vectorized_calls"] += 1
        scalar = jnp.broadcast_to(jnp.asarray(b), a.shape)
        if flip:
            return DenseMatrix(kernel(scalar, a.data))
        return DenseMatrix(kernel(a.data, scalar))

    _KERNEL_CACHE_STATS["elementwise_calls"] += 1
    elements = jnp.ravel(a.data).tolist()
    if flip:
        values = [op(b, x) for x in elements]
    else:
        values = [op(x, b) for x in elements]
    return DenseMatrix(_pack_results(values, a.shape))


def kernel_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    hits = _KERNEL_CACHE_STATS["hits"]
    misses = _KERNEL_CACHE_STATS["misses"]
    total = hits + misses
    stats: dict[str, float | int] = {
        "hits": hits,
        "misses": misses,
        "size": len(_JITTED_KERNELS),
        "vectorized_enabled": _USE_VECTORIZED_KERNELS,
        "vectorized_calls": _KERNEL_CACHE_STATS["vectorized_calls"],
        "elementwise_calls": _KERNEL_CACHE_STATS["elementwise_calls"],
        "hit_rate": float(hits / total) if total else 0.0,
    }
    if reset:
        _JITTED_KERNELS.clear()
        for key in _KERNEL_CACHE_STATS:
            _KERNEL_CACHE_STATS[key] = 0
    return stats
