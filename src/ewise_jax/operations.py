"""Built-in elementwise operators assembled from scalar rules and matrix suites."""

from __future__ import annotations

import math
from typing import Callable, Final

from jax import lax
import jax.numpy as jnp

from .sparse_algorithms import (
    dense_sparse_full,
    dense_sparse_identity,
    dense_sparse_intersection,
    sparse_scalar_full,
    sparse_scalar_identity,
    sparse_scalar_pattern,
    sparse_sparse_full,
    sparse_sparse_intersection,
    sparse_sparse_union,
)
from .suite import matrix_algorithm_suite
from .typed import TypedFunction, signature_key, typed

_SCALAR: Final[str] = "number | boolean"
_SCALAR_PAIR: Final[str] = signature_key(_SCALAR, _SCALAR)


def _promote_binary_pair(w: jnp.ndarray, x: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    if w.dtype == x.dtype:
        return w, x
    dtype = jnp.result_type(w, x)
    if w.dtype == dtype:
        return w, lax.convert_element_type(x, dtype)
    if x.dtype == dtype:
        return lax.convert_element_type(w, dtype), x
    return lax.convert_element_type(w, dtype), lax.convert_element_type(x, dtype)


def _lax_add_promoted(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    if w.dtype == x.dtype and jnp.issubdtype(w.dtype, jnp.floating):
        return w + x
    ww, xx = _promote_binary_pair(w, x)
    return lax.add(ww, xx)


def _lax_sub_promoted(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    ww, xx = _promote_binary_pair(w, x)
    return lax.sub(ww, xx)


def _lax_mul_promoted(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    ww, xx = _promote_binary_pair(w, x)
    return lax.mul(ww, xx)


def _true_divide(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    return jnp.true_divide(w, x)


def _lax_eq_promoted(w: jnp.ndarray, x: jnp.ndarray) -> jnp.ndarray:
    if w.dtype == x.dtype:
        return lax.eq(w, x)
    ww, xx = _promote_binary_pair(w, x)
    return lax.eq(ww, xx)


def _divide_numbers(x, y):
    try:
        return x / y
    except ZeroDivisionError:
        # Match IEEE semantics of the array kernel.
        if x == 0 or (isinstance(x, float) and math.isnan(x)):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1.0, y)


def _scalar_operator(name: str, rule: Callable, kernel: Callable) -> TypedFunction:
    return typed(name, {_SCALAR_PAIR: rule}, kernel=kernel)


add_scalar = _scalar_operator("add_scalar", lambda x, y: x + y, _lax_add_promoted)
subtract_scalar = _scalar_operator("subtract_scalar", lambda x, y: x - y, _lax_sub_promoted)
multiply_scalar = _scalar_operator("multiply_scalar", lambda x, y: x * y, _lax_mul_promoted)
divide_scalar = _scalar_operator("divide_scalar", _divide_numbers, _true_divide)
equal_scalar = _scalar_operator("equal_scalar", lambda x, y: x == y, _lax_eq_promoted)

add = typed(
    "add",
    matrix_algorithm_suite(
        elop=add_scalar,
        SS=sparse_sparse_union,
        DS=dense_sparse_identity,
        Ss=sparse_scalar_identity,
    ),
    kernel=add_scalar.kernel,
)

subtract = typed(
    "subtract",
    matrix_algorithm_suite(
        elop=subtract_scalar,
        SS=sparse_sparse_union,
        DS=dense_sparse_identity,
        SD=dense_sparse_full,
        Ss=sparse_scalar_full,
        sS=sparse_scalar_full,
    ),
    kernel=subtract_scalar.kernel,
)

dot_multiply = typed(
    "dot_multiply",
    matrix_algorithm_suite(
        elop=multiply_scalar,
        SS=sparse_sparse_intersection,
        DS=dense_sparse_intersection,
        Ss=sparse_scalar_pattern,
    ),
    kernel=multiply_scalar.kernel,
)

dot_divide = typed(
    "dot_divide",
    matrix_algorithm_suite(
        elop=divide_scalar,
        SS=sparse_sparse_full,
        DS=dense_sparse_full,
        SD=dense_sparse_intersection,
        Ss=sparse_scalar_pattern,
        sS=sparse_scalar_full,
    ),
    kernel=divide_scalar.kernel,
)

# No elop: matrix handlers compare element pairs through `equal` itself.
equal = typed(
    "equal",
    equal_scalar.signatures,
    matrix_algorithm_suite(
        SS=sparse_sparse_full,
        DS=dense_sparse_full,
        Ss=sparse_scalar_full,
    ),
    kernel=equal_scalar.kernel,
)
