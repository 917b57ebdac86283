"""Shared benchmark runtime helpers."""

from __future__ import annotations

import math
import os
import platform
import time
from typing import Any, Callable

import jax

THREAD_ENV_VARS = (
    "OMP_NUM_THREADS",
    "XLA_FLAGS",
    "JAX_NUM_THREADS",
    "EWISE_JAX_DISABLE_VECTORIZED_KERNELS",
    "EWISE_JAX_DISPATCH_CACHE_MAX",
)


def thread_env_snapshot() -> dict[str, str]:
    return {name: os.environ[name] for name in THREAD_ENV_VARS if name in os.environ}


def host_metadata() -> dict[str, Any]:
    return {
        "platform": platform.platform(),
        "python": platform.python_version(),
        "jax": getattr(jax, "__version__", "unknown"),
        "backend": jax.default_backend(),
        "cpu_count": os.cpu_count(),
        "env": thread_env_snapshot(),
    }


def block_until_ready(value: object) -> None:
    data = getattr(value, "data", None)
    if hasattr(data, "block_until_ready"):
        data.block_until_ready()
        return
    if hasattr(value, "block_until_ready"):
        value.block_until_ready()


def percentile(values: list[float], q: float) -> float:
    ordered = sorted(values)
    if len(ordered) == 1:
        return ordered[0]
    pos = (len(ordered) - 1) * q
    lo = int(math.floor(pos))
    hi = int(math.ceil(pos))
    if lo == hi:
        return ordered[lo]
    alpha = pos - lo
    return ordered[lo] * (1.0 - alpha) + ordered[hi] * alpha


def mean(values: list[float]) -> float:
    return sum(values) / len(values)


def sample_ms(fn: Callable, args: tuple[object, ...], *, repeats: int, warmup: int, samples: int) -> list[float]:
    for _ in range(max(0, warmup)):
        block_until_ready(fn(*args))

    rows: list[float] = []
    for _ in range(samples):
        start_ns = time.perf_counter_ns()
        for _ in range(repeats):
            block_until_ready(fn(*args))
        elapsed_ns = time.perf_counter_ns() - start_ns
        rows.append((elapsed_ns / repeats) / 1e6)
    return rows
