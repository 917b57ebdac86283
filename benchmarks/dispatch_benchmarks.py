"""Per-call cost of dispatching elementwise operators across storage pairs."""

from __future__ import annotations

import argparse
import json
from dataclasses import asdict, dataclass

import jax.numpy as jnp

from ewise_jax import DenseMatrix, add, dispatch_cache_stats, equal, kernel_cache_stats, sparse, subtract
from _bench_utils import host_metadata, mean as _mean, percentile as _percentile, sample_ms


@dataclass(frozen=True)
class DispatchCase:
    name: str
    fn: object
    args: tuple[object, ...]
    note: str


@dataclass(frozen=True)
class DispatchResult:
    name: str
    mean_ms: float
    p50_ms: float
    p90_ms: float
    note: str


def _cases(size: int) -> list[DispatchCase]:
    dense = DenseMatrix(jnp.arange(size * size, dtype=jnp.float32).reshape(size, size))
    diagonal = sparse(jnp.eye(size, dtype=jnp.float32))
    return [
        DispatchCase("add_dense_dense", add, (dense, dense), "vectorized dense pair"),
        DispatchCase("add_dense_scalar", add, (dense, 1.0), "vectorized mixed engine"),
        DispatchCase("subtract_scalar_dense", subtract, (1.0, dense), "flipped mixed engine"),
        DispatchCase("subtract_sparse_dense", subtract, (diagonal, dense), "flipped sparse/dense algorithm"),
        DispatchCase("equal_dense_dense", equal, (dense, dense), "context-bound handler"),
        DispatchCase("add_scalar_scalar", add, (1.0, 2.0), "scalar rule only"),
    ]


def run(size: int, *, repeats: int, warmup: int, samples: int) -> list[DispatchResult]:
    results: list[DispatchResult] = []
    for case in _cases(size):
        rows = sample_ms(case.fn, case.args, repeats=repeats, warmup=warmup, samples=samples)
        results.append(
            DispatchResult(
                name=case.name,
                mean_ms=_mean(rows),
                p50_ms=_percentile(rows, 0.5),
                p90_ms=_percentile(rows, 0.9),
                note=case.note,
            )
        )
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--size", type=int, default=32)
    parser.add_argument("--repeats", type=int, default=20)
    parser.add_argument("--warmup", type=int, default=2)
    parser.add_argument("--samples", type=int, default=5)
    args = parser.parse_args()

    results = run(args.size, repeats=args.repeats, warmup=args.warmup, samples=args.samples)
    payload = {
        "host": host_metadata(),
        "size": args.size,
        "results": [asdict(result) for result in results],
        "dispatch_cache": dispatch_cache_stats(),
        "kernel_cache": kernel_cache_stats(),
    }
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
