"""ewise-jax public API."""

from .errors import (
    DimensionError,
    DispatchError,
    EwiseError,
    OperatorBindingError,
    OperatorRebindError,
    SignatureConflictError,
    SignatureError,
    UnboundOperatorError,
)

_JAX_API = (
    "DenseMatrix",
    "SparseMatrix",
    "matrix",
    "sparse",
    "TypedFunction",
    "typed",
    "signature_key",
    "dispatch_cache_stats",
    "dense_pair",
    "mixed_scalar",
    "kernel_cache_stats",
    "MISSING",
    "OperationOptions",
    "OperatorHandle",
    "matrix_algorithm_suite",
    "add",
    "subtract",
    "dot_multiply",
    "dot_divide",
    "equal",
)

try:
    from .values import DenseMatrix, SparseMatrix, matrix, sparse
    from .typed import TypedFunction, dispatch_cache_stats, signature_key, typed
    from .engines import dense_pair, kernel_cache_stats, mixed_scalar
    from .suite import MISSING, OperationOptions, OperatorHandle, matrix_algorithm_suite
    from .operations import add, dot_divide, dot_multiply, equal, subtract
except ModuleNotFoundError as exc:
    if exc.name and exc.name.startswith("jax"):
        _jax_import_error = exc

        def __getattr__(name: str):
            if name in _JAX_API:
                raise ModuleNotFoundError(
                    f"jax is required for {name}. Install runtime deps first."
                ) from _jax_import_error
            raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    else:
        raise

__all__ = [
    *_JAX_API,
    "EwiseError",
    "DimensionError",
    "DispatchError",
    "SignatureError",
    "SignatureConflictError",
    "OperatorBindingError",
    "OperatorRebindError",
    "UnboundOperatorError",
]
