"""Typed multiple-dispatch runtime keyed by type-tag signatures."""

from __future__ import annotations

import numbers
import os
import weakref
from collections.abc import Mapping
from types import MappingProxyType
from typing import Callable, Final

from .errors import DispatchError, OperatorRebindError, SignatureConflictError, SignatureError, UnboundOperatorError
from .values import DenseMatrix, SparseMatrix

ANY: Final[str] = "any"
_DISPATCH_CACHE_MAX: Final[int] = max(1, int(os.environ.get("EWISE_JAX_DISPATCH_CACHE_MAX", "1024")))


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


# Declaration order is resolution priority: earlier tags are more specific.
_TYPE_TESTS: Final[dict[str, Callable[[object], bool]]] = {
    "number": _is_number,
    "boolean": lambda value: isinstance(value, bool),
    "DenseMatrix": lambda value: isinstance(value, DenseMatrix),
    "SparseMatrix": lambda value: isinstance(value, SparseMatrix),
    "Matrix": lambda value: isinstance(value, (DenseMatrix, SparseMatrix)),
    "Array": lambda value: isinstance(value, list),
}
_TAG_RANK: Final[dict[str, int]] = {tag: rank for rank, tag in enumerate(_TYPE_TESTS)}
_ANY_RANK: Final[int] = len(_TYPE_TESTS)

_DISPATCH_CACHE_STATS: dict[str, int] = {"hits": 0, "misses": 0, "evictions": 0}
_LIVE_FUNCTIONS: "weakref.WeakSet[TypedFunction]" = weakref.WeakSet()

Params = tuple[tuple[str, ...], ...]


def type_tag(value: object) -> str:
    for tag, test in _TYPE_TESTS.items():
        if test(value):
            return tag
    return type(value).__name__


def signature_key(*tags: str) -> str:
    return ", ".join(tags)


def parse_signature(key: str) -> Params:
    params: list[tuple[str, ...]] = []
    for raw in key.split(","):
        alternatives = tuple(tag.strip() for tag in raw.split("|"))
        for tag in alternatives:
            if not tag:
                raise SignatureError(f"Empty parameter in signature {key!r}")
            if tag != ANY and tag not in _TYPE_TESTS:
                raise SignatureError(f"Unknown type {tag!r} in signature {key!r}")
        params.append(alternatives)
    return tuple(params)


def canonical_key(key: str) -> str:
    return signature_key(*(" | ".join(param) for param in parse_signature(key)))


def _param_rank(alternatives: tuple[str, ...], value: object) -> int | None:
    best: int | None = None
    for tag in alternatives:
        if tag == ANY:
            rank = _ANY_RANK
        elif _TYPE_TESTS[tag](value):
            rank = _TAG_RANK[tag]
        else:
            continue
        if best is None or rank < best:
            best = rank
    return best


def _signature_rank(params: Params, args: tuple[object, ...]) -> tuple[int, ...] | None:
    if len(params) != len(args):
        return None
    ranks: list[int] = []
    for alternatives, value in zip(params, args):
        rank = _param_rank(alternatives, value)
        if rank is None:
            return None
        ranks.append(rank)
    return tuple(ranks)


class OperatorHandle:
    """Reference cell for an operator that is still being assembled.

    A handle is bound exactly once, by ``typed()``, to the function whose
    handlers close over it.
    """

    __slots__ = ("_target",)

    def __init__(self) -> None:
        self._target: Callable | None = None

    @property
    def bound(self) -> bool:
        return self._target is not None

    @property
    def target(self) -> Callable:
        target = self._target
        if target is None:
            raise UnboundOperatorError("Operator is still being assembled; it has no dispatch surface yet")
        return target

    def bind(self, target: Callable) -> None:
        if self._target is not None:
            raise OperatorRebindError(f"Operator handle is already bound to {self._target!r}")
        self._target = target

    def __call__(self, *args):
        return self.target(*args)


def context_handler(body: Callable, handle: OperatorHandle) -> Callable:
    """Wrap ``body(x, y, op)`` so ``op`` is read from ``handle`` at call time.

    The unbound ``body`` stays on the handler as ``bind_body`` so that every
    ``typed()`` call can rebuild the handler over its own handle.
    """

    def handler(x, y):
        return body(x, y, handle.target)

    handler.bind_body = body
    handler.operator_handle = handle
    return handler


class TypedFunction:
    """Immutable dispatch surface over a table of signature handlers.

    ``kernel`` optionally carries an array-level implementation of the
    scalar rule; engines use it to vectorize whole-matrix evaluation of
    numeric operands without going through dispatch. It must therefore agree
    with every numeric scalar rule, including rules added later through
    ``extend()``, which keeps the kernel.
    """

    def __init__(self, name: str, signatures: Mapping[str, Callable], *, kernel: Callable | None = None) -> None:
        table: dict[str, tuple[Params, Callable]] = {}
        for key, handler in signatures.items():
            params = parse_signature(key)
            canonical = signature_key(*(" | ".join(param) for param in params))
            existing = table.get(canonical)
            if existing is not None and existing[1] is not handler:
                raise SignatureConflictError(f"Conflicting signatures for {name!r}: {canonical!r}")
            table[canonical] = (params, handler)
        self.name = name
        self.kernel = kernel
        self._table = table
        self._signatures = MappingProxyType({key: handler for key, (_, handler) in table.items()})
        self._cache: dict[tuple[type, ...], tuple[str, Callable]] = {}
        _LIVE_FUNCTIONS.add(self)

    @property
    def signatures(self) -> Mapping[str, Callable]:
        return self._signatures

    def resolve(self, *args) -> tuple[str, Callable]:
        cache_key = tuple(type(arg) for arg in args)
        hit = self._cache.get(cache_key)
        if hit is not None:
            _DISPATCH_CACHE_STATS["hits"] += 1
            return hit
        _DISPATCH_CACHE_STATS["misses"] += 1

        best: tuple[tuple[int, ...], str, Callable] | None = None
        for key, (params, handler) in self._table.items():
            rank = _signature_rank(params, args)
            if rank is None:
                continue
            if best is None or rank < best[0]:
                best = (rank, key, handler)
        if best is None:
            got = ", ".join(type_tag(arg) for arg in args)
            raise DispatchError(f"Unexpected argument types for {self.name}: ({got})")

        if len(self._cache) >= _DISPATCH_CACHE_MAX:
            self._cache.pop(next(iter(self._cache)))
            _DISPATCH_CACHE_STATS["evictions"] += 1
        resolved = (best[1], best[2])
        self._cache[cache_key] = resolved
        return resolved

    def __call__(self, *args):
        _, handler = self.resolve(*args)
        return handler(*args)

    def extend(self, *signature_maps: Mapping[str, Callable]) -> "TypedFunction":
        """Build a new function from these signatures plus ``signature_maps``."""
        return typed(self.name, self.signatures, *signature_maps, kernel=self.kernel)

    def __repr__(self) -> str:
        return f"TypedFunction({self.name!r}, signatures={list(self._signatures)!r})"


def _same_handler(left: Callable, right: Callable) -> bool:
    if left is right:
        return True
    body = getattr(left, "bind_body", None)
    return body is not None and body is getattr(right, "bind_body", None)


def typed(name: str, *signature_maps: Mapping[str, Callable], kernel: Callable | None = None) -> TypedFunction:
    """Assemble a dispatch surface from one or more signature maps.

    Context-bound handlers found in the maps are rebuilt over a handle owned
    by the new function and bound to it before it is handed out. No caller
    can observe the function half-assembled, and the maps (or functions)
    the handlers came from are left untouched.
    """
    merged: dict[str, Callable] = {}
    for signatures in signature_maps:
        for key, handler in signatures.items():
            canonical = canonical_key(key)
            existing = merged.get(canonical)
            if existing is not None and not _same_handler(existing, handler):
                raise SignatureConflictError(f"Conflicting signatures for {name!r}: {canonical!r}")
            merged[canonical] = handler

    handle = OperatorHandle()
    for key, handler in merged.items():
        body = getattr(handler, "bind_body", None)
        if body is not None:
            merged[key] = context_handler(body, handle)
    fn = TypedFunction(name, merged, kernel=kernel)
    handle.bind(fn)
    return fn


def dispatch_cache_stats(*, reset: bool = False) -> dict[str, float | int]:
    hits = _DISPATCH_CACHE_STATS["hits"]
    misses = _DISPATCH_CACHE_STATS["misses"]
    total = hits + misses
    stats: dict[str, float | int] = {
        "hits": hits,
        "misses": misses,
        "evictions": _DISPATCH_CACHE_STATS["evictions"],
        "size": sum(len(fn._cache) for fn in list(_LIVE_FUNCTIONS)),
        "max_per_function": _DISPATCH_CACHE_MAX,
        "hit_rate": float(hits / total) if total else 0.0,
    }
    if reset:
        for fn in list(_LIVE_FUNCTIONS):
            fn._cache.clear()
        _DISPATCH_CACHE_STATS["hits"] = 0
        _DISPATCH_CACHE_STATS["misses"] = 0
        _DISPATCH_CACHE_STATS["evictions"] = 0
    return stats
