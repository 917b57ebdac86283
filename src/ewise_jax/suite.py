"""Signature-suite builder for binary elementwise matrix operators.

``matrix_algorithm_suite`` turns a description of the available combination
algorithms into the full table of type-pair handlers a typed function needs,
so that ``add(A, B)`` reaches the right algorithm whatever storage ``A`` and
``B`` use.

Algorithms are described by the shapes they combine:

    SS  sparse with sparse
    DS  dense with sparse
    SD  sparse with dense; defaults to DS applied with ``flip``
    Ss  sparse with scalar
    sS  scalar with sparse; defaults to Ss applied with ``flip``
    Ds  gate for the dense/scalar signatures; defaults to Ss

Every algorithm is called as ``algo(x, y, op, flip)``. For the swapped
defaults the dense (or matrix) operand is always passed first and ``flip``
records that the caller's logical order was the reverse.

Without ``elop`` the handlers are context-bound: each ``typed()`` call that
receives them rebuilds them over a handle bound to the function it returns,
so element pairs are combined by the very operator being assembled. One map
can feed any number of operators.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Callable, Final

from .engines import dense_pair, mixed_scalar
from .typed import ANY, OperatorHandle, canonical_key, context_handler, signature_key
from .values import matrix


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

Handler = Callable[[object, object], object]


@dataclass(frozen=True)
class OperationOptions:
    """Which combination algorithms an operator provides.

    Every field is optional. ``MISSING`` marks a field that was not given,
    which is distinct from an explicit ``None``.
    """

    elop: object = MISSING
    SS: object = MISSING
    DS: object = MISSING
    SD: object = MISSING
    Ss: object = MISSING
    sS: object = MISSING
    Ds: object = MISSING
    scalar: object = MISSING

    @classmethod
    def from_mapping(cls, options: Mapping[str, object]) -> "OperationOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise TypeError(f"Unknown operation options: {', '.join(unknown)}")
        return cls(**dict(options))


@dataclass(frozen=True)
class ResolvedOptions:
    elop: Callable | None
    SS: Callable | None
    DS: Callable | None
    SD: Callable | None
    Ss: Callable | None
    sS: Callable | None
    dense_scalar: bool
    scalar: str


def _truthy_or_none(value: object) -> Callable | None:
    return value if value else None


def _scalar_tag(value: object) -> str:
    if not value:
        return ANY
    return " | ".join(part.strip() for part in str(value).split("|"))


def resolve_options(options: OperationOptions) -> ResolvedOptions:
    # sS falls back to Ss only when it was never given; an explicit falsy
    # value switches the (scalar, sparse) signature off.
    sS = options.Ss if options.sS is MISSING else options.sS
    return ResolvedOptions(
        elop=_truthy_or_none(options.elop),
        SS=_truthy_or_none(options.SS),
        DS=_truthy_or_none(options.DS),
        SD=_truthy_or_none(options.SD) or _truthy_or_none(options.DS),
        Ss=_truthy_or_none(options.Ss),
        sS=_truthy_or_none(sS),
        dense_scalar=bool(options.Ds or options.Ss),
        scalar=_scalar_tag(options.scalar),
    )


def _closed_binder(elop: Callable) -> Callable[[Callable], Handler]:
    def bind(body: Callable) -> Handler:
        def handler(x, y):
            return body(x, y, elop)

        return handler

    return bind


def _context_binder(handle: OperatorHandle) -> Callable[[Callable], Handler]:
    def bind(body: Callable) -> Handler:
        return context_handler(body, handle)

    return bind


def _coerce_options(options: OperationOptions | Mapping[str, object] | None, overrides: dict[str, object]) -> OperationOptions:
    if options is None:
        return OperationOptions.from_mapping(overrides)
    if isinstance(options, Mapping):
        return OperationOptions.from_mapping({**options, **overrides})
    if overrides:
        return OperationOptions.from_mapping({**{f.name: getattr(options, f.name) for f in fields(options)}, **overrides})
    return options


def matrix_algorithm_suite(options: OperationOptions | Mapping[str, object] | None = None, /, **overrides) -> dict[str, Handler]:
    """Return the matrix signatures for an elementwise operator.

    ``options`` may be an ``OperationOptions``, a plain mapping, or given as
    keyword arguments. Dense signatures are always produced; each sparse or
    scalar family appears only when its algorithm (or its default source)
    is present. If ``elop`` carries its own ``signatures``, those are merged
    in last and win on collisions.
    """
    opts = resolve_options(_coerce_options(options, overrides))
    elop = opts.elop
    bind = _closed_binder(elop) if elop is not None else _context_binder(OperatorHandle())
    scalar = opts.scalar

    signatures: dict[str, Handler] = {
        signature_key("DenseMatrix", "DenseMatrix"): bind(lambda x, y, op: dense_pair(x, y, op)),
        signature_key("Array", "Array"): bind(lambda x, y, op: dense_pair(matrix(x), matrix(y), op).value_of()),
        signature_key("Array", "DenseMatrix"): bind(lambda x, y, op: dense_pair(matrix(x), y, op)),
        signature_key("DenseMatrix", "Array"): bind(lambda x, y, op: dense_pair(x, matrix(y), op)),
    }

    SS, DS, SD = opts.SS, opts.DS, opts.SD
    if SS:
        signatures[signature_key("SparseMatrix", "SparseMatrix")] = bind(lambda x, y, op: SS(x, y, op, False))
    if DS:
        signatures[signature_key("DenseMatrix", "SparseMatrix")] = bind(lambda x, y, op: DS(x, y, op, False))
        signatures[signature_key("Array", "SparseMatrix")] = bind(lambda x, y, op: DS(matrix(x), y, op, False))
    if SD:
        signatures[signature_key("SparseMatrix", "DenseMatrix")] = bind(lambda x, y, op: SD(y, x, op, True))
        signatures[signature_key("SparseMatrix", "Array")] = bind(lambda x, y, op: SD(matrix(y), x, op, True))

    # Dense/scalar pairs always use the generic mixed engine; Ds only gates them.
    if opts.dense_scalar:
        signatures[signature_key("DenseMatrix", scalar)] = bind(lambda x, y, op: mixed_scalar(x, y, op, False))
        signatures[signature_key(scalar, "DenseMatrix")] = bind(lambda x, y, op: mixed_scalar(y, x, op, True))
        signatures[signature_key("Array", scalar)] = bind(lambda x, y, op: mixed_scalar(matrix(x), y, op, False).value_of())
        signatures[signature_key(scalar, "Array")] = bind(lambda x, y, op: mixed_scalar(matrix(y), x, op, True).value_of())

    Ss, sS = opts.Ss, opts.sS
    if Ss:
        signatures[signature_key("SparseMatrix", scalar)] = bind(lambda x, y, op: Ss(x, y, op, False))
    if sS:
        signatures[signature_key(scalar, "SparseMatrix")] = bind(lambda x, y, op: sS(y, x, op, True))

    own = getattr(elop, "signatures", None) if elop is not None else None
    if isinstance(own, Mapping):
        for key, handler in own.items():
            signatures[canonical_key(key)] = handler
    return signatures


def operator_handle(signatures: Mapping[str, Callable]) -> OperatorHandle | None:
    """Return the handle shared by the context-bound handlers of a map, if any.

    For a raw builder map the handle is never bound; for the signatures of a
    ``TypedFunction`` it is bound to that function.
    """
    for handler in signatures.values():
        handle = getattr(handler, "operator_handle", None)
        if handle is not None:
            return handle
    return None
