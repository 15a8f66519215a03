"""
Operator expression trees.

Models describe operators symbolically, e.g. ``g * (local(0, "x") @ local(1, "jx"))``;
the tree only becomes a matrix in core.ir.materialize, once the mode
dimensions are known.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class SymbolOp:
    """Named operator on the whole Hilbert space, resolved by the materializer."""

    symbol: str


@dataclass(frozen=True)
class LocalSymbolOp:
    symbol: str


@dataclass(frozen=True)
class EmbeddedKron:
    """Local operators on the listed mode indices, identity on all others."""

    indices: Tuple[int, ...]
    locals: Tuple[LocalSymbolOp, ...]

    def __post_init__(self) -> None:
        if len(self.indices) != len(self.locals):
            raise ValueError("EmbeddedKron indices and locals must have same length")


class OpExprKind(str, Enum):
    ATOM = "ATOM"
    SCALE = "SCALE"
    SUM = "SUM"
    PROD = "PROD"
    ADJOINT = "ADJOINT"


OpAtom = Union[SymbolOp, EmbeddedKron]


@dataclass(frozen=True)
class OpExpr:
    """
    One node of an operator tree. ATOM nodes carry `atom`, SCALE nodes carry
    `scalar` and one arg, SUM/PROD have one or more args and ADJOINT exactly
    one. Build nodes with the module functions or the operators below.
    """

    kind: OpExprKind
    atom: Optional[OpAtom] = None
    scalar: Optional[complex] = None
    args: Tuple["OpExpr", ...] = ()

    # numpy scalars defer to __rmul__ instead of building object arrays
    __array_ufunc__ = None

    def __add__(self, other: "OpExpr") -> "OpExpr":
        return summation((self, other))

    def __sub__(self, other: "OpExpr") -> "OpExpr":
        return summation((self, scale(-1.0, other)))

    def __matmul__(self, other: "OpExpr") -> "OpExpr":
        return product((self, other))

    def __rmul__(self, s: complex) -> "OpExpr":
        return scale(complex(s), self)

    def dag(self) -> "OpExpr":
        return adjoint(self)


def atom(x: OpAtom) -> OpExpr:
    return OpExpr(OpExprKind.ATOM, atom=x)


def scale(s: complex, x: OpExpr) -> OpExpr:
    return OpExpr(OpExprKind.SCALE, scalar=s, args=(x,))


def _nary(kind: OpExprKind, xs: Sequence[OpExpr]) -> OpExpr:
    args = tuple(xs)
    if not args:
        raise ValueError(f"{kind.value} requires at least one argument")
    return OpExpr(kind, args=args)


def summation(xs: Sequence[OpExpr]) -> OpExpr:
    return _nary(OpExprKind.SUM, xs)


def product(xs: Sequence[OpExpr]) -> OpExpr:
    """Matrix product xs[0] @ xs[1] @ ..., leftmost factor acts last."""
    return _nary(OpExprKind.PROD, xs)


def adjoint(x: OpExpr) -> OpExpr:
    return OpExpr(OpExprKind.ADJOINT, args=(x,))


def local(index: int, symbol: str) -> OpExpr:
    """Single local operator on mode `index`, identity elsewhere."""
    return kron_local([(index, symbol)])


def kron_local(pairs: Sequence[Tuple[int, str]]) -> OpExpr:
    """Tensor product of local operators on distinct modes."""
    return atom(
        EmbeddedKron(
            tuple(int(i) for i, _ in pairs),
            tuple(LocalSymbolOp(s) for _, s in pairs),
        )
    )
