from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class TermKind(str, Enum):
    H = "H"
    C = "C"
    E = "E"


@dataclass(frozen=True)
class Term:
    """
    One Hamiltonian piece, collapse operator or observable.

    `op` is an OpExpr; `coeff` is None for a constant term, otherwise any
    object the compiler can sample on the solver grid (see core.sim.coeffs).
    Frequencies and rates inside `op`/`coeff` are already in solver units.
    """

    kind: TermKind
    op: Any
    coeff: Optional[Any] = None
    label: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)


def _make(kind: TermKind):
    def build(op: Any, coeff: Optional[Any] = None, label: str = "", **meta: Any) -> Term:
        return Term(kind=kind, op=op, coeff=coeff, label=label, meta=meta)

    return build


h_term = _make(TermKind.H)
c_term = _make(TermKind.C)


def e_term(op: Any, label: str, **meta: Any) -> Term:
    """Observables are always static and must be named."""
    return Term(kind=TermKind.E, op=op, label=label, meta=meta)
