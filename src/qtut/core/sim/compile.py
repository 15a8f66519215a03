from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

import numpy as np

from qtut.core.ir.materialize import materialize_op_expr
from qtut.core.ir.terms import Term
from qtut.core.model.protocols import CompileBundle, MaterializeBundle, TermCatalogProto
from qtut.core.sim.types import CompiledBathDense, CompiledTermDense, MEProblemDense

logger = logging.getLogger(__name__)


def _terms(cat: Optional[TermCatalogProto]) -> Iterable[Term]:
    return cat.all_terms if cat is not None else ()


def compile_to_dense(
    *,
    bundle: CompileBundle,
    material: MaterializeBundle,
    tlist: np.ndarray,
    time_unit_s: float,
    rho0: np.ndarray | None = None,
) -> MEProblemDense:
    """
    Materialize every term and bath coupling of `bundle` on the full
    Hilbert space. Coefficients stay symbolic; adapters sample them.
    """
    dims = tuple(int(d) for d in bundle.modes.dims())
    D = int(np.prod(dims))

    def dense(op) -> np.ndarray:
        return materialize_op_expr(op, dims=dims, ctx=material.ops)

    def lower(cat: Optional[TermCatalogProto]) -> Tuple[CompiledTermDense, ...]:
        return tuple(
            CompiledTermDense(op=dense(t.op), coeff=t.coeff, label=t.label, meta=t.meta)
            for t in _terms(cat)
        )

    if rho0 is not None:
        rho0 = np.asarray(rho0, dtype=complex)
        if rho0.shape not in ((D,), (D, D)):
            raise ValueError(f"rho0 has shape {rho0.shape}, expected {(D,)} or {(D, D)}")

    problem = MEProblemDense(
        dims=dims,
        tlist=np.asarray(tlist, dtype=float),
        time_unit_s=float(time_unit_s),
        h_terms=lower(bundle.hamiltonian),
        c_terms=lower(bundle.collapse),
        e_terms=lower(bundle.observables),
        baths=tuple(
            CompiledBathDense(op=dense(b.coupling), exponents=b.exponents, label=b.label)
            for b in bundle.baths
        ),
        rho0=rho0,
        meta=bundle.meta or {},
    )
    logger.debug(
        "Compiled dims=%s D=%d: %d H, %d C, %d E terms, %d baths",
        dims, D, len(problem.h_terms), len(problem.c_terms),
        len(problem.e_terms), len(problem.baths),
    )
    return problem
