from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from qtut.core.sim.eval import (
    eval_coeff,
    expect_labels,
    hamiltonian_at,
    is_constant,
    make_time_func,
)
from qtut.core.sim.protocols import EigenSolverProto, SolverAdapterProto
from qtut.core.sim.types import CompiledTermDense, MEProblemDense, MESolveResult, SpectrumResult

logger = logging.getLogger(__name__)


def to_qobj(qt: Any, mat: np.ndarray, *, dims: List[int], dtype: Optional[str] = None) -> Any:
    """Dense operator (D, D) or ket (D,) -> Qobj carrying the subsystem dims."""
    m = np.asarray(mat, dtype=complex)
    if m.ndim == 1:
        q = qt.Qobj(m.reshape(-1, 1), dims=[dims, [1] * len(dims)])
    else:
        q = qt.Qobj(m, dims=[dims, dims])
    return q.to(dtype) if dtype else q


def from_qobj(q: Any) -> np.ndarray:
    """Qobj -> dense ndarray; kets come back flat with shape (D,)."""
    arr = np.asarray(q.full(), dtype=complex)
    return arr.ravel() if q.isket else arr


def density_matrix(state: np.ndarray) -> np.ndarray:
    s = np.asarray(state, dtype=complex)
    return np.outer(s, s.conj()) if s.ndim == 1 else s


def solver_options(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    QuTiP solver options from our run options: `qutip_options` is passed
    through, `progress_bar` and `store_states` are lifted into it. The final
    state is always kept.
    """
    options = options or {}
    out: Dict[str, Any] = dict(options.get("qutip_options", {}))
    if "progress_bar" in options:
        out["progress_bar"] = options["progress_bar"]
    out.setdefault("store_states", bool(options.get("store_states", False)))
    out.setdefault("store_final_state", True)
    return out


@dataclass
class QuTiPAdapter(SolverAdapterProto, EigenSolverProto):
    """
    Runs a compiled problem with qutip.sesolve / qutip.mesolve.

    Every H and C term enters as coeff(t) * op. Terms whose coefficient is
    constant on the grid are folded into static operators; the rest become
    [op, f(t)] pairs with f interpolated from the samples (`interp`).
    A ket without collapse terms goes to sesolve, anything else to mesolve.
    """

    interp: str = "linear"
    # QuTiP 5 data layer for operators / initial state, None keeps the default
    op_dtype: Optional[str] = "csr"
    rho_dtype: Optional[str] = None
    const_atol: float = 0.0
    const_rtol: float = 0.0

    def solve(
        self,
        problem: MEProblemDense,
        *,
        options: Optional[Mapping[str, Any]] = None,
    ) -> MESolveResult:
        import qutip as qt  # type: ignore

        if problem.rho0 is None:
            raise ValueError("MEProblemDense.rho0 is required for QuTiPAdapter")

        tlist = np.asarray(problem.tlist, dtype=float)
        dims = list(problem.dims)
        use_sesolve = problem.is_ket and not problem.c_terms
        start = problem.rho0 if use_sesolve else density_matrix(problem.rho0)
        rho0 = to_qobj(qt, start, dims=dims, dtype=self.rho_dtype)

        H = self.build_hamiltonian(problem, qt)
        e_ops = [self._qobj(qt, t.op, dims) for t in problem.e_terms]
        opts = solver_options(options)

        if use_sesolve:
            logger.debug("sesolve D=%d over %d points", problem.D, len(tlist))
            res = qt.sesolve(H, rho0, tlist, e_ops=e_ops, options=opts)
        else:
            c_ops = self.build_collapse_ops(problem, qt)
            logger.debug(
                "mesolve D=%d with %d collapse ops over %d points",
                problem.D, len(c_ops), len(tlist),
            )
            res = qt.mesolve(H, rho0, tlist, c_ops, e_ops=e_ops, options=opts)

        expect = {
            k: np.asarray(v) for k, v in zip(expect_labels(problem), res.expect or [])
        }
        states = [from_qobj(s) for s in res.states] if opts["store_states"] and res.states else None
        final = getattr(res, "final_state", None)

        return MESolveResult(
            tlist=tlist,
            states=states,
            expect=expect,
            final_state=from_qobj(final) if final is not None else None,
            meta={
                "backend": "qutip",
                "solver": "sesolve" if use_sesolve else "mesolve",
                "op_dtype": self.op_dtype,
                "rho_dtype": self.rho_dtype,
            },
        )

    def eigenstates(
        self, problem: MEProblemDense, *, t_index: int = 0, eigvals: int = 0
    ) -> SpectrumResult:
        import qutip as qt  # type: ignore

        H = to_qobj(qt, hamiltonian_at(problem, t_index), dims=list(problem.dims))
        evals, ekets = H.eigenstates(eigvals=int(eigvals))
        return SpectrumResult(
            energies=np.asarray(evals, dtype=float),
            states=np.column_stack([from_qobj(k) for k in ekets]),
        )

    def build_hamiltonian(self, problem: MEProblemDense, qt: Any) -> Any:
        """Qobj for a static H, otherwise a QuTiP list [H0, [H1, f1], ...]."""
        dims = list(problem.dims)
        static, varying = self._split(problem, problem.h_terms)
        H0 = self._qobj(qt, sum(static, np.zeros((problem.D, problem.D), dtype=complex)), dims)
        if not varying:
            return H0
        return [H0] + [[self._qobj(qt, op, dims), f] for op, f in varying]

    def build_collapse_ops(self, problem: MEProblemDense, qt: Any) -> List[Any]:
        dims = list(problem.dims)
        static, varying = self._split(problem, problem.c_terms)
        return [self._qobj(qt, op, dims) for op in static] + [
            [self._qobj(qt, op, dims), f] for op, f in varying
        ]

    def _split(
        self, problem: MEProblemDense, terms: Sequence[CompiledTermDense]
    ) -> Tuple[List[np.ndarray], List[Tuple[np.ndarray, Any]]]:
        """Static operators (coefficient folded in) and (op, f(t)) pairs."""
        tlist = np.asarray(problem.tlist, dtype=float)
        static: List[np.ndarray] = []
        varying: List[Tuple[np.ndarray, Any]] = []
        for term in terms:
            op = np.asarray(term.op, dtype=complex)
            coeff = eval_coeff(term, tlist, time_unit_s=problem.time_unit_s)
            if is_constant(coeff, atol=self.const_atol, rtol=self.const_rtol):
                static.append(complex(coeff[0]) * op)
            else:
                varying.append((op, make_time_func(tlist, coeff, interp=self.interp)))
        return static, varying

    def _qobj(self, qt: Any, op: np.ndarray, dims: List[int]) -> Any:
        return to_qobj(qt, op, dims=dims, dtype=self.op_dtype)
