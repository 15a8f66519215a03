from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.integrate import solve_ivp

from qtut.core.sim.eval import eval_coeff, expect_labels, is_constant, make_time_func
from qtut.core.sim.protocols import SolverAdapterProto
from qtut.core.sim.types import CompiledTermDense, MEProblemDense, MESolveResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LowRankOptions:
    """
    rank0: initial number of columns of the factor Z (rho = Z Z^dagger)
    max_rank: rank cap; None means the full Hilbert space dimension
    err_tol: largest tolerated out-of-range jump rate, as a fraction of the
        total jump rate tr(J)
    eps_new: population seeded into a newly added direction
    renormalize: rescale Z to unit trace whenever the integration stops
    method, rtol, atol: passed to scipy.integrate.solve_ivp
        (complex states need RK45, RK23, DOP853 or BDF)
    """

    rank0: int = 1
    max_rank: Optional[int] = None
    err_tol: float = 1e-5
    eps_new: float = 1e-8
    renormalize: bool = True
    method: str = "RK45"
    rtol: float = 1e-8
    atol: float = 1e-10

    def validate(self, D: int) -> int:
        if self.rank0 < 1:
            raise ValueError(f"rank0 must be >= 1, got {self.rank0}")
        max_rank = D if self.max_rank is None else int(self.max_rank)
        if max_rank < self.rank0:
            raise ValueError(f"max_rank={max_rank} is below rank0={self.rank0}")
        if max_rank > D:
            raise ValueError(f"max_rank={max_rank} exceeds Hilbert space dimension {D}")
        if self.eps_new <= 0.0:
            raise ValueError(f"eps_new must be positive, got {self.eps_new}")
        if self.method == "LSODA":
            raise ValueError("LSODA does not support complex states")
        return max_rank


@dataclass(frozen=True)
class LowRankState:
    """
    rho = basis @ diag(weights) @ basis^dagger with orthonormal basis columns.
    """

    basis: np.ndarray
    weights: np.ndarray

    @classmethod
    def from_factor(cls, Z: np.ndarray) -> "LowRankState":
        U, s, _ = np.linalg.svd(np.asarray(Z, dtype=complex), full_matrices=False)
        return cls(basis=U, weights=s**2)

    @property
    def rank(self) -> int:
        return int(self.weights.shape[0])

    def dm(self) -> np.ndarray:
        return (self.basis * self.weights) @ self.basis.conj().T


# jump rate below which nothing counts as leaking
_RATE_FLOOR = 1e-14

_TimeOp = Tuple[np.ndarray, Optional[Callable[[float, Any], complex]]]


def _split_terms(
    terms: Sequence[CompiledTermDense], problem: MEProblemDense, interp: str
) -> List[_TimeOp]:
    tlist = np.asarray(problem.tlist, dtype=float)
    out: List[_TimeOp] = []
    for term in terms:
        op = np.asarray(term.op, dtype=complex)
        coeff = eval_coeff(term, tlist, time_unit_s=problem.time_unit_s)
        if is_constant(coeff):
            out.append((complex(coeff[0]) * op, None))
        else:
            out.append((op, make_time_func(tlist, coeff, interp=interp)))
    return out


def _at(ops: Sequence[_TimeOp], t: float) -> List[np.ndarray]:
    return [op if f is None else f(t, None) * op for op, f in ops]


def initial_factor(rho0: np.ndarray, rank0: int, eps_new: float) -> np.ndarray:
    """
    Leading rank0 eigen-directions of rho0 as a D x rank0 factor; directions
    rho0 does not populate are seeded with eps_new.
    """
    r = np.asarray(rho0, dtype=complex)
    if r.ndim == 1:
        r = np.outer(r, r.conj())
    evals, evecs = np.linalg.eigh(0.5 * (r + r.conj().T))
    order = np.argsort(evals)[::-1]
    evals = np.clip(evals[order], 0.0, None)
    evecs = evecs[:, order]
    kept = evals[:rank0]
    dropped = float(np.sum(evals[rank0:]))
    if dropped > 1e-12:
        logger.warning(
            "Initial state truncated to rank %d; discarded population %.3g", rank0, dropped
        )
    weights = np.where(kept > eps_new, kept, eps_new)
    return evecs[:, :rank0] * np.sqrt(weights)


@dataclass
class LowRankAdapter(SolverAdapterProto):
    """
    Low-rank Lindblad solver, rho = Z Z^dagger with Z of shape (D, m).

    dZ/dt = -i H Z - 1/2 sum_k L_k^dagger L_k Z + (I - P/2) J Z (Z^dagger Z)^+

    with J = sum_k L_k Z Z^dagger L_k^dagger and P the projector on range(Z).
    The only part of the Lindblad generator this misses is Q J Q, Q = I - P:
    jumps that land outside range(Z). Its largest eigenvalue is watched as a
    solve_ivp event; once it exceeds err_tol * tr(J) the integration stops,
    every out-of-range direction above half that threshold is appended to Z
    (up to max_rank) and the integration resumes.
    """

    options: LowRankOptions = field(default_factory=LowRankOptions)
    interp: str = "linear"

    def solve(
        self,
        problem: MEProblemDense,
        *,
        options: Optional[Mapping[str, Any]] = None,
    ) -> MESolveResult:
        if problem.rho0 is None:
            raise ValueError("MEProblemDense.rho0 is required for LowRankAdapter")

        opts = self.options
        if options and "lowrank" in options:
            opts = replace(opts, **dict(options["lowrank"]))
        store_states = bool(options.get("store_states", False)) if options else False

        D = problem.D
        max_rank = opts.validate(D)
        tlist = np.asarray(problem.tlist, dtype=float)

        h_ops = _split_terms(problem.h_terms, problem, self.interp)
        c_ops = _split_terms(problem.c_terms, problem, self.interp)
        e_ops = [np.asarray(t.op, dtype=complex) for t in problem.e_terms]
        e_keys = expect_labels(problem)

        def rhs(t: float, y: np.ndarray, m: int) -> np.ndarray:
            Z = y.reshape(D, m)
            H = sum(_at(h_ops, t), np.zeros((D, D), dtype=complex))
            Ls = _at(c_ops, t)
            Ginv = np.linalg.pinv(Z.conj().T @ Z, hermitian=True)
            dZ = -1j * (H @ Z)
            JZ = np.zeros_like(Z)
            for L in Ls:
                LZ = L @ Z
                dZ -= 0.5 * (L.conj().T @ LZ)
                JZ += LZ @ (LZ.conj().T @ Z)
            W = JZ @ Ginv
            dZ += W - 0.5 * (Z @ (Ginv @ (Z.conj().T @ W)))
            return dZ.ravel()

        def leakage(Z: np.ndarray, t: float) -> Tuple[np.ndarray, float]:
            """Q L_k Z side by side, so Q J Q = B B^dagger, and the threshold."""
            Ginv = np.linalg.pinv(Z.conj().T @ Z, hermitian=True)
            blocks = []
            rate = 0.0
            for L in _at(c_ops, t):
                LZ = L @ Z
                rate += float(np.real(np.vdot(LZ, LZ)))
                blocks.append(LZ - Z @ (Ginv @ (Z.conj().T @ LZ)))
            return np.hstack(blocks), opts.err_tol * rate + _RATE_FLOOR

        def out_of_range(t: float, y: np.ndarray, m: int) -> float:
            B, threshold = leakage(y.reshape(D, m), t)
            return float(np.linalg.norm(B, 2) ** 2) - threshold

        out_of_range.terminal = True
        out_of_range.direction = 1

        def adapt(Z: np.ndarray, t: float) -> np.ndarray:
            m = Z.shape[1]
            if m >= max_rank or not c_ops:
                return Z
            B, threshold = leakage(Z, t)
            U, s, _ = np.linalg.svd(B, full_matrices=False)
            n_new = min(int(np.sum(s**2 > 0.5 * threshold)), max_rank - m)
            if n_new == 0:
                return Z
            logger.debug(
                "t=%.4g: out-of-range dissipation %.3g > %.3g, rank %d -> %d",
                t, s[0] ** 2, threshold, m, m + n_new,
            )
            return np.hstack([Z, np.sqrt(opts.eps_new) * U[:, :n_new]])

        def normalized(Z: np.ndarray) -> Tuple[np.ndarray, float]:
            trace = float(np.real(np.vdot(Z, Z)))
            if opts.renormalize and trace > 0.0:
                Z = Z / np.sqrt(trace)
            return Z, trace

        Z = adapt(initial_factor(problem.rho0, opts.rank0, opts.eps_new), float(tlist[0]))

        n = len(tlist)
        expect_raw = np.zeros((len(e_ops), n), dtype=complex)
        rank_history = np.zeros(n, dtype=int)
        trace_history = np.zeros(n, dtype=float)
        states: List[LowRankState] = []

        def record(i: int, Z: np.ndarray, trace: float) -> None:
            for k, E in enumerate(e_ops):
                expect_raw[k, i] = np.trace(Z.conj().T @ (E @ Z))
            rank_history[i] = Z.shape[1]
            trace_history[i] = trace
            if store_states:
                states.append(LowRankState.from_factor(Z))

        record(0, Z, float(np.real(np.vdot(Z, Z))))

        for i in range(n - 1):
            t, t1 = float(tlist[i]), float(tlist[i + 1])
            while True:
                m = Z.shape[1]
                watch = bool(c_ops) and m < max_rank
                sol = solve_ivp(
                    rhs,
                    (t, t1),
                    Z.ravel(),
                    method=opts.method,
                    rtol=opts.rtol,
                    atol=opts.atol,
                    args=(m,),
                    events=out_of_range if watch else None,
                )
                if sol.status == -1:
                    raise RuntimeError(
                        f"Low-rank integration failed on [{t}, {t1}] at rank {m}: {sol.message}"
                    )
                if sol.status == 0:
                    Z, trace = normalized(sol.y[:, -1].reshape(D, m))
                    break
                # stopped on the out-of-range event
                t = float(sol.t_events[0][0])
                Z, _ = normalized(sol.y_events[0][0].reshape(D, m))
                Z = adapt(Z, t)
            Z = adapt(Z, t1)
            record(i + 1, Z, trace)

        expect: Dict[str, np.ndarray] = {}
        for k, (key, E) in enumerate(zip(e_keys, e_ops)):
            hermitian = np.allclose(E, E.conj().T)
            expect[key] = expect_raw[k].real if hermitian else expect_raw[k]

        logger.debug(
            "Low-rank solve D=%d: final rank %d, min trace %.6f",
            D, rank_history[-1], trace_history.min(),
        )

        return MESolveResult(
            tlist=tlist,
            states=states if store_states else None,
            expect=expect,
            final_state=Z @ Z.conj().T,
            meta={
                "backend": "lowrank",
                "rank_history": rank_history,
                "trace_history": trace_history,
                "max_rank": max_rank,
            },
        )
