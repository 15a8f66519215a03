from __future__ import annotations

from typing import Any, Callable, Tuple

import numpy as np

from qtut.core.ir.coeffs import eval_coeff_any
from qtut.core.sim.types import CompiledTermDense, MEProblemDense


def eval_coeff(
    term: CompiledTermDense, tlist: np.ndarray, *, time_unit_s: float
) -> np.ndarray:
    return eval_coeff_any(term.coeff, tlist, time_unit_s=time_unit_s)


def effective_op_at(
    term: CompiledTermDense, tlist: np.ndarray, index: int, *, time_unit_s: float
) -> np.ndarray:
    coeff_i = eval_coeff(term, tlist, time_unit_s=time_unit_s)[int(index)]
    return complex(coeff_i) * np.asarray(term.op, dtype=complex)


def hamiltonian_at(problem: MEProblemDense, index: int) -> np.ndarray:
    """Dense H(t_index) = sum_k coeff_k(t_index) * op_k."""
    tlist = np.asarray(problem.tlist, dtype=float)
    H = np.zeros((problem.D, problem.D), dtype=complex)
    for term in problem.h_terms:
        H += effective_op_at(term, tlist, index, time_unit_s=problem.time_unit_s)
    return H


def is_constant(coeff: np.ndarray, *, atol: float = 0.0, rtol: float = 0.0) -> bool:
    if coeff.size == 0:
        return True
    c0 = coeff[0]
    return bool(np.allclose(coeff, c0, atol=atol, rtol=rtol))


def nearest_index(tlist: np.ndarray, t: float) -> int:
    i = int(np.searchsorted(tlist, t, side="left"))
    if i <= 0:
        return 0
    if i >= len(tlist):
        return len(tlist) - 1
    left = float(tlist[i - 1])
    right = float(tlist[i])
    if (t - left) <= (right - t):
        return i - 1
    return i


def make_time_func(
    tlist: np.ndarray, coeff: np.ndarray, *, interp: str = "linear"
) -> Callable[[float, Any], complex]:
    """
    Turn samples on tlist into f(t, args) -> complex, held at the end values
    outside the grid.
    """
    if interp == "nearest":

        def f(t: float, args: Any) -> complex:
            idx = nearest_index(tlist, float(t))
            return complex(coeff[idx])

        return f

    if interp != "linear":
        raise ValueError(f"Unknown interp {interp!r}; expected 'linear' or 'nearest'")

    t0 = float(tlist[0])
    t1 = float(tlist[-1])
    re = np.asarray(np.real(coeff), dtype=float)
    im = np.asarray(np.imag(coeff), dtype=float)

    def f(t: float, args: Any) -> complex:
        tt = float(t)
        if tt <= t0:
            return complex(re[0], im[0])
        if tt >= t1:
            return complex(re[-1], im[-1])
        r = float(np.interp(tt, tlist, re))
        j = float(np.interp(tt, tlist, im))
        return complex(r, j)

    return f


def expect_state(op: np.ndarray, state: np.ndarray) -> complex:
    """<psi|op|psi> for a ket (D,), Tr(op rho) for a density matrix (D, D)."""
    s = np.asarray(state, dtype=complex)
    if s.ndim == 1:
        return complex(np.vdot(s, np.asarray(op) @ s))
    return complex(np.trace(np.asarray(op) @ s))


def expect_labels(problem: MEProblemDense) -> Tuple[str, ...]:
    """Result keys for the observables; unnamed ones become E[i]."""
    return tuple(t.label or f"E[{i}]" for i, t in enumerate(problem.e_terms))
