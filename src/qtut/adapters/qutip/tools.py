"""Thin analysis wrappers over QuTiP for dense states returned by the adapters."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import qutip as qt

from qtut.adapters.qutip.adapter import from_qobj, to_qobj

State = np.ndarray


def as_qobj(state: State, dims: Sequence[int]) -> qt.Qobj:
    return to_qobj(qt, state, dims=list(dims))


def reduced_state(
    state: State, dims: Sequence[int], keep: Union[int, Sequence[int]]
) -> np.ndarray:
    """Partial trace keeping mode(s) `keep`; returns a dense density matrix."""
    sel = [keep] if isinstance(keep, int) else list(keep)
    return from_qobj(as_qobj(state, dims).ptrace(sel))


def entropy_vn(
    state: State, dims: Sequence[int], keep: Union[int, Sequence[int]], base: float = 2
) -> float:
    """Von Neumann entropy of the reduced state of `keep`."""
    rho = qt.Qobj(reduced_state(state, dims, keep))
    return float(qt.entropy_vn(rho, base=base))


def fidelity(a: State, b: State, dims: Sequence[int]) -> float:
    """Uhlmann fidelity, squared convention: |<a|b>|^2 for pure states."""
    return float(qt.fidelity(as_qobj(a, dims), as_qobj(b, dims)) ** 2)


def wigner(
    state: State,
    dims: Sequence[int],
    mode: int,
    xvec: np.ndarray,
    yvec: np.ndarray | None = None,
) -> np.ndarray:
    """Wigner function of one bosonic mode, shape (len(yvec), len(xvec))."""
    yvec = xvec if yvec is None else yvec
    q = as_qobj(state, dims)
    rho = q.ptrace(mode) if len(dims) > 1 else q
    return np.asarray(qt.wigner(rho, xvec, yvec), dtype=float)


def coherent_ket(dim: int, alpha: complex) -> np.ndarray:
    return from_qobj(qt.coherent(int(dim), alpha))
