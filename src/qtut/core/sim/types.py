from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from qtut.core.sim.baths import BathExponents


@dataclass(frozen=True)
class CompiledTermDense:
    """
    Dense compiled term.

    op: (D, D) complex
    coeff: optional coeff object (eval on tlist) OR None means constant 1
    """

    op: np.ndarray
    coeff: Optional[Any] = None
    label: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompiledBathDense:
    """
    Dense system coupling operator Q of a bosonic bath, H_int = Q (x) X,
    with the exponential decomposition of <X(t) X(0)>.
    """

    op: np.ndarray
    exponents: BathExponents
    label: str = ""


@dataclass(frozen=True)
class MEProblemDense:
    dims: Tuple[int, ...]
    tlist: np.ndarray
    time_unit_s: float

    h_terms: Tuple[CompiledTermDense, ...] = ()
    c_terms: Tuple[CompiledTermDense, ...] = ()
    e_terms: Tuple[CompiledTermDense, ...] = ()
    baths: Tuple[CompiledBathDense, ...] = ()

    # ket (D,) or density matrix (D, D)
    rho0: Optional[np.ndarray] = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    @property
    def D(self) -> int:
        d = 1
        for x in self.dims:
            d *= int(x)
        return d

    @property
    def is_ket(self) -> bool:
        return self.rho0 is not None and np.ndim(self.rho0) == 1


@dataclass(frozen=True)
class MESolveResult:
    tlist: np.ndarray
    states: Optional[Sequence[Any]] = None
    expect: Mapping[str, np.ndarray] = field(default_factory=dict)
    final_state: Optional[np.ndarray] = None
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SpectrumResult:
    """
    Lowest eigenpairs of a Hamiltonian.

    energies: (k,) ascending
    states: (D, k) columns are normalized eigenvectors
    """

    energies: np.ndarray
    states: np.ndarray

    @property
    def ground_state(self) -> np.ndarray:
        return self.states[:, 0]

    @property
    def gap(self) -> float:
        if len(self.energies) < 2:
            raise ValueError("gap needs at least two eigenvalues")
        return float(self.energies[1] - self.energies[0])
