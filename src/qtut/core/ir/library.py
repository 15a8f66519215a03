from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Dict, Mapping, Sequence

import numpy as np

from qtut.core.ir.protocols import OpMaterializeContextProto

# Mode kinds understood by StandardOps.
BOSON = "boson"
QUBIT = "qubit"
SPIN = "spin"


def boson_ops(dim: int) -> Dict[str, np.ndarray]:
    # Truncated Fock space |0>, ..., |dim-1>
    a = np.diag(np.sqrt(np.arange(1, dim, dtype=float)), k=1).astype(complex)
    adag = a.conj().T
    return {
        "a": a,
        "adag": adag,
        "n": adag @ a,
        "x": a + adag,
        "p": 1j * (adag - a),
        "id": np.eye(dim, dtype=complex),
    }


def qubit_ops() -> Dict[str, np.ndarray]:
    # basis: |g> = [1,0], |e> = [0,1]
    proj_g = np.array([[1.0, 0.0], [0.0, 0.0]], dtype=complex)
    proj_e = np.array([[0.0, 0.0], [0.0, 1.0]], dtype=complex)

    # sigma_plus = |e><g|, sigma_minus = |g><e|
    sp = np.array([[0.0, 0.0], [1.0, 0.0]], dtype=complex)
    sm = np.array([[0.0, 1.0], [0.0, 0.0]], dtype=complex)
    return {
        "proj_g": proj_g,
        "proj_e": proj_e,
        "sp": sp,
        "sm": sm,
        "sx": sp + sm,
        "sy": -1j * (sp - sm),
        "sz": proj_e - proj_g,
        "id": np.eye(2, dtype=complex),
    }


def spin_ops(dim: int) -> Dict[str, np.ndarray]:
    """
    Collective spin j = (dim - 1)/2 in the basis m = j, j-1, ..., -j.
    """
    j = 0.5 * (dim - 1)
    m = j - np.arange(dim, dtype=float)
    jz = np.diag(m).astype(complex)
    jp = np.zeros((dim, dim), dtype=complex)
    for k in range(1, dim):
        jp[k - 1, k] = np.sqrt(j * (j + 1.0) - m[k] * (m[k] + 1.0))
    jm = jp.conj().T
    return {
        "jz": jz,
        "jp": jp,
        "jm": jm,
        "jx": 0.5 * (jp + jm),
        "jy": -0.5j * (jp - jm),
        "id": np.eye(dim, dtype=complex),
    }


@lru_cache(maxsize=64)
def _local_table(kind: str, dim: int) -> Mapping[str, np.ndarray]:
    if kind == BOSON:
        return boson_ops(dim)
    if kind == QUBIT:
        if dim != 2:
            raise ValueError(f"qubit modes must have dim 2, got {dim}")
        return qubit_ops()
    if kind == SPIN:
        return spin_ops(dim)
    raise KeyError(f"Unknown mode kind {kind!r}")


@dataclass
class StandardOps(OpMaterializeContextProto):
    """
    Materializer backed by a fixed local operator library.

    kinds[i] selects the table for mode i (boson, qubit or spin).
    Full-space symbols can be registered in `symbols` as builders taking dims.
    """

    kinds: Sequence[str]
    symbols: Mapping[str, Callable[[Sequence[int]], np.ndarray]] = field(
        default_factory=dict
    )

    def resolve_symbol(self, symbol: str, dims: Sequence[int]) -> np.ndarray:
        if symbol not in self.symbols:
            raise KeyError(f"{symbol} (dims={tuple(dims)}) not registered")
        return np.asarray(self.symbols[symbol](dims), dtype=complex)

    def resolve_local(self, symbol: str, mode_index: int, dim: int) -> np.ndarray:
        kind = self.kinds[mode_index]
        table = _local_table(kind, int(dim))
        if symbol not in table:
            raise KeyError(
                f"{symbol} (mode={mode_index}, kind={kind}) keys={sorted(table.keys())}"
            )
        return table[symbol].copy()


def basis_vector(dim: int, index: int) -> np.ndarray:
    if not 0 <= index < dim:
        raise IndexError(f"basis index {index} out of range for dim {dim}")
    v = np.zeros(int(dim), dtype=complex)
    v[int(index)] = 1.0
    return v


def product_ket(dims: Sequence[int], indices: Sequence[int]) -> np.ndarray:
    """|i0> (x) |i1> (x) ... in compiler ordering."""
    if len(dims) != len(indices):
        raise ValueError(
            f"Need one index per mode: dims={tuple(dims)}, indices={tuple(indices)}"
        )
    out = np.ones(1, dtype=complex)
    for d, i in zip(dims, indices):
        out = np.kron(out, basis_vector(int(d), int(i)))
    return out
