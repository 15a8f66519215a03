from __future__ import annotations

from functools import reduce
from typing import Dict, Sequence, Tuple

import numpy as np

from qtut.core.ir.ops import EmbeddedKron, OpExpr, OpExprKind, SymbolOp
from qtut.core.ir.protocols import OpMaterializeContextProto


def materialize_op_expr(
    expr: OpExpr,
    *,
    dims: Sequence[int],
    ctx: OpMaterializeContextProto,
) -> np.ndarray:
    """
    Lower an OpExpr tree to a dense (D, D) complex matrix.

    Modes are ordered as in `dims`, full operators are kron(mode0, mode1, ...).
    Local operators embedded with EmbeddedKron get identities on every other
    mode. Each (symbol, mode) pair is resolved through `ctx` once per call.
    """
    dims_t = tuple(int(d) for d in dims)
    D = int(np.prod(dims_t)) if dims_t else 1
    cache: Dict[Tuple[str, int], np.ndarray] = {}

    def local_op(symbol: str, mode: int) -> np.ndarray:
        key = (symbol, mode)
        if key not in cache:
            d = dims_t[mode]
            mat = np.asarray(ctx.resolve_local(symbol, mode, d), dtype=complex)
            if mat.shape != (d, d):
                raise ValueError(
                    f"Local op {symbol!r} on mode {mode} has shape {mat.shape}, "
                    f"expected {(d, d)}"
                )
            cache[key] = mat
        return cache[key]

    def embed(atom: EmbeddedKron) -> np.ndarray:
        n = len(dims_t)
        for i in atom.indices:
            if not 0 <= i < n:
                raise IndexError(f"Mode index {i} out of range for {n} modes")
        if len(set(atom.indices)) != len(atom.indices):
            raise ValueError(f"Repeated mode index in {atom.indices}")
        placed = {int(i): lop.symbol for i, lop in zip(atom.indices, atom.locals)}
        factors = [
            local_op(placed[m], m) if m in placed else np.eye(d, dtype=complex)
            for m, d in enumerate(dims_t)
        ]
        return reduce(np.kron, factors)

    def lower(e: OpExpr) -> np.ndarray:
        if e.kind == OpExprKind.ATOM:
            if isinstance(e.atom, EmbeddedKron):
                return embed(e.atom)
            if isinstance(e.atom, SymbolOp):
                mat = np.asarray(ctx.resolve_symbol(e.atom.symbol, dims_t), dtype=complex)
                if mat.shape != (D, D):
                    raise ValueError(
                        f"Symbol {e.atom.symbol!r} has shape {mat.shape}, expected {(D, D)}"
                    )
                return mat
            raise TypeError(f"Unsupported atom type: {type(e.atom)!r}")

        if not e.args:
            raise ValueError(f"{e.kind.value} expression has no arguments")

        if e.kind == OpExprKind.SCALE:
            if e.scalar is None:
                raise ValueError("SCALE expression needs a scalar")
            return complex(e.scalar) * lower(e.args[0])
        if e.kind == OpExprKind.SUM:
            return reduce(np.add, (lower(a) for a in e.args))
        if e.kind == OpExprKind.PROD:
            return reduce(np.matmul, (lower(a) for a in e.args))
        if e.kind == OpExprKind.ADJOINT:
            return lower(e.args[0]).conj().T

        raise ValueError(f"Unknown OpExprKind: {e.kind}")

    return lower(expr)
