from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

import numpy as np


@runtime_checkable
class OpMaterializeContextProto(Protocol):
    """Supplies matrices for the symbols an OpExpr tree refers to."""

    def resolve_symbol(self, symbol: str, dims: Sequence[int]) -> np.ndarray:
        """Full-space (D, D) operator named `symbol`."""
        ...

    def resolve_local(self, symbol: str, mode_index: int, dim: int) -> np.ndarray:
        """(dim, dim) operator `symbol` acting on mode `mode_index` alone."""
        ...
