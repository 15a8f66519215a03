from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from qtut.core.sim.types import MEProblemDense, MESolveResult, SpectrumResult


@runtime_checkable
class SolverAdapterProto(Protocol):
    def solve(
        self, problem: MEProblemDense, *, options: Optional[Mapping[str, Any]] = None
    ) -> MESolveResult: ...


@runtime_checkable
class EigenSolverProto(Protocol):
    def eigenstates(
        self, problem: MEProblemDense, *, t_index: int = 0, eigvals: int = 0
    ) -> SpectrumResult: ...
