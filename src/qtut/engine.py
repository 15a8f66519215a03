from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from qtut.core.drives.types import DriveSpec
from qtut.core.model.merge import merge_bundle_with_drive_terms
from qtut.core.model.protocols import CompilableModelProto, CompileBundle
from qtut.core.sim.compile import compile_to_dense
from qtut.core.sim.protocols import EigenSolverProto, SolverAdapterProto
from qtut.core.sim.types import MEProblemDense, MESolveResult, SpectrumResult
from qtut.core.sim.audit import audit_problem_dense, AuditOptions

logger = logging.getLogger(__name__)


def _default_adapter() -> SolverAdapterProto:
    # Late import to avoid core depending on QuTiP
    from qtut.adapters.qutip.adapter import QuTiPAdapter

    return QuTiPAdapter()


def _with_drive_terms(
    bundle: CompileBundle,
    drives: Sequence[DriveSpec],
    tlist: np.ndarray,
    time_unit_s: float,
) -> CompileBundle:
    if not bundle.accepts_drives:
        raise ValueError(
            "Drives given, but the model has no drive_decoder/drive_strength/drive_emitter"
        )
    ctx = bundle.drive_decode_ctx
    resolved = bundle.drive_decoder.decode(drives, ctx=ctx)
    coeffs = bundle.drive_strength.compute(
        resolved, tlist, time_unit_s=time_unit_s, decode_ctx=ctx
    )
    drive_terms = bundle.drive_emitter.emit_drive_terms(resolved, coeffs, decode_ctx=ctx)
    logger.debug(
        "Merged %d drive terms from %d drives", len(drive_terms.h_terms), len(resolved)
    )
    return merge_bundle_with_drive_terms(bundle, drive_terms)


@dataclass
class SimulationEngine:
    adapter: Optional[SolverAdapterProto] = None
    audit: bool = False
    audit_options: Optional[AuditOptions] = None

    def compile(
        self,
        model: CompilableModelProto,
        *,
        tlist: np.ndarray,
        time_unit_s: float = 1.0,
        rho0: Optional[np.ndarray] = None,
        drives: Optional[Sequence[DriveSpec]] = None,
    ) -> MEProblemDense:
        tlist = np.asarray(tlist, dtype=float)
        bundle = model.compile_bundle()
        if drives:
            bundle = _with_drive_terms(bundle, drives, tlist, float(time_unit_s))

        problem = compile_to_dense(
            bundle=bundle,
            material=model.materialize_bundle(),
            tlist=tlist,
            time_unit_s=float(time_unit_s),
            rho0=rho0,
        )
        if self.audit:
            audit_problem_dense(problem, options=self.audit_options)
        return problem

    def run(
        self,
        model: CompilableModelProto,
        *,
        tlist: np.ndarray,
        time_unit_s: float = 1.0,
        rho0: Optional[np.ndarray] = None,
        drives: Optional[Sequence[DriveSpec]] = None,
        solve_options: Optional[Mapping[str, Any]] = None,
    ) -> MESolveResult:
        problem = self.compile(
            model,
            tlist=tlist,
            time_unit_s=time_unit_s,
            rho0=rho0,
            drives=drives,
        )
        adapter = self.adapter or _default_adapter()
        logger.debug("Solving D=%d problem with %s", problem.D, type(adapter).__name__)
        return adapter.solve(problem, options=solve_options)

    def spectrum(
        self,
        model: CompilableModelProto,
        *,
        tlist: Optional[np.ndarray] = None,
        time_unit_s: float = 1.0,
        t_index: int = 0,
        eigvals: int = 0,
    ) -> SpectrumResult:
        """
        Eigen-decomposition of H(tlist[t_index]); eigvals=0 returns all of them.
        """
        problem = self.compile(
            model,
            tlist=np.zeros(1) if tlist is None else tlist,
            time_unit_s=time_unit_s,
        )
        return self.eigenstates(problem, t_index=t_index, eigvals=eigvals)

    def eigenstates(
        self, problem: MEProblemDense, *, t_index: int = 0, eigvals: int = 0
    ) -> SpectrumResult:
        adapter = self.adapter or _default_adapter()
        if not isinstance(adapter, EigenSolverProto):
            raise TypeError(f"{type(adapter).__name__} does not provide eigenstates")
        return adapter.eigenstates(problem, t_index=t_index, eigvals=eigvals)
