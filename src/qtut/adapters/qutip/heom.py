from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import numpy as np

from qtut.adapters.qutip.adapter import (
    QuTiPAdapter,
    density_matrix,
    from_qobj,
    solver_options,
    to_qobj,
)
from qtut.core.sim.eval import expect_labels
from qtut.core.sim.protocols import SolverAdapterProto
from qtut.core.sim.types import MEProblemDense, MESolveResult

logger = logging.getLogger(__name__)


@dataclass
class QuTiPHEOMAdapter(SolverAdapterProto):
    """
    Hierarchical equations of motion through qutip.solver.heom.

    Each compiled bath becomes one BosonicBath built from its exponents.
    The hierarchy is truncated at max_depth.
    """

    max_depth: int = 5
    hamiltonian_builder: QuTiPAdapter = field(
        default_factory=lambda: QuTiPAdapter(op_dtype=None)
    )

    def solve(
        self,
        problem: MEProblemDense,
        *,
        options: Optional[Mapping[str, Any]] = None,
    ) -> MESolveResult:
        import qutip as qt  # type: ignore
        from qutip.solver.heom import BosonicBath, HEOMSolver  # type: ignore

        if not problem.baths:
            raise ValueError("QuTiPHEOMAdapter requires at least one bath")
        if problem.c_terms:
            raise ValueError(
                "QuTiPHEOMAdapter does not take collapse terms; model the loss as a bath"
            )
        if problem.rho0 is None:
            raise ValueError("MEProblemDense.rho0 is required for QuTiPHEOMAdapter")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")

        tlist = np.asarray(problem.tlist, dtype=float)
        dims = list(problem.dims)
        rho0 = to_qobj(qt, density_matrix(problem.rho0), dims=dims)

        H = self.hamiltonian_builder.build_hamiltonian(problem, qt)
        baths = [
            BosonicBath(
                to_qobj(qt, b.op, dims=dims),
                list(b.exponents.ck_real),
                list(b.exponents.vk_real),
                list(b.exponents.ck_imag),
                list(b.exponents.vk_imag),
                tag=b.label or f"bath{i}",
            )
            for i, b in enumerate(problem.baths)
        ]
        e_ops = [to_qobj(qt, t.op, dims=dims) for t in problem.e_terms]

        heom_options = solver_options(options)
        heom_options.setdefault("progress_bar", "")

        logger.debug(
            "HEOM D=%d with %d baths, max_depth=%d", problem.D, len(baths), self.max_depth
        )
        solver = HEOMSolver(H, baths, max_depth=self.max_depth, options=heom_options)
        res = solver.run(rho0, tlist, e_ops=e_ops)

        expect = {k: np.asarray(arr) for k, arr in zip(expect_labels(problem), res.expect or [])}
        states_out = [from_qobj(s) for s in res.states] if heom_options["store_states"] else None
        final_qobj = getattr(res, "final_state", None)

        return MESolveResult(
            tlist=tlist,
            states=states_out,
            expect=expect,
            final_state=from_qobj(final_qobj) if final_qobj is not None else None,
            meta={
                "backend": "qutip",
                "solver": "heom",
                "max_depth": self.max_depth,
                "n_ados": len(solver.ados.labels),
            },
        )
