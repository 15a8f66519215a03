"""
Adiabatic sweep on an Ising spin chain.

    H(t) = (1 - t/T) H0 + (t/T) H1

    H0 = -sum_i sx_i                                  (transverse field)
    H1 = sum_i h_i sz_i + sum_i J_i sz_i sz_{i+1}     (Ising problem)

The chain starts in the ground state of H0 and is evolved with the
Schrodinger equation. For slow sweeps (large T) the state follows the
instantaneous ground state and ends in the ground state of H1; fast sweeps
leave population in excited states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt

from qtut.adapters.qutip.tools import fidelity
from qtut.core.ir.coeffs import LinearRamp
from qtut.core.ir.library import StandardOps
from qtut.core.ir.ops import kron_local, local
from qtut.core.ir.terms import e_term, h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, CompilableModelProto, MaterializeBundle
from qtut.core.sim.types import MEProblemDense
from qtut.engine import SimulationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdiabaticParams:
    n_spins: int = 4
    T: float = 20.0  # sweep duration
    n_steps: int = 201
    seed: int = 1
    # random fields/couplings in [-1, 1] when not given
    fields: Optional[Sequence[float]] = None
    couplings: Optional[Sequence[float]] = None
    n_levels: int = 6  # instantaneous eigenvalues to track
    sweep_times: Sequence[float] = (0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 50.0)

    def ising_parameters(self) -> Tuple[np.ndarray, np.ndarray]:
        rng = np.random.default_rng(self.seed)
        h = rng.uniform(-1.0, 1.0, self.n_spins)
        J = rng.uniform(-1.0, 1.0, self.n_spins - 1)
        if self.fields is not None:
            h = np.asarray(self.fields, dtype=float)
        if self.couplings is not None:
            J = np.asarray(self.couplings, dtype=float)
        if h.shape != (self.n_spins,) or J.shape != (self.n_spins - 1,):
            raise ValueError(
                f"Need {self.n_spins} fields and {self.n_spins - 1} couplings, "
                f"got {h.shape[0]} and {J.shape[0]}"
            )
        return h, J


@dataclass(frozen=True)
class IsingSweepModel(CompilableModelProto):
    p: AdiabaticParams
    T: float

    @property
    def modes(self) -> Modes:
        return Modes.spin_chain(self.p.n_spins)

    def compile_bundle(self) -> CompileBundle:
        n = self.p.n_spins
        h, J = self.p.ising_parameters()
        fade_out = LinearRamp(0.0, self.T, reverse=True)
        fade_in = LinearRamp(0.0, self.T)

        terms = [h_term(-1.0 * local(i, "sx"), fade_out, label=f"H0_x{i}") for i in range(n)]
        terms += [
            h_term(float(h[i]) * local(i, "sz"), fade_in, label=f"H1_z{i}") for i in range(n)
        ]
        terms += [
            h_term(
                float(J[i]) * kron_local([(i, "sz"), (i + 1, "sz")]),
                fade_in,
                label=f"H1_zz{i}",
            )
            for i in range(n - 1)
        ]

        obs = catalog(*[e_term(local(i, "sz"), label=f"sz{i}") for i in range(n)])
        return CompileBundle(modes=self.modes, hamiltonian=catalog(*terms), observables=obs)

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


@dataclass(frozen=True)
class AdiabaticResult:
    tlist: np.ndarray
    energies: np.ndarray  # (n_steps, n_levels) instantaneous spectrum
    occupations: np.ndarray  # (n_steps, n_levels)
    sz: np.ndarray  # (n_spins, n_steps)
    final_fidelity: float
    sweep_times: np.ndarray
    sweep_fidelity: np.ndarray


def _sweep(
    params: AdiabaticParams, T: float, engine: SimulationEngine
) -> Tuple[MEProblemDense, object]:
    model = IsingSweepModel(params, T)
    tlist = np.linspace(0.0, T, params.n_steps)
    problem = engine.compile(model, tlist=tlist)
    psi0 = engine.eigenstates(problem, t_index=0, eigvals=1).ground_state
    res = engine.run(model, tlist=tlist, rho0=psi0, solve_options={"store_states": True})
    return problem, res


def final_fidelity(
    params: AdiabaticParams, T: float, *, engine: Optional[SimulationEngine] = None
) -> float:
    """Overlap of the state after a sweep of duration T with the ground state of H1."""
    engine = engine or SimulationEngine()
    problem, res = _sweep(params, T, engine)
    target = engine.eigenstates(problem, t_index=-1, eigvals=1).ground_state
    return fidelity(res.states[-1], target, problem.dims)


def run_adiabatic(
    params: AdiabaticParams = AdiabaticParams(),
    *,
    engine: Optional[SimulationEngine] = None,
) -> AdiabaticResult:
    engine = engine or SimulationEngine()
    problem, res = _sweep(params, params.T, engine)
    tlist = problem.tlist

    n_levels = min(params.n_levels, problem.D)
    energies = np.zeros((len(tlist), n_levels))
    occupations = np.zeros((len(tlist), n_levels))
    for i, psi in enumerate(res.states):
        spec = engine.eigenstates(problem, t_index=i, eigvals=n_levels)
        energies[i] = spec.energies
        occupations[i] = np.abs(spec.states.conj().T @ psi) ** 2

    target = engine.eigenstates(problem, t_index=-1, eigvals=1).ground_state
    f_final = fidelity(res.states[-1], target, problem.dims)
    logger.info("Adiabatic sweep T=%g: final ground-state fidelity %.4f", params.T, f_final)

    sweep_times = np.asarray(params.sweep_times, dtype=float)
    sweep_fidelity = np.array(
        [final_fidelity(params, float(T), engine=engine) for T in sweep_times]
    )

    return AdiabaticResult(
        tlist=tlist,
        energies=energies,
        occupations=occupations,
        sz=np.vstack([res.expect[f"sz{i}"] for i in range(params.n_spins)]),
        final_fidelity=f_final,
        sweep_times=sweep_times,
        sweep_fidelity=sweep_fidelity,
    )


def plot_adiabatic(res: AdiabaticResult) -> plt.Figure:
    fig, axes = plt.subplots(2, 2, figsize=(12, 8))
    s = res.tlist / res.tlist[-1]

    ax = axes[0, 0]
    for k in range(res.energies.shape[1]):
        ax.plot(s, res.energies[:, k], color="b" if k == 0 else "k", lw=2 if k == 0 else 1)
    ax.set_xlabel("t / T")
    ax.set_ylabel("Eigenenergies")
    ax.set_title("Instantaneous spectrum")

    ax = axes[0, 1]
    for k in range(res.occupations.shape[1]):
        ax.plot(s, res.occupations[:, k], label=f"level {k}")
    ax.set_xlabel("t / T")
    ax.set_ylabel("Occupation probability")
    ax.set_ylim(-0.05, 1.05)
    ax.legend(loc="center right", fontsize="small")

    ax = axes[1, 0]
    for i, sz in enumerate(res.sz):
        ax.plot(s, np.real(sz), label=f"<sz_{i}>")
    ax.set_xlabel("t / T")
    ax.set_ylabel("Magnetization")
    ax.legend(loc="lower left", fontsize="small")

    ax = axes[1, 1]
    ax.semilogx(res.sweep_times, res.sweep_fidelity, "o-")
    ax.set_xlabel("Sweep time T")
    ax.set_ylabel("Final ground-state fidelity")
    ax.set_ylim(-0.05, 1.05)

    fig.tight_layout()
    return fig


def run_default() -> AdiabaticResult:
    return run_adiabatic()


def plot_default(res: AdiabaticResult) -> plt.Figure:
    return plot_adiabatic(res)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    plot_adiabatic(run_adiabatic())
    plt.show()


if __name__ == "__main__":
    main()
