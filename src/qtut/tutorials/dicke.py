"""
Dicke model: N two-level atoms collectively coupled to one cavity mode.

    H = omega a^dag a + omega0 Jz + g / sqrt(N) (a + a^dag)(J+ + J-)

Above the critical coupling g_c = sqrt(omega * omega0) / 2 the ground state
becomes superradiant: the cavity acquires a macroscopic photon number, the
collective spin tilts away from Jz = -N/2, and the cavity and spins become
entangled. The ground state is found with the eigensolver for a sweep of g.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from qtut.adapters.qutip.tools import entropy_vn, wigner
from qtut.core.ir.coeffs import ConstCoeff
from qtut.core.ir.library import BOSON, SPIN, StandardOps
from qtut.core.ir.ops import kron_local, local
from qtut.core.ir.terms import e_term, h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, CompilableModelProto, MaterializeBundle
from qtut.core.sim.eval import expect_state
from qtut.engine import SimulationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DickeParams:
    n_atoms: int = 4
    omega: float = 1.0  # cavity frequency
    omega0: float = 1.0  # atom frequency
    n_cavity: int = 16  # cavity fock states
    g_min: float = 0.01
    g_max: float = 1.0
    n_g: int = 20
    wigner_g: Sequence[float] = (0.1, 0.5, 1.0)
    x_extent: float = 5.0
    n_x: int = 101

    @property
    def g_critical(self) -> float:
        return 0.5 * np.sqrt(self.omega * self.omega0)

    def g_values(self) -> np.ndarray:
        return np.linspace(self.g_min, self.g_max, self.n_g)


@dataclass(frozen=True)
class DickeModel(CompilableModelProto):
    p: DickeParams
    g: float

    @property
    def modes(self) -> Modes:
        # collective spin j = N/2 has 2j + 1 = N + 1 levels
        return Modes.of(("cavity", self.p.n_cavity, BOSON), ("spins", self.p.n_atoms + 1, SPIN))

    def compile_bundle(self) -> CompileBundle:
        p = self.p
        cav, spins = 0, 1
        coupling = kron_local([(cav, "x"), (spins, "jp")]) + kron_local(
            [(cav, "x"), (spins, "jm")]
        )
        ham = catalog(
            h_term(local(cav, "n"), ConstCoeff(p.omega), label="H_cavity"),
            h_term(local(spins, "jz"), ConstCoeff(p.omega0), label="H_spins"),
            h_term(coupling, ConstCoeff(self.g / np.sqrt(p.n_atoms)), label="H_coupling"),
        )
        obs = catalog(
            e_term(local(cav, "n"), label="n"),
            e_term(local(spins, "jz"), label="jz"),
        )
        return CompileBundle(modes=self.modes, hamiltonian=ham, observables=obs)

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


@dataclass(frozen=True)
class DickeResult:
    g_values: np.ndarray
    g_critical: float
    n_photons: np.ndarray
    jz: np.ndarray
    entropy: np.ndarray
    gap: np.ndarray
    xvec: np.ndarray
    wigners: Dict[float, np.ndarray]


def ground_state(
    params: DickeParams, g: float, *, engine: Optional[SimulationEngine] = None
):
    """Compiled problem and its two lowest eigenpairs at coupling g."""
    engine = engine or SimulationEngine()
    problem = engine.compile(DickeModel(params, g), tlist=np.zeros(1))
    return problem, engine.eigenstates(problem, eigvals=2)


def run_dicke(
    params: DickeParams = DickeParams(),
    *,
    engine: Optional[SimulationEngine] = None,
) -> DickeResult:
    engine = engine or SimulationEngine()
    g_values = params.g_values()
    xvec = np.linspace(-params.x_extent, params.x_extent, params.n_x)

    n_photons = np.zeros(len(g_values))
    jz = np.zeros(len(g_values))
    entropy = np.zeros(len(g_values))
    gap = np.zeros(len(g_values))

    for i, g in enumerate(g_values):
        problem, spec = ground_state(params, float(g), engine=engine)
        psi = spec.ground_state
        ops = {t.label: t.op for t in problem.e_terms}
        n_photons[i] = expect_state(ops["n"], psi).real
        jz[i] = expect_state(ops["jz"], psi).real
        entropy[i] = entropy_vn(psi, problem.dims, keep=0)
        gap[i] = spec.gap

    wigners: Dict[float, np.ndarray] = {}
    for g in params.wigner_g:
        problem, spec = ground_state(params, float(g), engine=engine)
        wigners[float(g)] = wigner(spec.ground_state, problem.dims, 0, xvec)

    logger.info(
        "Dicke N=%d: <n> from %.3g to %.3g across g_c=%.3f",
        params.n_atoms, n_photons[0], n_photons[-1], params.g_critical,
    )
    return DickeResult(
        g_values=g_values,
        g_critical=params.g_critical,
        n_photons=n_photons,
        jz=jz,
        entropy=entropy,
        gap=gap,
        xvec=xvec,
        wigners=wigners,
    )


def plot_dicke(res: DickeResult) -> plt.Figure:
    fig = plt.figure(figsize=(12, 7))
    n_w = max(len(res.wigners), 1)

    ax = fig.add_subplot(2, 3, 1)
    ax.plot(res.g_values, res.n_photons, lw=2)
    ax.axvline(res.g_critical, color="k", ls="--", lw=1)
    ax.set_xlabel("Coupling strength g")
    ax.set_ylabel("Cavity occupation <n>")

    ax = fig.add_subplot(2, 3, 2)
    ax.plot(res.g_values, res.jz, lw=2)
    ax.axvline(res.g_critical, color="k", ls="--", lw=1)
    ax.set_xlabel("Coupling strength g")
    ax.set_ylabel("<Jz>")

    ax = fig.add_subplot(2, 3, 3)
    ax.plot(res.g_values, res.entropy, lw=2)
    ax.axvline(res.g_critical, color="k", ls="--", lw=1)
    ax.set_xlabel("Coupling strength g")
    ax.set_ylabel("Entanglement entropy (bits)")

    for k, (g, W) in enumerate(sorted(res.wigners.items())):
        ax = fig.add_subplot(2, n_w, n_w + k + 1)
        lim = float(np.max(np.abs(W))) or 1.0
        ax.contourf(res.xvec, res.xvec, W, 100, cmap="RdBu_r", vmin=-lim, vmax=lim)
        ax.set_title(f"g = {g:.2f}")
        ax.set_xlabel("x")
        ax.set_ylabel("p")

    fig.tight_layout()
    return fig


def run_default() -> DickeResult:
    return run_dicke()


def plot_default(res: DickeResult) -> plt.Figure:
    return plot_dicke(res)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    plot_dicke(run_dicke())
    plt.show()


if __name__ == "__main__":
    main()
