"""
Kerr oscillator.

    H = chi/2 a^dag a^dag a a

H is diagonal in the Fock basis, so photon number and its variance are
conserved. A coherent state spreads in phase: <a> collapses and revives with
period 2 pi / chi, and at t = pi / chi the state is a Schrodinger cat, a
superposition of two coherent states of opposite phase. Photon loss (kappa)
destroys the revival.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from qtut.adapters.qutip.tools import coherent_ket, wigner
from qtut.core.ir.coeffs import ConstCoeff
from qtut.core.ir.library import BOSON, StandardOps
from qtut.core.ir.ops import local, product
from qtut.core.ir.terms import c_term, e_term, h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, CompilableModelProto, MaterializeBundle
from qtut.core.sim.eval import nearest_index
from qtut.engine import SimulationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KerrParams:
    n_cavity: int = 30
    chi: float = 1.0
    alpha: complex = 2.0
    kappa: float = 0.0  # photon loss rate
    n_steps: int = 201
    periods: float = 1.0  # evolve for periods * 2 pi / chi
    # snapshot times as fractions of the revival period
    snapshots: Sequence[float] = (0.0, 0.25, 0.5, 1.0)
    x_extent: float = 4.0
    n_x: int = 101

    @property
    def revival_time(self) -> float:
        return 2.0 * np.pi / self.chi


@dataclass(frozen=True)
class KerrModel(CompilableModelProto):
    p: KerrParams

    @property
    def modes(self) -> Modes:
        return Modes.of(("cavity", self.p.n_cavity, BOSON))

    def compile_bundle(self) -> CompileBundle:
        p = self.p
        a, adag, n = local(0, "a"), local(0, "adag"), local(0, "n")
        kerr = product((adag, adag, a, a))

        c_ops = []
        if p.kappa > 0.0:
            c_ops.append(c_term(np.sqrt(p.kappa) * a, label="C_loss"))

        obs = catalog(
            e_term(n, label="n"),
            e_term(n @ n, label="n2"),
            e_term(a, label="a"),
        )
        return CompileBundle(
            modes=self.modes,
            hamiltonian=catalog(h_term(kerr, ConstCoeff(0.5 * p.chi), label="H_kerr")),
            collapse=catalog(*c_ops),
            observables=obs,
        )

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


@dataclass(frozen=True)
class KerrResult:
    tlist: np.ndarray
    n: np.ndarray
    var_n: np.ndarray
    a: np.ndarray  # complex <a>(t)
    xvec: np.ndarray
    wigners: Dict[float, np.ndarray]  # keyed by snapshot time


def coherent_amplitude(params: KerrParams, tlist: np.ndarray) -> np.ndarray:
    """Closed form <a>(t) for a lossless Kerr oscillator started in |alpha>."""
    alpha = complex(params.alpha)
    return alpha * np.exp(abs(alpha) ** 2 * (np.exp(-1j * params.chi * tlist) - 1.0))


def run_kerr(
    params: KerrParams = KerrParams(),
    *,
    engine: Optional[SimulationEngine] = None,
) -> KerrResult:
    engine = engine or SimulationEngine()
    model = KerrModel(params)
    tlist = np.linspace(0.0, params.periods * params.revival_time, params.n_steps)
    psi0 = coherent_ket(params.n_cavity, params.alpha)

    res = engine.run(model, tlist=tlist, rho0=psi0, solve_options={"store_states": True})
    n = np.real(res.expect["n"])
    var_n = np.real(res.expect["n2"]) - n**2

    xvec = np.linspace(-params.x_extent, params.x_extent, params.n_x)
    wigners: Dict[float, np.ndarray] = {}
    dims = model.modes.dims()
    for frac in params.snapshots:
        i = nearest_index(tlist, frac * params.revival_time)
        t = float(tlist[i])
        if t in wigners:
            logger.warning(
                "Snapshot at %g periods falls on grid time %.4g, already taken; skipped",
                frac, t,
            )
            continue
        wigners[t] = wigner(res.states[i], dims, 0, xvec)

    logger.info(
        "Kerr chi=%g kappa=%g: <n> drift %.2e, |<a>| at end %.3f",
        params.chi, params.kappa, float(np.ptp(n)), abs(res.expect["a"][-1]),
    )
    return KerrResult(
        tlist=tlist, n=n, var_n=var_n, a=np.asarray(res.expect["a"]), xvec=xvec, wigners=wigners
    )


def plot_kerr(res: KerrResult, lossy: Optional[KerrResult] = None) -> plt.Figure:
    """Photon statistics, |<a>| and Wigner snapshots; `lossy` adds its |<a>| for comparison."""
    n_w = max(len(res.wigners), 2)
    fig = plt.figure(figsize=(3 * n_w, 7))

    ax = fig.add_subplot(2, 2, 1)
    ax.plot(res.tlist, res.n, label="<n>")
    ax.plot(res.tlist, res.var_n, label="Var(n)")
    ax.set_xlabel("Time")
    ax.legend(loc="best")

    ax = fig.add_subplot(2, 2, 2)
    ax.plot(res.tlist, np.abs(res.a), label="|<a>|")
    ax.plot(res.tlist, np.real(res.a), ls="--", label="Re <a>")
    if lossy is not None:
        ax.plot(lossy.tlist, np.abs(lossy.a), label="|<a>| with loss")
    ax.set_xlabel("Time")
    ax.legend(loc="best")

    for k, (t, W) in enumerate(sorted(res.wigners.items())):
        ax = fig.add_subplot(2, n_w, n_w + k + 1)
        lim = float(np.max(np.abs(W))) or 1.0
        ax.contourf(res.xvec, res.xvec, W, 100, cmap="RdBu_r", vmin=-lim, vmax=lim)
        ax.set_title(f"t = {t:.2f}")
        ax.set_aspect("equal")

    fig.tight_layout()
    return fig


def run_default() -> tuple[KerrResult, KerrResult]:
    return run_kerr(), run_kerr(KerrParams(kappa=0.05))


def plot_default(results: tuple[KerrResult, KerrResult]) -> plt.Figure:
    return plot_kerr(*results)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    plot_default(run_default())
    plt.show()


if __name__ == "__main__":
    main()
