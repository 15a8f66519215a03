"""
Rabi oscillations.

Part 1, vacuum Rabi oscillations: an excited atom in an empty cavity
(Jaynes-Cummings model) swaps its excitation back and forth with the cavity
field at frequency 2g, damped by cavity loss kappa, atomic decay gamma and
thermal photons n_th.

Part 2, driven Rabi flopping: a qubit driven by a classical resonant pulse.
The pulse is given in laboratory units (MHz, ns) and goes through the drive
pipeline; a pulse of area pi inverts the qubit and sweeping the pulse length
traces out the Rabi curve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from qtut.core.drives.pulses import (
    PulseDecodeContext,
    PulseDecoder,
    PulseDrive,
    PulseStrengthModel,
    PulseTermEmitter,
)
from qtut.core.drives.types import DriveSpec
from qtut.core.ir.coeffs import ConstCoeff
from qtut.core.ir.library import BOSON, QUBIT, StandardOps, product_ket
from qtut.core.ir.ops import kron_local, local
from qtut.core.ir.terms import c_term, e_term, h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, CompilableModelProto, MaterializeBundle
from qtut.core.units import Q, UnitSystem, magnitude, magnitudes, thermal_occupation
from qtut.engine import SimulationEngine

logger = logging.getLogger(__name__)


# ----------------------------
# Vacuum Rabi oscillations
# ----------------------------


@dataclass(frozen=True)
class JaynesCummingsParams:
    wc: float = 1.0 * 2 * np.pi  # cavity frequency
    wa: float = 1.0 * 2 * np.pi  # atom frequency
    g: float = 0.05 * 2 * np.pi  # coupling strength
    kappa: float = 0.005  # cavity dissipation rate
    gamma: float = 0.05  # atom dissipation rate
    n_th: float = 0.0  # thermal photons in the cavity bath
    n_cavity: int = 15  # number of cavity fock states
    use_rwa: bool = True
    t_max: float = 25.0
    n_steps: int = 101


def thermal_photons(cavity_frequency: Any, temperature: Any) -> float:
    """Mean bath photon number for a cavity at `cavity_frequency` (Hz)."""
    omega = 2.0 * np.pi * magnitude(cavity_frequency, "Hz")
    return thermal_occupation(Q(omega, "rad/s"), temperature)


@dataclass(frozen=True)
class JaynesCummingsModel(CompilableModelProto):
    p: JaynesCummingsParams

    @property
    def modes(self) -> Modes:
        return Modes.of(("cavity", self.p.n_cavity, BOSON), ("atom", 2, QUBIT))

    def compile_bundle(self) -> CompileBundle:
        p = self.p
        cav, atom = 0, 1

        if p.use_rwa:
            # g (a^dag sm + a sp)
            coupling = kron_local([(cav, "adag"), (atom, "sm")]) + kron_local(
                [(cav, "a"), (atom, "sp")]
            )
        else:
            # g (a + a^dag)(sm + sp)
            coupling = kron_local([(cav, "x"), (atom, "sx")])

        ham = catalog(
            h_term(local(cav, "n"), ConstCoeff(p.wc), label="H_cavity"),
            h_term(local(atom, "proj_e"), ConstCoeff(p.wa), label="H_atom"),
            h_term(coupling, ConstCoeff(p.g), label="H_coupling"),
        )

        # zero rates are left out
        c_ops = []
        rate = p.kappa * (1 + p.n_th)
        if rate > 0.0:
            c_ops.append(c_term(np.sqrt(rate) * local(cav, "a"), label="C_cavity_loss"))
        rate = p.kappa * p.n_th
        if rate > 0.0:
            c_ops.append(c_term(np.sqrt(rate) * local(cav, "adag"), label="C_cavity_gain"))
        rate = p.gamma
        if rate > 0.0:
            c_ops.append(c_term(np.sqrt(rate) * local(atom, "sm"), label="C_atom_decay"))

        obs = catalog(
            e_term(local(cav, "n"), label="n_cavity"),
            e_term(local(atom, "proj_e"), label="p_atom"),
        )
        return CompileBundle(
            modes=self.modes, hamiltonian=ham, collapse=catalog(*c_ops), observables=obs
        )

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


@dataclass(frozen=True)
class VacuumRabiResult:
    tlist: np.ndarray
    n_cavity: np.ndarray
    p_atom: np.ndarray


def run_vacuum_rabi(
    params: JaynesCummingsParams = JaynesCummingsParams(),
    *,
    engine: Optional[SimulationEngine] = None,
) -> VacuumRabiResult:
    engine = engine or SimulationEngine()
    model = JaynesCummingsModel(params)
    # start with an excited atom in an empty cavity
    psi0 = product_ket(model.modes.dims(), (0, 1))
    tlist = np.linspace(0.0, params.t_max, params.n_steps)
    res = engine.run(model, tlist=tlist, rho0=psi0)
    return VacuumRabiResult(
        tlist=tlist, n_cavity=res.expect["n_cavity"], p_atom=res.expect["p_atom"]
    )


# ----------------------------
# Driven Rabi flopping
# ----------------------------


@dataclass(frozen=True)
class DrivenQubitParams:
    """Laboratory-unit parameters; the solver runs in ns."""

    rabi_frequency: Any = field(default_factory=lambda: Q(25.0, "MHz"))
    detuning: Any = field(default_factory=lambda: Q(0.0, "MHz"))
    t1: Any = field(default_factory=lambda: Q(20.0, "us"))
    t_phi: Optional[Any] = None
    pulse_shape: str = "square"
    t_max: Any = field(default_factory=lambda: Q(60.0, "ns"))
    n_steps: int = 601
    time_unit_s: float = 1e-9

    @property
    def units(self) -> UnitSystem:
        return UnitSystem(time_unit_s=self.time_unit_s)

    def pi_pulse_width(self) -> Any:
        """Square pulse length with area pi (gaussian: its sigma)."""
        omega = 2.0 * np.pi * magnitude(self.rabi_frequency, "Hz")
        width = np.pi / omega
        if self.pulse_shape == "gaussian":
            width /= np.sqrt(2.0 * np.pi)
        return Q(width, "s")


@dataclass(frozen=True)
class DrivenQubitModel(CompilableModelProto):
    """
    Qubit in the frame rotating at the drive frequency:
    H = -detuning/2 * sz + drive terms emitted by the pulse pipeline,
    with energy relaxation (t1) and pure dephasing (t_phi).
    """

    p: DrivenQubitParams

    @property
    def modes(self) -> Modes:
        return Modes.of(("qubit", 2, QUBIT))

    def compile_bundle(self) -> CompileBundle:
        p = self.p
        units = p.units
        delta = units.frequency_to_omega_solver(p.detuning)

        ham = catalog(
            h_term(local(0, "sz"), ConstCoeff(-0.5 * delta), label="H_detuning"),
        )

        c_ops = []
        if p.t1 is not None:
            gamma1 = units.rate_to_solver(1.0 / as_seconds(p.t1))
            c_ops.append(c_term(np.sqrt(gamma1) * local(0, "sm"), label="C_relax"))
        if p.t_phi is not None:
            gamma_phi = units.rate_to_solver(1.0 / as_seconds(p.t_phi))
            c_ops.append(
                c_term(np.sqrt(0.5 * gamma_phi) * local(0, "sz"), label="C_dephase")
            )

        return CompileBundle(
            modes=self.modes,
            hamiltonian=ham,
            collapse=catalog(*c_ops),
            observables=catalog(e_term(local(0, "proj_e"), label="p_excited")),
            drive_decode_ctx=PulseDecodeContext(self.modes),
            drive_decoder=PulseDecoder(),
            drive_strength=PulseStrengthModel(),
            drive_emitter=PulseTermEmitter(),
        )

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


def as_seconds(x: Any) -> Any:
    return Q(magnitude(x, "s"), "s")


def make_pulse(params: DrivenQubitParams, width: Any, t0: Any = None) -> DriveSpec:
    """Resonant pulse of the configured shape, starting at t0 (square) or centred there."""
    if t0 is None:
        t0 = Q(0.0, "s") if params.pulse_shape == "square" else 4.0 * as_seconds(width)
    omega = Q(2.0 * np.pi * magnitude(params.rabi_frequency, "Hz"), "rad/s")
    return DriveSpec(
        payload=PulseDrive(
            target="qubit",
            amplitude=omega,
            t0=t0,
            width=width,
            shape=params.pulse_shape,
        ),
        drive_id="rabi",
    )


@dataclass(frozen=True)
class DrivenRabiResult:
    t_ns: np.ndarray
    p_excited: np.ndarray
    widths_ns: np.ndarray
    p_final: np.ndarray


def run_driven_rabi(
    params: DrivenQubitParams = DrivenQubitParams(),
    *,
    pulse: Optional[DriveSpec] = None,
    widths: Optional[Sequence[Any]] = None,
    engine: Optional[SimulationEngine] = None,
) -> DrivenRabiResult:
    """
    Time trace of one pulse (default: a pi pulse) plus final excited-state
    population for a sweep of square pulse lengths.
    """
    engine = engine or SimulationEngine()
    model = DrivenQubitModel(params)
    units = params.units
    tlist = np.linspace(0.0, units.t_to_solver(params.t_max), params.n_steps)
    psi0 = product_ket(model.modes.dims(), (0,))

    pulse = pulse or make_pulse(params, params.pi_pulse_width())
    res = engine.run(
        model, tlist=tlist, time_unit_s=units.time_unit_s, rho0=psi0, drives=[pulse]
    )
    t_ns = tlist * units.time_unit_s / 1e-9

    if widths is None:
        pi_width_s = magnitude(params.pi_pulse_width(), "s")
        widths = [Q(w, "s") for w in np.linspace(0.0, 4.0 * pi_width_s, 41)[1:]]

    p_final = []
    for w in widths:
        w_solver = units.t_to_solver(w)
        # a short tail after the pulse so the final sample sits outside it
        t_end = 1.05 * w_solver if params.pulse_shape == "square" else 8.4 * w_solver
        t_sweep = np.linspace(0.0, t_end, 201)
        r = engine.run(
            model,
            tlist=t_sweep,
            time_unit_s=units.time_unit_s,
            rho0=psi0,
            drives=[make_pulse(params, w)],
        )
        p_final.append(float(r.expect["p_excited"][-1]))
    widths_ns = magnitudes(widths, "ns")
    logger.info("Driven Rabi: %d pulse lengths up to %.1f ns", len(widths_ns), widths_ns[-1])

    return DrivenRabiResult(
        t_ns=t_ns,
        p_excited=res.expect["p_excited"],
        widths_ns=widths_ns,
        p_final=np.asarray(p_final),
    )


def plot_rabi(vacuum: VacuumRabiResult, driven: DrivenRabiResult) -> plt.Figure:
    fig, axes = plt.subplots(1, 3, figsize=(15, 4))

    ax = axes[0]
    ax.plot(vacuum.tlist, vacuum.n_cavity, label="Cavity")
    ax.plot(vacuum.tlist, vacuum.p_atom, label="Atom excited state")
    ax.set_xlabel("Time")
    ax.set_ylabel("Occupation probability")
    ax.set_title("Vacuum Rabi oscillations")
    ax.legend(loc="upper right")

    ax = axes[1]
    ax.plot(driven.t_ns, driven.p_excited)
    ax.set_xlabel("t (ns)")
    ax.set_ylabel("P_e")
    ax.set_ylim(-0.05, 1.05)
    ax.set_title("Driven qubit, single pulse")

    ax = axes[2]
    ax.plot(driven.widths_ns, driven.p_final, "o-", ms=3)
    ax.set_xlabel("pulse length (ns)")
    ax.set_ylabel("P_e after pulse")
    ax.set_ylim(-0.05, 1.05)
    ax.set_title("Rabi curve")

    fig.tight_layout()
    return fig


def default_cavity_params() -> JaynesCummingsParams:
    """Default cavity-atom parameters with the bath of a 5 GHz cavity at 50 mK."""
    n_th = thermal_photons(Q(5.0, "GHz"), Q(50.0, "mK"))
    logger.info("Thermal photons at 50 mK: %.2e", n_th)
    return JaynesCummingsParams(n_th=n_th)


def run_default() -> tuple[VacuumRabiResult, DrivenRabiResult]:
    return run_vacuum_rabi(default_cavity_params()), run_driven_rabi()


def plot_default(results: tuple[VacuumRabiResult, DrivenRabiResult]) -> plt.Figure:
    return plot_rabi(*results)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    plot_default(run_default())
    plt.show()


if __name__ == "__main__":
    main()
