from dataclasses import dataclass

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from qtut.core.ir.coeffs import ConstCoeff
from qtut.core.ir.library import QUBIT, StandardOps
from qtut.core.ir.ops import local
from qtut.core.ir.terms import c_term, e_term, h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, CompilableModelProto, MaterializeBundle
from qtut.engine import SimulationEngine


@dataclass(frozen=True)
class TwoLevelModel(CompilableModelProto):
    """H = w/2 sz, optional decay sqrt(gamma) sm."""

    w: float = 1.0
    gamma: float = 0.0

    @property
    def modes(self) -> Modes:
        return Modes.of(("qubit", 2, QUBIT))

    def compile_bundle(self) -> CompileBundle:
        c_ops = []
        if self.gamma > 0.0:
            c_ops.append(c_term(np.sqrt(self.gamma) * local(0, "sm"), label="C_decay"))
        return CompileBundle(
            modes=self.modes,
            hamiltonian=catalog(h_term(local(0, "sz"), ConstCoeff(0.5 * self.w), label="H0")),
            collapse=catalog(*c_ops),
            observables=catalog(
                e_term(local(0, "proj_e"), label="p_excited"),
                e_term(local(0, "sm"), label="sm"),
            ),
        )

    def materialize_bundle(self) -> MaterializeBundle:
        return MaterializeBundle(ops=StandardOps(self.modes.kinds))


@pytest.fixture
def two_level():
    return TwoLevelModel


@pytest.fixture
def engine():
    return SimulationEngine()


@pytest.fixture
def excited():
    return np.array([0.0, 1.0], dtype=complex)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    import matplotlib.pyplot as plt

    plt.close("all")
