import numpy as np
import pytest

from qtut.adapters.lowrank.solver import LowRankAdapter
from qtut.core.drives import DriveSpec
from qtut.core.sim.audit import AuditOptions
from qtut.engine import SimulationEngine


class TestCompile:
    def test_drives_need_pipeline(self, engine, two_level):
        with pytest.raises(ValueError):
            engine.compile(two_level(), tlist=np.zeros(2), drives=[DriveSpec(payload=None)])

    def test_audit_runs_on_compile(self, two_level, excited):
        engine = SimulationEngine(audit=True, audit_options=AuditOptions(coeff_area=False))
        problem = engine.compile(two_level(), tlist=np.linspace(0.0, 1.0, 5), rho0=excited)
        assert problem.D == 2


class TestSpectrum:
    def test_two_level_energies(self, engine, two_level):
        spec = engine.spectrum(two_level(w=3.0))
        assert np.allclose(spec.energies, [-1.5, 1.5])
        assert spec.gap == pytest.approx(3.0)
        # ground state is |g> = [1, 0] up to phase
        assert abs(spec.ground_state[0]) == pytest.approx(1.0)

    def test_lowest_eigvals_only(self, engine, two_level):
        spec = engine.spectrum(two_level(), eigvals=1)
        assert spec.energies.shape == (1,)
        assert spec.states.shape == (2, 1)

    def test_adapter_without_eigensolver(self, two_level):
        engine = SimulationEngine(adapter=LowRankAdapter())
        with pytest.raises(TypeError):
            engine.spectrum(two_level())


class TestRun:
    def test_default_adapter_is_qutip(self, engine, two_level, excited):
        tlist = np.linspace(0.0, 2.0, 21)
        res = engine.run(two_level(gamma=0.5), tlist=tlist, rho0=excited)
        assert res.meta["backend"] == "qutip"
        assert np.allclose(res.expect["p_excited"], np.exp(-0.5 * tlist), atol=1e-5)
