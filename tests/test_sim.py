import logging
from dataclasses import replace

import numpy as np
import pytest

from qtut.core.ir.coeffs import LinearRamp
from qtut.core.ir.library import QUBIT, StandardOps
from qtut.core.ir.ops import local
from qtut.core.ir.terms import h_term
from qtut.core.model.merge import catalog
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle, MaterializeBundle
from qtut.core.sim.audit import AuditOptions, audit_problem_dense
from qtut.core.sim.baths import BathExponents, BathSpec, damped_mode_exponents
from qtut.core.sim.compile import compile_to_dense
from qtut.core.sim.eval import expect_state, hamiltonian_at, make_time_func, nearest_index
from qtut.core.sim.types import CompiledTermDense, SpectrumResult


def sweep_problem(rho0=None, baths=()):
    modes = Modes.of(("qubit", 2, QUBIT))
    bundle = CompileBundle(
        modes=modes,
        hamiltonian=catalog(
            h_term(local(0, "sx"), LinearRamp(0.0, 10.0, reverse=True), label="Hx"),
            h_term(local(0, "sz"), LinearRamp(0.0, 10.0), label="Hz"),
        ),
        baths=baths,
    )
    return compile_to_dense(
        bundle=bundle,
        material=MaterializeBundle(ops=StandardOps(modes.kinds)),
        tlist=np.linspace(0.0, 10.0, 11),
        time_unit_s=1.0,
        rho0=rho0,
    )


class TestCompile:
    def test_dense_problem(self, excited):
        problem = sweep_problem(rho0=excited)
        assert problem.dims == (2,)
        assert problem.D == 2
        assert problem.is_ket
        assert [t.label for t in problem.h_terms] == ["Hx", "Hz"]
        assert problem.h_terms[0].op.shape == (2, 2)

    def test_density_matrix_rho0(self, excited):
        problem = sweep_problem(rho0=np.outer(excited, excited))
        assert not problem.is_ket

    def test_bad_rho0_shape(self):
        with pytest.raises(ValueError):
            sweep_problem(rho0=np.ones(3))

    def test_baths_materialized(self):
        bath = BathSpec(local(0, "sx"), damped_mode_exponents(0.1, 1.0, 0.2), label="cav")
        problem = sweep_problem(baths=(bath,))
        (compiled,) = problem.baths
        assert compiled.label == "cav"
        assert np.allclose(compiled.op, [[0, 1], [1, 0]])


class TestEval:
    def test_hamiltonian_at_follows_ramp(self):
        problem = sweep_problem()
        assert np.allclose(hamiltonian_at(problem, 0), [[0, 1], [1, 0]])
        assert np.allclose(hamiltonian_at(problem, 5), 0.5 * np.array([[-1, 1], [1, 1]]))
        assert np.allclose(hamiltonian_at(problem, -1), [[-1, 0], [0, 1]])

    def test_time_funcs(self):
        tlist = np.array([0.0, 1.0, 2.0])
        coeff = np.array([0.0, 1.0j, 2.0])
        lin = make_time_func(tlist, coeff)
        assert lin(0.5, None) == pytest.approx(0.5j)
        assert lin(5.0, None) == pytest.approx(2.0)
        near = make_time_func(tlist, coeff, interp="nearest")
        assert near(0.9, None) == pytest.approx(1.0j)
        with pytest.raises(ValueError):
            make_time_func(tlist, coeff, interp="cubic")

    def test_nearest_index(self):
        tlist = np.linspace(0.0, 1.0, 11)
        assert nearest_index(tlist, -1.0) == 0
        assert nearest_index(tlist, 0.44) == 4
        assert nearest_index(tlist, 0.46) == 5
        assert nearest_index(tlist, 5.0) == 10

    def test_expect_state(self, excited):
        sz = np.diag([-1.0, 1.0])
        assert expect_state(sz, excited) == pytest.approx(1.0)
        rho = np.eye(2) / 2
        assert expect_state(sz, rho) == pytest.approx(0.0)


class TestAudit:
    def test_report(self, excited):
        problem = sweep_problem(rho0=excited)
        report = audit_problem_dense(problem)
        assert report["D"] == 2
        assert report["H"]["count"] == 2
        assert report["H"]["terms"][0]["op_is_hermitian"]
        assert report["H"]["terms"][0]["coeff_area"] == pytest.approx(5.0)
        assert report["rho0"]["norm"] == pytest.approx(1.0)

    def test_non_hermitian_flagged(self):
        problem = sweep_problem()
        bad = CompiledTermDense(op=np.array([[0, 1], [0, 0]], dtype=complex), label="sm")
        problem = replace(problem, h_terms=problem.h_terms + (bad,))
        report = audit_problem_dense(problem)
        assert report["H"]["terms"][-1]["op_is_hermitian"] is False

    def test_shape_mismatch_raises(self):
        problem = sweep_problem()
        bad = CompiledTermDense(op=np.eye(3, dtype=complex), label="wrong")
        with pytest.raises(ValueError):
            audit_problem_dense(replace(problem, h_terms=(bad,)))

    def test_unnormalized_state_warns(self, caplog):
        problem = sweep_problem(rho0=np.array([1.0, 1.0]))
        with caplog.at_level(logging.WARNING, logger="qtut.core.sim.audit"):
            audit_problem_dense(problem)
        assert "not normalized" in caplog.text
        caplog.clear()
        with caplog.at_level(logging.WARNING, logger="qtut.core.sim.audit"):
            audit_problem_dense(problem, options=AuditOptions(check_rho0=False))
        assert caplog.text == ""

    def test_baths_in_report(self):
        bath = BathSpec(local(0, "sx"), damped_mode_exponents(0.1, 1.0, 0.2), label="cav")
        report = audit_problem_dense(sweep_problem(baths=(bath,)))
        assert report["baths"] == [
            {"label": "cav", "op_fro_norm": pytest.approx(np.sqrt(2.0)), "n_exp": 4}
        ]


class TestBaths:
    def test_damped_mode_correlation(self):
        g, omega, kappa = 0.3, 2.0, 0.5
        t = np.linspace(0.0, 10.0, 50)
        exp = damped_mode_exponents(g, omega, kappa)
        expected = g**2 * np.exp(-(0.5 * kappa + 1j * omega) * t)
        assert np.allclose(exp.correlation(t), expected)

    def test_invalid_exponents(self):
        with pytest.raises(ValueError):
            damped_mode_exponents(0.1, 1.0, 0.0)
        with pytest.raises(ValueError):
            BathExponents(ck_real=(1.0,), vk_real=(), ck_imag=(), vk_imag=())


class TestSpectrumResult:
    def test_gap(self):
        res = SpectrumResult(energies=np.array([-1.0, 0.5]), states=np.eye(2))
        assert res.gap == pytest.approx(1.5)
        assert np.allclose(res.ground_state, [1.0, 0.0])
        with pytest.raises(ValueError):
            SpectrumResult(energies=np.array([0.0]), states=np.ones((2, 1))).gap
