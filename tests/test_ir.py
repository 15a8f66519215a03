import numpy as np
import pytest

from qtut.core.ir.coeffs import (
    CallableCoeff,
    CallableCoeffUnits,
    ConstCoeff,
    LinearRamp,
    SampledCoeff,
    eval_coeff_any,
    scale_coeff,
)
from qtut.core.ir.library import (
    BOSON,
    QUBIT,
    SPIN,
    StandardOps,
    basis_vector,
    boson_ops,
    product_ket,
    qubit_ops,
    spin_ops,
)
from qtut.core.ir.materialize import materialize_op_expr
from qtut.core.ir.ops import (
    EmbeddedKron,
    LocalSymbolOp,
    OpExpr,
    SymbolOp,
    atom,
    kron_local,
    local,
    product,
    summation,
)


@pytest.fixture
def cavity_qubit():
    dims = (4, 2)
    return dims, StandardOps((BOSON, QUBIT))


class TestLocalLibrary:
    def test_boson_commutator_below_cutoff(self):
        ops = boson_ops(5)
        comm = ops["a"] @ ops["adag"] - ops["adag"] @ ops["a"]
        # truncation only spoils the last Fock level
        assert np.allclose(np.diag(comm)[:-1], 1.0)
        assert np.allclose(np.diag(ops["n"]), np.arange(5))

    def test_qubit_conventions(self):
        ops = qubit_ops()
        g, e = basis_vector(2, 0), basis_vector(2, 1)
        assert np.allclose(ops["sz"] @ e, e)
        assert np.allclose(ops["sz"] @ g, -g)
        assert np.allclose(ops["sm"] @ e, g)
        assert np.allclose(ops["sp"] @ g, e)
        assert np.allclose(ops["sx"] @ ops["sy"] - ops["sy"] @ ops["sx"], 2j * ops["sz"])

    def test_spin_algebra(self):
        ops = spin_ops(5)  # j = 2
        assert np.allclose(np.diag(ops["jz"]).real, [2, 1, 0, -1, -2])
        comm = ops["jp"] @ ops["jm"] - ops["jm"] @ ops["jp"]
        assert np.allclose(comm, 2 * ops["jz"])
        j2 = ops["jx"] @ ops["jx"] + ops["jy"] @ ops["jy"] + ops["jz"] @ ops["jz"]
        assert np.allclose(j2, 6.0 * np.eye(5))

    def test_unknown_symbol_and_kind(self):
        with pytest.raises(KeyError):
            StandardOps((QUBIT,)).resolve_local("a", 0, 2)
        with pytest.raises(KeyError):
            StandardOps(("fermion",)).resolve_local("c", 0, 2)
        with pytest.raises(ValueError):
            StandardOps((QUBIT,)).resolve_local("sz", 0, 3)

    def test_registered_full_space_symbol(self):
        ctx = StandardOps((SPIN,), symbols={"parity": lambda dims: np.diag([1, -1, 1])})
        mat = materialize_op_expr(atom(SymbolOp("parity")), dims=(3,), ctx=ctx)
        assert np.allclose(np.diag(mat), [1, -1, 1])
        with pytest.raises(KeyError):
            materialize_op_expr(atom(SymbolOp("missing")), dims=(3,), ctx=ctx)


class TestMaterialize:
    def test_local_embedding_order(self, cavity_qubit):
        dims, ctx = cavity_qubit
        a = materialize_op_expr(local(0, "a"), dims=dims, ctx=ctx)
        sz = materialize_op_expr(local(1, "sz"), dims=dims, ctx=ctx)
        assert np.allclose(a, np.kron(boson_ops(4)["a"], np.eye(2)))
        assert np.allclose(sz, np.kron(np.eye(4), qubit_ops()["sz"]))

    def test_kron_local(self, cavity_qubit):
        dims, ctx = cavity_qubit
        mat = materialize_op_expr(kron_local([(1, "sm"), (0, "adag")]), dims=dims, ctx=ctx)
        assert np.allclose(mat, np.kron(boson_ops(4)["adag"], qubit_ops()["sm"]))

    def test_expression_sugar(self, cavity_qubit):
        dims, ctx = cavity_qubit
        a = local(0, "a")
        adag = materialize_op_expr(a.dag(), dims=dims, ctx=ctx)
        assert np.allclose(adag, materialize_op_expr(local(0, "adag"), dims=dims, ctx=ctx))

        n = materialize_op_expr(a.dag() @ a, dims=dims, ctx=ctx)
        assert np.allclose(n, materialize_op_expr(local(0, "n"), dims=dims, ctx=ctx))

        zero = materialize_op_expr(a - a, dims=dims, ctx=ctx)
        assert np.allclose(zero, 0.0)

        x = materialize_op_expr(a + a.dag(), dims=dims, ctx=ctx)
        assert np.allclose(x, materialize_op_expr(local(0, "x"), dims=dims, ctx=ctx))
        assert (a + a).atom is None

    def test_numpy_scalar_scales_expression(self, cavity_qubit):
        dims, ctx = cavity_qubit
        expr = np.sqrt(2.0) * local(1, "sm")
        assert isinstance(expr, OpExpr)
        mat = materialize_op_expr(expr, dims=dims, ctx=ctx)
        assert np.allclose(mat, np.sqrt(2.0) * np.kron(np.eye(4), qubit_ops()["sm"]))

    def test_bad_embedding(self, cavity_qubit):
        dims, ctx = cavity_qubit
        with pytest.raises(IndexError):
            materialize_op_expr(local(2, "sz"), dims=dims, ctx=ctx)
        with pytest.raises(ValueError):
            materialize_op_expr(kron_local([(0, "a"), (0, "a")]), dims=dims, ctx=ctx)
        with pytest.raises(ValueError):
            EmbeddedKron((0, 1), (LocalSymbolOp("a"),))

    def test_empty_sum_rejected(self):
        with pytest.raises(ValueError):
            summation([])
        with pytest.raises(ValueError):
            product([])


class TestKets:
    def test_product_ket(self):
        psi = product_ket((3, 2), (1, 1))
        assert psi.shape == (6,)
        assert psi[3] == 1.0
        assert np.isclose(np.linalg.norm(psi), 1.0)

    def test_product_ket_errors(self):
        with pytest.raises(ValueError):
            product_ket((3, 2), (0,))
        with pytest.raises(IndexError):
            product_ket((3, 2), (3, 0))


class TestCoefficients:
    def test_linear_ramp(self):
        t = np.array([0.0, 5.0, 10.0, 20.0])
        assert np.allclose(LinearRamp(0.0, 10.0).eval(t), [0.0, 0.5, 1.0, 1.0])
        assert np.allclose(LinearRamp(0.0, 10.0, reverse=True).eval(t), [1.0, 0.5, 0.0, 0.0])
        with pytest.raises(ValueError):
            LinearRamp(0.0, 0.0).eval(t)

    def test_sampled_coeff_interpolates_complex(self):
        c = SampledCoeff(np.array([0.0, 1.0]), np.array([0.0, 2.0 + 2.0j]))
        assert np.allclose(c.eval(np.array([0.5, 2.0])), [1.0 + 1.0j, 2.0 + 2.0j])

    def test_eval_coeff_any(self):
        t = np.linspace(0.0, 1.0, 3)
        assert np.allclose(eval_coeff_any(None, t, time_unit_s=1.0), 1.0)
        assert np.allclose(eval_coeff_any(ConstCoeff(2j), t, time_unit_s=1.0), 2j)
        assert np.allclose(eval_coeff_any(lambda x: x**2, t, time_unit_s=1.0), t**2)
        units = CallableCoeffUnits(lambda x, u: x * u)
        assert np.allclose(eval_coeff_any(units, t, time_unit_s=1e-9), t * 1e-9)
        with pytest.raises(TypeError):
            eval_coeff_any("cos(t)", t, time_unit_s=1.0)

    def test_scale_coeff(self):
        t = np.linspace(0.0, 1.0, 3)
        assert np.allclose(scale_coeff(None, 3.0).eval(t), 3.0)
        assert np.allclose(scale_coeff(CallableCoeff(lambda x: x), -1.0).eval(t), -t)
