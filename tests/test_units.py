import numpy as np
import pytest

from qtut.core.units import (
    Q,
    UnitSystem,
    as_quantity,
    hbar,
    kB,
    magnitude,
    magnitudes,
    thermal_occupation,
)


class TestQuantities:
    def test_magnitude_converts(self):
        assert magnitude(Q(1.0, "us"), "ns") == pytest.approx(1000.0)
        assert magnitude(Q(25.0, "MHz"), "Hz") == pytest.approx(25e6)

    def test_bare_number_takes_requested_units(self):
        q = as_quantity(3.0, "ns")
        assert magnitude(q, "ps") == pytest.approx(3000.0)

    def test_incompatible_units_raise_type_error(self):
        with pytest.raises(TypeError):
            magnitude(Q(1.0, "s"), "m")

    def test_magnitudes_vectorized(self):
        arr = magnitudes(Q(np.array([1.0, 2.0]), "ms"), "s")
        assert np.allclose(arr, [1e-3, 2e-3])
        assert np.allclose(magnitudes([1.0, 2.0], "s"), [1.0, 2.0])


class TestThermalOccupation:
    def test_zero_temperature(self):
        assert thermal_occupation(Q(1e9, "rad/s"), Q(0.0, "K")) == 0.0

    def test_microwave_cavity_at_50mK(self):
        omega = Q(2 * np.pi * 5e9, "rad/s")
        T = Q(50.0, "mK")
        x = magnitude(hbar * omega / (kB * T), "dimensionless")
        n = thermal_occupation(omega, T)
        assert n == pytest.approx(1.0 / np.expm1(x))
        assert 0.0 < n < 0.01

    def test_classical_limit(self):
        # kT >> hbar omega: n ~ kT / (hbar omega) - 1/2
        omega = 1e6
        T = 10.0
        x = magnitude(hbar, "J*s") * omega / (magnitude(kB, "J/K") * T)
        assert thermal_occupation(omega, T) == pytest.approx(1.0 / x - 0.5, rel=1e-3)

    def test_deep_quantum_limit_is_empty(self):
        omega = Q(2 * np.pi * 5e9, "rad/s")
        with np.errstate(over="raise"):
            assert thermal_occupation(omega, Q(1.0, "uK")) == 0.0
            assert thermal_occupation(omega, Q(10.0, "mK")) > 0.0


class TestUnitSystem:
    def test_time_round_trip(self):
        units = UnitSystem(time_unit_s=1e-9)
        assert units.t_to_solver(Q(5.0, "ns")) == pytest.approx(5.0)
        assert units.t_from_solver(5.0) == pytest.approx(5e-9)

    def test_frequencies_and_rates(self):
        units = UnitSystem(time_unit_s=1e-9)
        assert units.frequency_to_omega_solver(Q(1.0, "GHz")) == pytest.approx(2 * np.pi)
        assert units.omega_to_solver(Q(1e9, "rad/s")) == pytest.approx(1.0)
        assert units.rate_to_solver(Q(1.0, "1/us")) == pytest.approx(1e-3)
