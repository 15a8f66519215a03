"""
Unit handling for tutorial parameters.

Physical inputs (pulse lengths, Rabi frequencies, T1/T2, temperatures) are
pint quantities from one shared registry. They are lowered to plain floats
in "solver units" at the model boundary, after which nothing carries units.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pint
from pint import DimensionalityError

ureg = pint.UnitRegistry()
Quantity = ureg.Quantity

hbar = Quantity(1.054571817e-34, "J*s")
kB = Quantity(1.380649e-23, "J/K")


def Q(value: Any, units: str) -> pint.Quantity:
    return Quantity(value, units)


def as_quantity(x: Any, units: str) -> pint.Quantity:
    """
    `x` converted to `units`. Plain numbers are taken to already be in
    `units`; a quantity of the wrong dimension raises TypeError.
    """
    if not hasattr(x, "to"):
        return Quantity(float(x), units)
    try:
        return x.to(units)
    except DimensionalityError as e:
        raise TypeError(f"Incompatible units: got {x.units}, expected {units}") from e


def magnitude(x: Any, units: str) -> float:
    return float(as_quantity(x, units).magnitude)


def magnitudes(x: Any, units: str) -> np.ndarray:
    """Like magnitude() for a quantity array or a sequence of scalars."""
    if hasattr(x, "to"):
        return np.asarray(as_quantity(x, units).magnitude, dtype=float)
    return np.array([magnitude(v, units) for v in x], dtype=float)


# exp(x) overflows a float64 just above x = 709
_MAX_EXPONENT = 700.0


def thermal_occupation(omega: Any, temperature: Any) -> float:
    """
    Bose-Einstein occupation 1 / (exp(hbar omega / kB T) - 1).

    omega in rad/s and temperature in K when given as plain numbers.
    Zero (or negative) temperature gives an empty mode, and so does
    hbar omega / kB T beyond the float range of exp.
    """
    T = magnitude(temperature, "K")
    if T <= 0.0:
        return 0.0
    x = magnitude(hbar * as_quantity(omega, "rad/s") / (kB * Quantity(T, "K")), "dimensionless")
    if x > _MAX_EXPONENT:
        return 0.0
    return float(1.0 / np.expm1(x))


@dataclass(frozen=True)
class UnitSystem:
    """
    Solver time is t / time_unit_s; angular frequencies and rates are
    multiplied by time_unit_s. With time_unit_s = 1e-9 a 5 ns pulse is
    t = 5 and a 1 GHz cyclic frequency is omega = 2 pi.
    """

    time_unit_s: float

    def t_to_solver(self, t_s: Any) -> float:
        return magnitude(t_s, "s") / self.time_unit_s

    def t_from_solver(self, t_solver: float) -> float:
        return float(t_solver) * self.time_unit_s

    def omega_to_solver(self, omega_rad_s: Any) -> float:
        return magnitude(omega_rad_s, "rad/s") * self.time_unit_s

    def rate_to_solver(self, gamma_1_s: Any) -> float:
        return magnitude(gamma_1_s, "1/s") * self.time_unit_s

    def frequency_to_omega_solver(self, f_hz: Any) -> float:
        return 2.0 * np.pi * magnitude(f_hz, "Hz") * self.time_unit_s
