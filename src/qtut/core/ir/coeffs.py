"""
Time-dependent term coefficients.

A coefficient is anything with `eval(tlist) -> complex array` on the solver
time grid. Frequencies inside a coefficient are in solver units, except for
CallableCoeffUnits, which also receives the time unit in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class CoeffProto(Protocol):
    def eval(self, tlist: np.ndarray) -> np.ndarray: ...


def _on_grid(values: Any, tlist: np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=complex).reshape(len(tlist))


@dataclass(frozen=True)
class ConstCoeff:
    value: complex

    def eval(self, tlist: np.ndarray) -> np.ndarray:
        return np.full(len(tlist), self.value, dtype=complex)


@dataclass(frozen=True)
class CallableCoeff:
    fn: Callable[[np.ndarray], np.ndarray]

    def eval(self, tlist: np.ndarray) -> np.ndarray:
        return _on_grid(self.fn(tlist), tlist)


@dataclass(frozen=True)
class CallableCoeffUnits:
    """fn(tlist, time_unit_s), for envelopes written in seconds."""

    fn: Callable[[np.ndarray, float], np.ndarray]

    def eval(self, tlist: np.ndarray, time_unit_s: float) -> np.ndarray:
        return _on_grid(self.fn(tlist, float(time_unit_s)), tlist)


@dataclass(frozen=True)
class LinearRamp:
    """
    Sweep coefficient s(t) = clip((t - t_start) / duration, 0, 1).

    `reverse=True` gives 1 - s(t).
    """

    t_start: float
    duration: float
    reverse: bool = False

    def eval(self, tlist: np.ndarray) -> np.ndarray:
        if self.duration <= 0.0:
            raise ValueError(f"LinearRamp duration must be positive, got {self.duration}")
        s = np.clip((np.asarray(tlist, dtype=float) - self.t_start) / self.duration, 0.0, 1.0)
        return (1.0 - s if self.reverse else s).astype(complex)


@dataclass(frozen=True)
class SampledCoeff:
    """
    Samples `values` at times `t`. Real and imaginary parts are interpolated
    linearly and held at the end values outside [t[0], t[-1]].
    """

    t: np.ndarray
    values: np.ndarray

    def eval(self, tlist: np.ndarray) -> np.ndarray:
        tt = np.asarray(tlist, dtype=float)
        v = np.asarray(self.values, dtype=complex)
        return np.interp(tt, self.t, v.real) + 1j * np.interp(tt, self.t, v.imag)


def scale_coeff(coeff: Optional[CoeffProto], factor: complex) -> CoeffProto:
    """factor * coeff; a missing coefficient counts as 1."""
    if coeff is None:
        return ConstCoeff(factor)
    return CallableCoeff(lambda t: factor * coeff.eval(t))


def eval_coeff_any(coeff: Any, tlist: np.ndarray, *, time_unit_s: float) -> np.ndarray:
    """Evaluate any supported coefficient (or None, meaning 1) on `tlist`."""
    if coeff is None:
        return np.ones(len(tlist), dtype=complex)
    if isinstance(coeff, CallableCoeffUnits):
        return coeff.eval(tlist, time_unit_s)
    if isinstance(coeff, CoeffProto):
        return _on_grid(coeff.eval(tlist), tlist)
    if callable(coeff):
        return _on_grid(coeff(tlist), tlist)
    raise TypeError(f"Unsupported coeff type: {type(coeff)!r}")
