"""
Classical pulse drives on a two-level transition.

Pipeline stages:

- ``PulseDecoder``: ``DriveSpec(payload=PulseDrive)`` -> ``ResolvedDrive``
  with SI floats in ``meta``.
- ``PulseStrengthModel``: samples the complex Rabi coefficient
  ``c(t) = Omega(t) exp(i (phase + detuning * t))`` on the solver grid.
- ``PulseTermEmitter``: emits ``Re(c)/2 * sx + Im(c)/2 * sy`` on the target
  mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, Optional, Sequence, Tuple

import numpy as np

from qtut.core.drives.types import (
    DriveCoefficients,
    DriveSpec,
    DriveTermBundle,
    ResolvedDrive,
)
from qtut.core.ir.coeffs import SampledCoeff, scale_coeff
from qtut.core.ir.ops import local
from qtut.core.ir.terms import h_term
from qtut.core.units import magnitude

logger = logging.getLogger(__name__)

PULSE_SHAPES = ("square", "gaussian")


@dataclass(frozen=True)
class PulseDrive:
    """
    User-facing pulse description (pint quantities or SI floats).

    amplitude: peak Rabi angular frequency (rad/s)
    t0: pulse start for "square", pulse centre for "gaussian" (s)
    width: duration for "square", standard deviation for "gaussian" (s)
    detuning: drive minus transition angular frequency (rad/s)
    phase: drive phase (rad)
    """

    target: Hashable
    amplitude: Any
    t0: Any
    width: Any
    shape: str = "square"
    detuning: Any = 0.0
    phase: float = 0.0


@dataclass(frozen=True)
class PulseDecodeContext:
    """Mode registry used to route transition keys to mode indices."""

    modes: Any


def pulse_area(amplitude_rad_s: float, width_s: float, shape: str) -> float:
    """Integrated Rabi angle of an on-resonance pulse."""
    if shape == "square":
        return amplitude_rad_s * width_s
    if shape == "gaussian":
        return amplitude_rad_s * width_s * np.sqrt(2.0 * np.pi)
    raise ValueError(f"Unknown pulse shape {shape!r}; expected one of {PULSE_SHAPES}")


def envelope(t_s: np.ndarray, *, shape: str, t0_s: float, width_s: float) -> np.ndarray:
    t = np.asarray(t_s, dtype=float)
    if shape == "square":
        return ((t >= t0_s) & (t < t0_s + width_s)).astype(float)
    if shape == "gaussian":
        x = (t - t0_s) / width_s
        return np.exp(-0.5 * x * x)
    raise ValueError(f"Unknown pulse shape {shape!r}; expected one of {PULSE_SHAPES}")


class PulseDecoder:
    def decode(
        self,
        specs: Sequence[DriveSpec],
        *,
        ctx: Optional[PulseDecodeContext] = None,
    ) -> Sequence[ResolvedDrive]:
        out = []
        for i, spec in enumerate(specs):
            p = spec.payload
            if not isinstance(p, PulseDrive):
                raise TypeError(f"Expected PulseDrive payload, got {type(p)!r}")
            if p.shape not in PULSE_SHAPES:
                raise ValueError(
                    f"Unknown pulse shape {p.shape!r}; expected one of {PULSE_SHAPES}"
                )
            width_s = magnitude(p.width, "s")
            if width_s <= 0.0:
                raise ValueError(f"Pulse width must be positive, got {p.width}")
            drive_id = spec.drive_id if spec.drive_id is not None else f"pulse{i}"
            out.append(
                ResolvedDrive(
                    drive_id=drive_id,
                    transition_key=p.target,
                    carrier_omega_rad_s=magnitude(p.detuning, "rad/s"),
                    meta={
                        "shape": p.shape,
                        "amplitude_rad_s": magnitude(p.amplitude, "rad/s"),
                        "t0_s": magnitude(p.t0, "s"),
                        "width_s": width_s,
                        "phase": float(p.phase),
                    },
                )
            )
        return out


class PulseStrengthModel:
    def compute(
        self,
        resolved: Sequence[ResolvedDrive],
        tlist: np.ndarray,
        *,
        time_unit_s: float,
        decode_ctx: Optional[PulseDecodeContext] = None,
    ) -> DriveCoefficients:
        tlist = np.asarray(tlist, dtype=float)
        t_s = tlist * float(time_unit_s)
        coeffs: Dict[Tuple[Hashable, Hashable], np.ndarray] = {}
        areas: Dict[Hashable, float] = {}
        for rd in resolved:
            m = rd.meta
            env = envelope(t_s, shape=m["shape"], t0_s=m["t0_s"], width_s=m["width_s"])
            omega_solver = float(m["amplitude_rad_s"]) * float(time_unit_s)
            detuning = float(rd.carrier_omega_rad_s or 0.0)
            c = omega_solver * env * np.exp(1j * (m["phase"] + detuning * t_s))
            coeffs[(rd.drive_id, rd.transition_key)] = c.astype(complex)
            areas[rd.drive_id] = pulse_area(
                float(m["amplitude_rad_s"]), float(m["width_s"]), m["shape"]
            )
            logger.debug(
                "Pulse %s on %s: area=%.4f rad", rd.drive_id, rd.transition_key,
                areas[rd.drive_id],
            )
        return DriveCoefficients(tlist=tlist, coeffs=coeffs, meta={"pulse_areas": areas})


class PulseTermEmitter:
    def emit_drive_terms(
        self,
        resolved: Sequence[ResolvedDrive],
        coeffs: DriveCoefficients,
        *,
        decode_ctx: Optional[PulseDecodeContext] = None,
    ) -> DriveTermBundle:
        if decode_ctx is None:
            raise ValueError("PulseTermEmitter requires a PulseDecodeContext")
        h_terms = []
        for rd in resolved:
            idx = decode_ctx.modes.index_of(rd.transition_key)
            c = coeffs.get(rd.drive_id, rd.transition_key)
            quadratures = [("x", c.real)]
            if np.any(c.imag != 0.0):
                quadratures.append(("y", c.imag))
            for axis, part in quadratures:
                h_terms.append(
                    h_term(
                        local(idx, "s" + axis),
                        scale_coeff(SampledCoeff(coeffs.tlist, part), 0.5),
                        label=f"H_drive_{axis}[{rd.drive_id}]",
                        drive_id=rd.drive_id,
                    )
                )
        return DriveTermBundle(h_terms=tuple(h_terms), meta=dict(coeffs.meta))
