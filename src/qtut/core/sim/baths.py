from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np


@dataclass(frozen=True)
class BathExponents:
    """
    Exponential decomposition of a bath correlation function, t >= 0:

        C(t) = sum_k ck_real[k] exp(-vk_real[k] t)
               + 1j * sum_k ck_imag[k] exp(-vk_imag[k] t)

    Same convention as qutip.solver.heom.BosonicBath.
    """

    ck_real: Tuple[complex, ...]
    vk_real: Tuple[complex, ...]
    ck_imag: Tuple[complex, ...]
    vk_imag: Tuple[complex, ...]

    def __post_init__(self) -> None:
        if len(self.ck_real) != len(self.vk_real):
            raise ValueError("ck_real and vk_real must have same length")
        if len(self.ck_imag) != len(self.vk_imag):
            raise ValueError("ck_imag and vk_imag must have same length")

    def correlation(self, t: np.ndarray) -> np.ndarray:
        t = np.asarray(t, dtype=float)
        out = np.zeros(t.shape, dtype=complex)
        for c, v in zip(self.ck_real, self.vk_real):
            out += c * np.exp(-v * t)
        for c, v in zip(self.ck_imag, self.vk_imag):
            out += 1j * c * np.exp(-v * t)
        return out


def damped_mode_exponents(g: float, omega: float, kappa: float) -> BathExponents:
    """
    Bath seen by a system coupled as g * Q (x) (a + a^dag) to a cavity mode
    of frequency omega with Lindblad photon loss rate kappa, at T = 0.

    C(t) = g^2 exp(-(kappa/2 + i omega) t) splits into
    Re C = g^2 e^{-kappa t/2} cos(omega t) and Im C = -g^2 e^{-kappa t/2} sin(omega t).
    """
    if kappa <= 0.0:
        raise ValueError(f"kappa must be positive for a decaying bath, got {kappa}")
    g2 = float(g) ** 2
    v_plus = 0.5 * kappa + 1j * omega
    v_minus = 0.5 * kappa - 1j * omega
    return BathExponents(
        ck_real=(0.5 * g2, 0.5 * g2),
        vk_real=(v_plus, v_minus),
        ck_imag=(0.5j * g2, -0.5j * g2),
        vk_imag=(v_minus, v_plus),
    )


@dataclass(frozen=True)
class BathSpec:
    """Model-level bath: coupling operator expression plus exponents."""

    coupling: Any
    exponents: BathExponents
    label: str = ""
