from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping, Optional, Sequence, Tuple

import numpy as np

from qtut.core.ir.terms import Term

TransitionKey = Hashable
DriveId = Hashable


@dataclass(frozen=True)
class DriveSpec:
    """
    What the user hands to `SimulationEngine.run(..., drives=[...])`.

    `payload` is whatever the model's decoder understands (a `PulseDrive`
    for the pulse pipeline); the engine only routes it.
    """

    payload: Any
    drive_id: Optional[DriveId] = None
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedDrive:
    """
    Decoded drive: which transition it addresses plus SI parameters.

    carrier_omega_rad_s is the drive detuning from the addressed transition
    in the rotating frame; `meta` holds shape parameters for the strength
    model.
    """

    drive_id: DriveId
    transition_key: TransitionKey
    carrier_omega_rad_s: Optional[float] = None
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DriveCoefficients:
    """
    Complex drive coefficients sampled on the solver grid, in solver units,
    keyed by (drive_id, transition_key).
    """

    tlist: np.ndarray
    coeffs: Mapping[Tuple[DriveId, TransitionKey], np.ndarray] = field(
        default_factory=dict
    )
    meta: Mapping[str, Any] = field(default_factory=dict)

    def get(self, drive_id: DriveId, transition_key: TransitionKey) -> np.ndarray:
        return self.coeffs[(drive_id, transition_key)]


@dataclass(frozen=True)
class DriveTermBundle:
    """Terms a drive contributes, merged into the model's catalogs."""

    h_terms: Sequence[Term] = ()
    c_terms: Sequence[Term] = ()
    e_terms: Sequence[Term] = ()
    meta: Mapping[str, Any] = field(default_factory=dict)
