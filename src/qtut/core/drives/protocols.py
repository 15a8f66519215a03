"""
The three stages a drive goes through before it becomes Hamiltonian terms:

    decode:  DriveSpec payloads   -> ResolvedDrive (SI floats)
    compute: ResolvedDrive        -> DriveCoefficients on the solver grid
    emit:    coefficients         -> DriveTermBundle

A model opts in by putting one object per stage (and a decode context) in
its CompileBundle.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from qtut.core.drives.types import (
    DriveCoefficients,
    DriveSpec,
    DriveTermBundle,
    ResolvedDrive,
)


@runtime_checkable
class DriveDecodeContextProto(Protocol):
    """Model-owned data shared by all stages, e.g. the mode registry."""

    ...


@runtime_checkable
class DriveDecoderProto(Protocol):
    def decode(
        self,
        specs: Sequence[DriveSpec],
        *,
        ctx: Optional[DriveDecodeContextProto] = None,
    ) -> Sequence[ResolvedDrive]: ...


@runtime_checkable
class DriveStrengthModelProto(Protocol):
    def compute(
        self,
        resolved: Sequence[ResolvedDrive],
        tlist: np.ndarray,
        *,
        time_unit_s: float,
        decode_ctx: Optional[DriveDecodeContextProto] = None,
    ) -> DriveCoefficients: ...


@runtime_checkable
class DriveTermEmitterProto(Protocol):
    def emit_drive_terms(
        self,
        resolved: Sequence[ResolvedDrive],
        coeffs: DriveCoefficients,
        *,
        decode_ctx: Optional[DriveDecodeContextProto] = None,
    ) -> DriveTermBundle: ...
