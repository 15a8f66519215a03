from qtut.core.drives.types import (
    DriveSpec,
    ResolvedDrive,
    DriveCoefficients,
    DriveTermBundle,
)
from qtut.core.drives.protocols import (
    DriveDecodeContextProto,
    DriveDecoderProto,
    DriveStrengthModelProto,
    DriveTermEmitterProto,
)
from qtut.core.drives.pulses import (
    PulseDrive,
    PulseDecodeContext,
    PulseDecoder,
    PulseStrengthModel,
    PulseTermEmitter,
)

__all__ = [
    "DriveSpec",
    "ResolvedDrive",
    "DriveCoefficients",
    "DriveTermBundle",
    "DriveDecodeContextProto",
    "DriveDecoderProto",
    "DriveStrengthModelProto",
    "DriveTermEmitterProto",
    "PulseDrive",
    "PulseDecodeContext",
    "PulseDecoder",
    "PulseStrengthModel",
    "PulseTermEmitter",
]
