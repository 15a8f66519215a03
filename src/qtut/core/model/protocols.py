from __future__ import annotations

from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Hashable,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from qtut.core.drives.protocols import (
    DriveDecodeContextProto,
    DriveDecoderProto,
    DriveStrengthModelProto,
    DriveTermEmitterProto,
)
from qtut.core.ir.protocols import OpMaterializeContextProto

if TYPE_CHECKING:
    from qtut.core.ir.terms import Term
    from qtut.core.sim.baths import BathSpec


@runtime_checkable
class ModeRegistryProto(Protocol):
    """Ordered subsystems; the tensor product follows this order."""

    def dims(self) -> Sequence[int]:
        """Local Hilbert-space dimension per mode, e.g. [16, 5] for (cavity, spins)."""
        ...

    def index_of(self, key: Hashable) -> int: ...

    @property
    def channels(self) -> Optional[Sequence[Hashable]]:
        """Mode keys in tensor order, for logs and audits."""
        ...


@runtime_checkable
class TermCatalogProto(Protocol):
    @property
    def all_terms(self) -> Sequence["Term"]: ...


@dataclass(frozen=True)
class CompileBundle:
    """
    Everything the compiler needs from a model, in solver units.

    Only `modes` and `hamiltonian` are mandatory. The four drive_* slots
    are used together: a model that accepts pulses fills all of them.
    `baths` is read by the HEOM adapter only; other adapters reject it.
    """

    modes: ModeRegistryProto
    hamiltonian: TermCatalogProto
    collapse: Optional[TermCatalogProto] = None
    observables: Optional[TermCatalogProto] = None
    baths: Sequence["BathSpec"] = ()

    drive_decode_ctx: Optional[DriveDecodeContextProto] = None
    drive_decoder: Optional[DriveDecoderProto] = None
    drive_strength: Optional[DriveStrengthModelProto] = None
    drive_emitter: Optional[DriveTermEmitterProto] = None

    meta: Optional[Mapping[str, Any]] = None

    @property
    def accepts_drives(self) -> bool:
        return None not in (self.drive_decoder, self.drive_strength, self.drive_emitter)


@dataclass(frozen=True)
class MaterializeBundle:
    """Backend-side half of a model: how symbols become matrices."""

    ops: OpMaterializeContextProto
    meta: Optional[Mapping[str, Any]] = None


@runtime_checkable
class CompilableModelProto(Protocol):
    """
    Anything with these two methods can be run by SimulationEngine.

    compile_bundle() is called on every run and should only assemble terms;
    matrix work belongs behind materialize_bundle().
    """

    def compile_bundle(self) -> CompileBundle: ...

    def materialize_bundle(self) -> MaterializeBundle: ...
