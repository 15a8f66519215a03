from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Optional, Sequence, Tuple

from qtut.core.ir.library import BOSON, QUBIT, SPIN
from qtut.core.model.protocols import ModeRegistryProto


@dataclass(frozen=True)
class Modes(ModeRegistryProto):
    """
    Ordered registry of subsystems: key, local dimension and operator kind.

    >>> modes = Modes.of(("cavity", 10, "boson"), ("qubit", 2, "qubit"))
    >>> modes.dims(), modes.index_of("qubit")
    ((10, 2), 1)
    """

    keys: Tuple[Hashable, ...]
    _dims: Tuple[int, ...]
    kinds: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not (len(self.keys) == len(self._dims) == len(self.kinds)):
            raise ValueError("Modes keys, dims and kinds must have same length")
        if len(set(self.keys)) != len(self.keys):
            raise ValueError(f"Mode keys must be unique: {self.keys}")
        if any(int(d) < 1 for d in self._dims):
            raise ValueError(f"Mode dims must be positive: {self._dims}")

    @classmethod
    def of(cls, *entries: Tuple[Hashable, int, str]) -> "Modes":
        return cls(
            keys=tuple(e[0] for e in entries),
            _dims=tuple(int(e[1]) for e in entries),
            kinds=tuple(str(e[2]) for e in entries),
        )

    @classmethod
    def spin_chain(cls, n: int, *, prefix: str = "q") -> "Modes":
        return cls.of(*[(f"{prefix}{i}", 2, QUBIT) for i in range(int(n))])

    def dims(self) -> Sequence[int]:
        return self._dims

    def index_of(self, key: Hashable) -> int:
        try:
            return self.keys.index(key)
        except ValueError:
            raise KeyError(key) from None

    @property
    def channels(self) -> Optional[Sequence[Hashable]]:
        return self.keys


__all__ = ["Modes", "BOSON", "QUBIT", "SPIN"]
