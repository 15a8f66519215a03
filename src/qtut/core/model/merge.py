from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Sequence, Tuple

from qtut.core.drives.types import DriveTermBundle
from qtut.core.ir.terms import Term
from qtut.core.model.protocols import CompileBundle, TermCatalogProto


@dataclass(frozen=True)
class FrozenTermCatalog:
    terms: Tuple[Term, ...] = ()

    @property
    def all_terms(self) -> Sequence[Term]:
        return self.terms

    def extended(self, extra: Sequence[Term]) -> "FrozenTermCatalog":
        return FrozenTermCatalog(self.terms + tuple(extra))


def catalog(*terms: Term) -> FrozenTermCatalog:
    return FrozenTermCatalog(tuple(terms))


def _extend(base: Optional[TermCatalogProto], extra: Sequence[Term]):
    # an empty contribution leaves the catalog object untouched
    if not extra:
        return base
    existing = tuple(base.all_terms) if base is not None else ()
    return catalog(*existing).extended(extra)


def merge_bundle_with_drive_terms(
    bundle: CompileBundle, drive_terms: DriveTermBundle
) -> CompileBundle:
    """
    Append pulse-generated terms to a model's bundle.

    Missing collapse/observable catalogs are created when the drive adds to
    them. Baths and drive plumbing carry over; `drive_terms.meta` wins over
    the bundle meta on shared keys.
    """
    meta: Optional[Dict[str, Any]] = None
    if bundle.meta or drive_terms.meta:
        meta = {**(bundle.meta or {}), **drive_terms.meta}
    return replace(
        bundle,
        hamiltonian=_extend(bundle.hamiltonian, drive_terms.h_terms),
        collapse=_extend(bundle.collapse, drive_terms.c_terms),
        observables=_extend(bundle.observables, drive_terms.e_terms),
        meta=meta,
    )
