import pytest

from qtut.core.drives.types import DriveTermBundle
from qtut.core.ir.coeffs import ConstCoeff
from qtut.core.ir.library import BOSON, QUBIT
from qtut.core.ir.ops import local
from qtut.core.ir.terms import TermKind, c_term, e_term, h_term
from qtut.core.model.merge import catalog, merge_bundle_with_drive_terms
from qtut.core.model.modes import Modes
from qtut.core.model.protocols import CompileBundle
from qtut.core.sim.baths import BathSpec, damped_mode_exponents


class TestModes:
    def test_registry(self):
        modes = Modes.of(("cavity", 10, BOSON), ("qubit", 2, QUBIT))
        assert tuple(modes.dims()) == (10, 2)
        assert modes.index_of("qubit") == 1
        assert modes.channels == ("cavity", "qubit")
        assert modes.kinds == (BOSON, QUBIT)

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            Modes.of(("qubit", 2, QUBIT)).index_of("cavity")

    def test_invalid_registries(self):
        with pytest.raises(ValueError):
            Modes.of(("q", 2, QUBIT), ("q", 2, QUBIT))
        with pytest.raises(ValueError):
            Modes.of(("cavity", 0, BOSON))

    def test_spin_chain(self):
        modes = Modes.spin_chain(3)
        assert tuple(modes.dims()) == (2, 2, 2)
        assert modes.index_of("q2") == 2


class TestTerms:
    def test_helpers_set_kind_and_meta(self):
        t = h_term(local(0, "sz"), ConstCoeff(1.0), label="H0", source="test")
        assert t.kind is TermKind.H
        assert t.meta == {"source": "test"}
        assert c_term(local(0, "sm")).kind is TermKind.C
        assert e_term(local(0, "sz"), label="sz").coeff is None


class TestMergeDriveTerms:
    @pytest.fixture
    def bundle(self):
        modes = Modes.of(("qubit", 2, QUBIT))
        bath = BathSpec(local(0, "sx"), damped_mode_exponents(0.1, 1.0, 0.2), label="cav")
        return CompileBundle(
            modes=modes,
            hamiltonian=catalog(h_term(local(0, "sz"), label="H0")),
            baths=(bath,),
            meta={"source": "model", "shared": 1},
        )

    def test_appends_and_creates_catalogs(self, bundle):
        drive = DriveTermBundle(
            h_terms=(h_term(local(0, "sx"), label="H_drive"),),
            e_terms=(e_term(local(0, "proj_e"), label="p"),),
            meta={"shared": 2},
        )
        merged = merge_bundle_with_drive_terms(bundle, drive)
        assert [t.label for t in merged.hamiltonian.all_terms] == ["H0", "H_drive"]
        assert merged.collapse is None
        assert [t.label for t in merged.observables.all_terms] == ["p"]
        assert merged.meta == {"source": "model", "shared": 2}
        assert merged.baths == bundle.baths

    def test_empty_drive_bundle_keeps_catalogs(self, bundle):
        merged = merge_bundle_with_drive_terms(bundle, DriveTermBundle())
        assert merged.hamiltonian is bundle.hamiltonian
        assert merged.meta == bundle.meta

    def test_bundle_without_drive_plumbing_rejects_drives(self, bundle):
        assert not bundle.accepts_drives
