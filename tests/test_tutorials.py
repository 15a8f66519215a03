import logging

import numpy as np
import pytest
from matplotlib.figure import Figure

from qtut.core.units import Q
from qtut.tutorials import TUTORIALS, load
from qtut.tutorials.adiabatic import AdiabaticParams, plot_adiabatic, run_adiabatic
from qtut.tutorials.dicke import DickeParams, plot_dicke, run_dicke
from qtut.tutorials.kerr import KerrParams, coherent_amplitude, plot_default, plot_kerr, run_kerr
from qtut.tutorials.lowrank import LowRankParams, plot_lowrank, run_lowrank
from qtut.tutorials.rabi import (
    DrivenQubitParams,
    JaynesCummingsParams,
    default_cavity_params,
    make_pulse,
    plot_rabi,
    run_driven_rabi,
    run_vacuum_rabi,
    thermal_photons,
)


class TestRegistry:
    @pytest.mark.parametrize("name", TUTORIALS)
    def test_modules_expose_defaults(self, name):
        module = load(name)
        assert callable(module.run_default)
        assert callable(module.plot_default)
        assert callable(module.main)

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            load("hydrogen")


class TestDicke:
    @pytest.fixture(scope="class")
    def result(self):
        params = DickeParams(n_atoms=2, n_cavity=10, n_g=5, wigner_g=(0.1, 1.0), n_x=21)
        return run_dicke(params)

    def test_normal_phase_at_weak_coupling(self, result):
        assert result.jz[0] == pytest.approx(-1.0, abs=1e-3)
        assert result.n_photons[0] < 1e-3
        assert result.entropy[0] < 1e-2

    def test_superradiant_at_strong_coupling(self, result):
        assert result.g_critical == pytest.approx(0.5)
        assert result.n_photons[-1] > 0.5
        assert result.jz[-1] > result.jz[0]
        assert result.entropy[-1] > 0.5
        assert np.all(result.gap >= 0.0)

    def test_wigner_and_plot(self, result):
        assert set(result.wigners) == {0.1, 1.0}
        assert result.wigners[0.1].shape == (21, 21)
        assert isinstance(plot_dicke(result), Figure)


class TestAdiabatic:
    @pytest.fixture(scope="class")
    def params(self):
        return AdiabaticParams(
            n_spins=2,
            T=50.0,
            n_steps=101,
            fields=(1.0, -0.5),
            couplings=(0.7,),
            n_levels=4,
            sweep_times=(0.01, 50.0),
        )

    def test_slow_sweep_reaches_ground_state(self, params):
        res = run_adiabatic(params)
        assert res.final_fidelity > 0.95
        assert res.occupations[0, 0] == pytest.approx(1.0, abs=1e-6)
        assert res.energies.shape == (101, 4)
        assert np.all(np.diff(res.energies, axis=1) >= -1e-9)
        # fast sweep leaves |++>, a quarter overlap with any product state
        assert res.sweep_fidelity[0] < 0.35
        assert res.sweep_fidelity[1] > 0.95
        assert isinstance(plot_adiabatic(res), Figure)

    def test_wrong_number_of_fields(self):
        with pytest.raises(ValueError):
            AdiabaticParams(n_spins=3, fields=(1.0,)).ising_parameters()

    def test_random_fields_reproducible(self):
        a = AdiabaticParams(seed=7).ising_parameters()
        b = AdiabaticParams(seed=7).ising_parameters()
        assert np.allclose(a[0], b[0]) and np.allclose(a[1], b[1])


class TestKerr:
    @pytest.fixture(scope="class")
    def result(self):
        return run_kerr(KerrParams(n_cavity=20, alpha=1.5, n_steps=101, snapshots=(0.0, 0.5)))

    def test_photon_statistics_conserved(self, result):
        assert np.ptp(result.n) < 1e-4
        assert np.ptp(result.var_n) < 1e-3
        assert result.n[0] == pytest.approx(2.25, abs=1e-3)

    def test_collapse_and_revival(self, result):
        params = KerrParams(alpha=1.5)
        assert np.allclose(result.a, coherent_amplitude(params, result.tlist), atol=1e-3)
        mid = len(result.tlist) // 2
        assert abs(result.a[mid]) < 0.02
        assert abs(result.a[-1]) == pytest.approx(1.5, abs=1e-3)

    def test_cat_state_wigner_negative(self, result):
        t_cat = sorted(result.wigners)[1]
        assert t_cat == pytest.approx(np.pi, abs=0.05)
        assert result.wigners[t_cat].min() < -0.05
        assert isinstance(plot_kerr(result), Figure)

    def test_loss_spoils_revival(self):
        params = KerrParams(n_cavity=15, alpha=1.5, kappa=0.2, n_steps=51, snapshots=(1.0,))
        res = run_kerr(params)
        assert abs(res.a[-1]) < 1.0
        assert res.n[-1] < res.n[0]

    def test_default_plot_overlays_lossy_run(self, result):
        lossy = run_kerr(KerrParams(n_cavity=20, alpha=1.5, kappa=0.2, n_steps=101, snapshots=()))
        fig = plot_default((result, lossy))
        assert len(fig.axes[1].lines) == 3

    def test_snapshots_on_same_grid_time_kept_once(self, caplog):
        params = KerrParams(n_cavity=8, alpha=1.0, n_steps=5, snapshots=(0.0, 0.01, 0.5))
        with caplog.at_level(logging.WARNING, logger="qtut.tutorials.kerr"):
            res = run_kerr(params)
        assert sorted(res.wigners) == pytest.approx([0.0, np.pi])
        assert "already taken" in caplog.text


class TestLowRank:
    def test_matches_full_solution(self):
        res = run_lowrank(LowRankParams(n_spins=3, t_max=3.0, n_steps=31))
        assert res.max_error < 1e-3
        assert res.dim == 8
        assert res.rank[0] >= 1
        assert res.rank[-1] <= res.dim
        assert res.mz_full[0] == pytest.approx(1.0)
        assert isinstance(plot_lowrank(res), Figure)

    def test_default_chain_stays_below_full_rank(self):
        res = run_lowrank(LowRankParams())
        assert res.dim == 128
        assert res.rank[-1] < res.dim
        assert res.max_error < 1e-2
        assert np.all(res.trace > 0.99)


class TestRabi:
    def test_vacuum_rabi_matches_closed_form(self):
        params = JaynesCummingsParams(kappa=0.0, gamma=0.0, n_cavity=5, t_max=10.0)
        res = run_vacuum_rabi(params)
        assert np.allclose(res.p_atom, np.cos(params.g * res.tlist) ** 2, atol=1e-4)

    def test_losses_damp_oscillations(self):
        res = run_vacuum_rabi(JaynesCummingsParams(n_cavity=5, t_max=50.0, n_steps=101))
        assert res.p_atom[-1] + res.n_cavity[-1] < 0.5

    def test_thermal_photons_via_pint(self):
        n = thermal_photons(Q(5.0, "GHz"), Q(50.0, "mK"))
        assert 0.0 < n < 0.01
        assert thermal_photons(Q(5.0, "GHz"), Q(0.0, "K")) == 0.0

    def test_default_cavity_has_thermal_bath(self):
        params = default_cavity_params()
        assert params.n_th == pytest.approx(thermal_photons(Q(5.0, "GHz"), Q(50.0, "mK")))
        assert params.n_th > 0.0

    def test_pi_pulse_inverts_qubit(self):
        params = DrivenQubitParams(t_max=Q(30.0, "ns"), n_steps=201)
        assert params.pi_pulse_width().to("ns").magnitude == pytest.approx(20.0)
        res = run_driven_rabi(params, widths=[Q(10.0, "ns"), Q(20.0, "ns"), Q(40.0, "ns")])
        assert res.p_excited[-1] > 0.99
        assert res.p_final[0] == pytest.approx(0.5, abs=0.02)
        assert res.p_final[1] > 0.99
        assert res.p_final[2] < 0.01
        vacuum = run_vacuum_rabi(JaynesCummingsParams(n_cavity=4))
        assert isinstance(plot_rabi(vacuum, res), Figure)

    def test_gaussian_pi_pulse(self):
        params = DrivenQubitParams(pulse_shape="gaussian", t_max=Q(70.0, "ns"), n_steps=701)
        width = params.pi_pulse_width()
        res = run_driven_rabi(params, pulse=make_pulse(params, width), widths=[width])
        assert res.p_excited[-1] > 0.99
        assert res.p_final[0] > 0.99
