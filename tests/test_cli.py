from types import SimpleNamespace

import matplotlib.pyplot as plt
import pytest

import qtut.__main__ as cli
from qtut.tutorials import TUTORIALS


def fake_tutorial():
    def plot_default(result):
        fig, ax = plt.subplots()
        ax.plot(result)
        return fig

    return SimpleNamespace(run_default=lambda: [0.0, 1.0], plot_default=plot_default)


class TestCli:
    def test_list(self, capsys):
        assert cli.main(["list"]) == 0
        assert capsys.readouterr().out.split() == list(TUTORIALS)

    def test_run_writes_figures(self, tmp_path, monkeypatch):
        loaded = []

        def load(name):
            loaded.append(name)
            return fake_tutorial()

        monkeypatch.setattr(cli, "load", load)
        assert cli.main(["run", "kerr", "rabi", "--out", str(tmp_path)]) == 0
        assert loaded == ["kerr", "rabi"]
        assert (tmp_path / "kerr.png").is_file()
        assert (tmp_path / "rabi.png").is_file()

    def test_run_all(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "load", lambda name: fake_tutorial())
        assert cli.main(["run", "--all", "--out", str(tmp_path / "figs"), "-v"]) == 0
        assert sorted(p.stem for p in (tmp_path / "figs").iterdir()) == sorted(TUTORIALS)

    @pytest.mark.parametrize("argv", [["run"], ["run", "hydrogen"], []])
    def test_usage_errors(self, argv):
        with pytest.raises(SystemExit) as exc:
            cli.main(argv)
        assert exc.value.code == 2
