import numpy as np
import pandas as pd
import pytest
from typer.testing import CliRunner

from kmrestarts.cli import app
from kmrestarts.loader import load_points
from kmrestarts.runs import read_run_log

runner = CliRunner()


@pytest.fixture
def data_file(tmp_path, cfg_file):
    out = tmp_path / "blobs.csv"
    res = runner.invoke(app, ["synth", str(out), "--n", "600", "--k", "3", "--seed", "4",
                              "--spread", "0.3", "--cfg", str(cfg_file)])
    assert res.exit_code == 0, res.output
    return out


def test_synth_writes_points(data_file):
    X = load_points(data_file)
    assert X.shape == (600, 8)


@pytest.mark.parametrize("method", ["serial", "parallel"])
def test_cluster_writes_run_dir(method, data_file, cfg_file, tmp_path):
    res = runner.invoke(app, ["cluster", str(data_file), "--k", "3", "--restarts", "4",
                              "--method", method, "--seed", "8", "--cfg", str(cfg_file)])
    assert res.exit_code == 0, res.output
    assert "Best restart =" in res.output
    assert "Best centroids:" in res.output
    assert "C2: " in res.output
    assert "Avg U-step time per iteration" in res.output

    kdir = tmp_path / "runs" / "blobs" / method / "K3"
    meta = read_run_log(kdir / "run.log")
    assert meta["method"] == method
    assert meta["K"] == "3" and meta["N"] == "600" and meta["D"] == "8"
    assert meta["restarts"] == "4" and meta["seed"] == "8"

    cents = pd.read_csv(kdir / "centroids.csv")
    assert list(cents.columns) == ["cluster"] + [f"f{j}" for j in range(8)]
    asg = pd.read_csv(kdir / "assignments.csv")
    assert len(asg) == 600 and set(asg["cluster"]) <= {0, 1, 2}
    hist = pd.read_csv(kdir / "restarts.csv")
    assert len(hist) == 4
    assert float(meta["accuracy"]) == pytest.approx(hist["accuracy"].min(), abs=1e-5)


def test_k_above_maximum_rejected_before_loading(cfg_file, tmp_path):
    res = runner.invoke(app, ["cluster", str(tmp_path / "does-not-exist.csv"), "--k", "11",
                              "--cfg", str(cfg_file)])
    assert res.exit_code != 0
    assert "k must be in [1, 10]" in res.output
    assert not (tmp_path / "runs" / "does-not-exist").exists()


def test_restarts_above_maximum_rejected(data_file, cfg_file):
    res = runner.invoke(app, ["cluster", str(data_file), "--k", "2", "--restarts", "51",
                              "--cfg", str(cfg_file)])
    assert res.exit_code != 0
    assert "restarts must be <= 50" in res.output


def test_unreadable_and_empty_sources(cfg_file, tmp_path):
    res = runner.invoke(app, ["cluster", str(tmp_path / "nope.csv"), "--k", "2", "--cfg", str(cfg_file)])
    assert res.exit_code != 0
    assert "Error opening file" in res.output

    empty = tmp_path / "empty.csv"
    empty.write_text("")
    res = runner.invoke(app, ["cluster", str(empty), "--k", "2", "--cfg", str(cfg_file)])
    assert res.exit_code != 0
    assert "no points loaded" in res.output


def test_malformed_source(cfg_file, tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("1 2 3 4 5 6 7 8\n1 2 x 4 5 6 7 8\n")
    res = runner.invoke(app, ["cluster", str(bad), "--k", "2", "--cfg", str(cfg_file)])
    assert res.exit_code != 0
    assert "row 1, feature 2" in res.output


def test_compare_reports_drift_and_speedup(data_file, cfg_file):
    res = runner.invoke(app, ["compare", str(data_file), "--k", "3", "--restarts", "3",
                              "--seed", "5", "--threads", "3", "--cfg", str(cfg_file)])
    assert res.exit_code == 0, res.output
    line = next(l for l in res.output.splitlines() if "max |centroid diff|" in l)
    assert float(line.split("=")[1]) < 1e-4
    assert "speedup (serial/parallel)" in res.output


def test_bench_and_plots(data_file, cfg_file, tmp_path):
    for method in ("serial", "parallel"):
        res = runner.invoke(app, ["cluster", str(data_file), "--k", "3", "--restarts", "2",
                                  "--method", method, "--seed", "1", "--cfg", str(cfg_file)])
        assert res.exit_code == 0, res.output

    res = runner.invoke(app, ["bench-speed", "--cfg", str(cfg_file)])
    assert res.exit_code == 0, res.output
    pivot = pd.read_csv(tmp_path / "eval" / "metrics" / "benchmarks_pivot.csv")
    assert "speedup" in pivot.columns
    assert (pivot["speedup"] > 0).all()

    res = runner.invoke(app, ["make-plots", "--cfg", str(cfg_file)])
    assert res.exit_code == 0, res.output
    for name in ("runtime_vs_K.png", "speedup_vs_K.png", "step_times.png"):
        assert (tmp_path / "figures" / name).exists()


def test_negative_seed_exits_cleanly(data_file, cfg_file):
    res = runner.invoke(app, ["cluster", str(data_file), "--k", "2", "--seed", "-1",
                              "--cfg", str(cfg_file)])
    assert res.exit_code == 1
    assert "seed must be a non-negative integer" in res.output
    assert isinstance(res.exception, SystemExit)


def test_misspelled_limit_exits_cleanly(data_file, tmp_path):
    bad_cfg = tmp_path / "bad.yaml"
    bad_cfg.write_text("limits:\n  max_iters: 10\n", encoding="utf-8")
    res = runner.invoke(app, ["cluster", str(data_file), "--k", "2", "--cfg", str(bad_cfg)])
    assert res.exit_code == 1
    assert "max_iters" in res.output
