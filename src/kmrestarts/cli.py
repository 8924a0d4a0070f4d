import time
from pathlib import Path

import numpy as np
import typer

from kmrestarts import bench, plots, runs
from kmrestarts.errors import KMeansError
from kmrestarts.loader import save_points
from kmrestarts.report import format_report
from kmrestarts.settings import Settings
from kmrestarts.synth import make_blobs

app = typer.Typer(help="Multi-restart k-means with serial and thread-parallel strategies")


def _settings(cfg: str) -> Settings:
    try:
        s = Settings(cfg)
    except KMeansError as e:
        raise SystemExit(f"[config] {e}")
    s.ensure_dirs()
    return s


@app.command()
def cluster(
    data: str = typer.Argument(..., help="Point file (comma, space or tab separated)"),
    k: int = typer.Option(..., "--k", help="Number of clusters"),
    restarts: int = typer.Option(0, help="Independent restarts (<= 0 uses the configured default)"),
    method: str = typer.Option(None, help="serial|parallel (default from config)"),
    seed: int = typer.Option(None, help="RNG seed (default: config, then wall-clock time)"),
    threads: int = typer.Option(None, help="Worker threads for the parallel method"),
    cfg: str = "configs/default.yaml",
):
    """
    Run k-means with restarts on DATA and keep the lowest-accuracy result.
    Writes runs/<slug>/<method>/K<k>/{centroids.csv, assignments.csv, restarts.csv, run.log}
    """
    s = _settings(cfg)
    try:
        model, X, _ = runs.run(s, data, k, restarts=restarts, method=method, seed=seed, num_threads=threads)
    except KMeansError as e:
        raise SystemExit(f"[cluster] {e}")
    print(format_report(model, n_points=X.shape[0]))


@app.command()
def compare(
    data: str = typer.Argument(..., help="Point file"),
    k: int = typer.Option(..., "--k", help="Number of clusters"),
    restarts: int = typer.Option(0, help="Independent restarts"),
    seed: int = typer.Option(None, help="Shared RNG seed for both runs"),
    threads: int = typer.Option(None, help="Worker threads for the parallel method"),
    cfg: str = "configs/default.yaml",
):
    """Run serial and parallel with the same seed; report centroid drift and speedup."""
    s = _settings(cfg)
    if seed is None:
        seed = s.seed if s.seed is not None else int(time.time())
    try:
        ser, X, _ = runs.run(s, data, k, restarts=restarts, method="serial", seed=seed)
        par, _, _ = runs.run(s, data, k, restarts=restarts, method="parallel", seed=seed, num_threads=threads)
    except KMeansError as e:
        raise SystemExit(f"[compare] {e}")

    drift = float(np.max(np.abs(ser.centroids - par.centroids)))
    speedup = ser.elapsed_ / par.elapsed_ if par.elapsed_ > 0 else float("nan")
    print(f"[compare] seed={seed}  N={X.shape[0]}  K={ser.n_clusters}")
    print(f"[compare] serial:   best_restart={ser.best_.restart}  accuracy={ser.best_.accuracy:f}  secs={ser.elapsed_:.4f}")
    print(f"[compare] parallel: best_restart={par.best_.restart}  accuracy={par.best_.accuracy:f}  secs={par.elapsed_:.4f}")
    print(f"[compare] max |centroid diff| = {drift:.3e}")
    print(f"[compare] speedup (serial/parallel) = {speedup:.2f}")


@app.command()
def bench_speed(cfg: str = "configs/default.yaml"):
    """Collect every run.log into benchmark tables with serial/parallel speedup."""
    bench.run(_settings(cfg))


@app.command()
def make_plots(cfg: str = "configs/default.yaml"):
    """Generate runtime, speedup and step-time PNGs from the benchmark CSV."""
    plots.run(_settings(cfg))


@app.command()
def synth(
    out: str = typer.Argument(..., help="Output point file"),
    n: int = typer.Option(10000, help="Number of points"),
    k: int = typer.Option(5, "--k", help="Number of blobs"),
    spread: float = typer.Option(1.0, help="Standard deviation of each blob"),
    seed: int = typer.Option(None, help="RNG seed"),
    delimiter: str = typer.Option(",", help="Field separator"),
    cfg: str = "configs/default.yaml",
):
    """Write a synthetic Gaussian-blob dataset for benchmarking."""
    s = _settings(cfg)
    X, _, _ = make_blobs(n, k, features=s.limits.features, spread=spread, seed=seed)
    path = save_points(Path(out), X, delimiter=delimiter)
    print(f"[synth] wrote {path} ({X.shape[0]} points x {X.shape[1]} features, {k} blobs)")


if __name__ == "__main__":
    app()
