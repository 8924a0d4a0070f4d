from __future__ import annotations
from pathlib import Path
import numpy as np
import pandas as pd

from .kmeans import RestartKMeans
from .loader import load_points
from .settings import Settings


def data_slug(data_path) -> str:
    p = Path(data_path)
    stem = p.name
    for ext in (".csv", ".tsv", ".txt", ".dat"):
        stem = stem.replace(ext, "")
    return stem or "data"


def run_dir(runs_root, slug: str, method: str, k: int) -> Path:
    return Path(runs_root) / slug / method / f"K{k}"


def read_run_log(log: Path) -> dict:
    meta = {}
    log = Path(log)
    if log.exists():
        for line in log.read_text(encoding="utf-8").splitlines():
            if "=" in line:
                key, v = line.split("=", 1)
                meta[key.strip()] = v.strip()
    return meta


def write_run(outdir: Path, model: RestartKMeans, X: np.ndarray, data_path, slug: str) -> Path:
    """Write centroids, labels, per-restart history and run.log for one fitted model."""
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    C = model.centroids
    cols = [f"f{j}" for j in range(C.shape[1])]
    cdf = pd.DataFrame(C, columns=cols)
    cdf.insert(0, "cluster", np.arange(C.shape[0]))
    cdf.to_csv(outdir / "centroids.csv", index=False)

    labels = model.predict(X)
    pd.DataFrame({"point": np.arange(X.shape[0]), "cluster": labels}).to_csv(
        outdir / "assignments.csv", index=False
    )

    pd.DataFrame([r._asdict() for r in model.history_]).to_csv(outdir / "restarts.csv", index=False)

    best = model.best_
    t = model.timings_
    with open(outdir / "run.log", "w", encoding="utf-8") as f:
        f.write(f"data={data_path}\n")
        f.write(f"slug={slug}\n")
        f.write(f"K={model.n_clusters}\n")
        f.write(f"method={model.method}\n")
        f.write(f"N={X.shape[0]}\n")
        f.write(f"D={X.shape[1]}\n")
        f.write(f"restarts={model.restarts}\n")
        f.write(f"max_iter={model.max_iter}\n")
        f.write(f"seed={model.seed_}\n")
        if model.method == "parallel":
            f.write(f"num_threads={model.num_threads}\n")
        f.write(f"best_restart={best.restart}\n")
        f.write(f"iterations={best.iterations}\n")
        f.write(f"converged={1 if best.converged else 0}\n")
        f.write(f"accuracy={best.accuracy:.6f}\n")
        f.write(f"secs={model.elapsed_:.6f}\n")
        f.write(f"avg_assign={t.avg_assign:.9f}\n")
        f.write(f"avg_update={t.avg_update:.9f}\n")
    return outdir


def run(settings: Settings, data_path, k, restarts=None, method=None, seed=None,
        num_threads=None, write=True):
    """
    Validate, load, fit and (optionally) write one run.
    k and restarts are checked before the data file is opened.
    Returns: (model, X, outdir or None)
    """
    limits = settings.limits
    method = method or settings.method
    seed = settings.seed if seed is None else seed
    num_threads = num_threads or settings.num_threads

    model = RestartKMeans(
        n_clusters=k, restarts=restarts, method=method, num_threads=num_threads,
        seed=seed, limits=limits, verbose_every=settings.verbose_every,
    )

    X = load_points(data_path, features=limits.features, max_points=limits.max_points)
    print(f"[load] {X.shape[0]} points x {limits.features} features from {data_path}")

    model.fit(X)

    outdir = None
    if write:
        slug = data_slug(data_path)
        outdir = write_run(run_dir(settings.runs, slug, method, model.n_clusters), model, X, data_path, slug)
        print(f"[cluster] K={model.n_clusters} {method} done in {model.elapsed_:.2f}s >> {outdir}")
    return model, X, outdir
