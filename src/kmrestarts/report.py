from __future__ import annotations


def format_centroids(centroids) -> list[str]:
    lines = []
    for c, row in enumerate(centroids):
        lines.append(f"C{c}: " + ", ".join(f"{v:f}" for v in row))
    return lines


def format_report(model, n_points: int | None = None) -> str:
    """Console summary of a fitted RestartKMeans."""
    best = model.best_
    t = model.timings_
    out = []
    if n_points is not None:
        out.append(f"Loaded {n_points} points.")
    out.append(f"k = {model.n_clusters}, restarts = {model.restarts}, max_iter = {model.max_iter}, "
               f"method = {model.method}, seed = {model.seed_}")
    out.append("")
    out.append(f"Best restart = {best.restart}, iterations in best run = {best.iterations}"
               + ("" if best.converged else " (iteration cap reached)"))
    out.append(f"Best (lowest) accuracy = {best.accuracy:f}")
    out.append("")
    out.append("Best centroids:")
    out.extend(format_centroids(best.centroids))
    out.append("")
    out.append("Timing:")
    out.append(f"Total elapsed time (s) = {model.elapsed_:.6f}")
    out.append(f"Avg A-step time per iteration (s) = {t.avg_assign:.9f}")
    out.append(f"Avg U-step time per iteration (s) = {t.avg_update:.9f}")
    return "\n".join(out)
