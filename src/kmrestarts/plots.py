from pathlib import Path
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


METHOD_COLORS = {
    "serial":   "#2E86C1",
    "parallel": "#27AE60",
}
STEP_COLORS = {
    "avg_assign": "#C0392B",
    "avg_update": "#8E44AD",
}
MARKER_SIZE = 5.5


def _ensure_dir(p: Path):
    p.mkdir(parents=True, exist_ok=True)
    return p


def plot_runtime(dfb: pd.DataFrame, figdir: Path) -> Path:
    out = figdir / "runtime_vs_K.png"
    plt.figure()
    for slug, g in dfb.groupby("slug"):
        wide = g.pivot_table(index="K", columns="method", values="secs", aggfunc="min").reset_index()
        for method in ["serial", "parallel"]:
            if method in wide.columns:
                plt.plot(
                    wide["K"], wide[method],
                    marker="o", markersize=MARKER_SIZE,
                    color=METHOD_COLORS[method], label=f"{slug} · {method}",
                )
    plt.xlabel("K"); plt.ylabel("Seconds"); plt.title("Runtime vs K")
    plt.tight_layout(); plt.legend(fontsize=9, frameon=False)
    plt.savefig(out, dpi=200); plt.close()
    return out


def plot_speedup(dfb: pd.DataFrame, figdir: Path) -> Path | None:
    out = figdir / "speedup_vs_K.png"
    drawn = False
    plt.figure()
    for slug, g in dfb.groupby("slug"):
        wide = g.pivot_table(index="K", columns="method", values="secs", aggfunc="min").reset_index()
        if {"serial", "parallel"} <= set(wide.columns):
            sp = wide["serial"] / wide["parallel"]
            plt.plot(wide["K"], sp, marker="o", markersize=MARKER_SIZE, label=slug)
            drawn = True
    if not drawn:
        plt.close()
        return None
    plt.axhline(1, linestyle="--", linewidth=1, color="#666666", alpha=0.8)
    plt.xlabel("K"); plt.ylabel("Speedup (serial/parallel)")
    plt.title("Parallel speedup vs K")
    plt.tight_layout(); plt.legend(fontsize=9, frameon=False)
    plt.savefig(out, dpi=200); plt.close()
    return out


def plot_step_times(dfb: pd.DataFrame, figdir: Path) -> Path:
    """Grouped bars: average assignment vs update step time per (slug, K, method)."""
    out = figdir / "step_times.png"
    sub = dfb.sort_values(["slug", "K", "method"]).reset_index(drop=True)
    labels = [f"{r.slug}\nK{r.K} {r.method}" for r in sub.itertuples(index=False)]
    xs = range(len(sub))
    width = 0.4

    plt.figure(figsize=(max(6, 0.9 * len(sub)), 4))
    for i, col in enumerate(["avg_assign", "avg_update"]):
        plt.bar([x + (i - 0.5) * width for x in xs], sub[col] * 1e3, width=width,
                color=STEP_COLORS[col], label=col.replace("avg_", ""))
    plt.xticks(list(xs), labels, fontsize=7)
    plt.ylabel("ms per iteration"); plt.title("Average step time")
    plt.tight_layout(); plt.legend(fontsize=9, frameon=False)
    plt.savefig(out, dpi=200); plt.close()
    return out


def run(settings):
    b_long = Path(settings.eval) / "metrics" / "benchmarks.csv"
    figdir = _ensure_dir(Path(settings.figures))
    if not b_long.exists():
        print(f"[plots] Missing {b_long} — run kmcli bench-speed first.")
        return []

    dfb = pd.read_csv(b_long)
    written = [plot_runtime(dfb, figdir), plot_speedup(dfb, figdir), plot_step_times(dfb, figdir)]
    written = [p for p in written if p is not None]
    print(f"[plots] wrote {len(written)} figures to {figdir}")
    return written
