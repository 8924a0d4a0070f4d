from pathlib import Path
import pandas as pd

from .runs import read_run_log


def _parse_log(log: Path) -> dict:
    meta = read_run_log(log)

    def _i(k, default=0):
        try:
            return int(meta.get(k, default))
        except ValueError:
            return default

    def _f(k, default=float("nan")):
        try:
            return float(meta.get(k, default))
        except ValueError:
            return default

    return {
        "data":         meta.get("data", ""),
        "slug":         meta.get("slug", ""),
        "method":       meta.get("method", ""),
        "K":            _i("K"),
        "N":            _i("N"),
        "D":            _i("D"),
        "restarts":     _i("restarts"),
        "num_threads":  _i("num_threads"),
        "best_restart": _i("best_restart", -1),
        "iterations":   _i("iterations"),
        "accuracy":     _f("accuracy"),
        "secs":         _f("secs"),
        "avg_assign":   _f("avg_assign"),
        "avg_update":   _f("avg_update"),
        "log_path":     str(log),
    }


def collect(runs_dir) -> pd.DataFrame:
    """One row per run.log, keeping the fastest run per (slug, K, method)."""
    logs = sorted(Path(runs_dir).glob("**/K*/run.log"))
    df = pd.DataFrame([_parse_log(p) for p in logs])
    if df.empty:
        return df
    df = df.dropna(subset=["secs"])
    df = (df.sort_values(["slug", "K", "method", "secs"])
            .groupby(["slug", "K", "method"], as_index=False).first())
    return df


def speedup_pivot(df: pd.DataFrame) -> pd.DataFrame:
    pivots = []
    for slug, g in df.groupby("slug"):
        pv = g.pivot_table(index="K", columns="method", values="secs", aggfunc="min")
        pv = pv.reset_index()
        pv.columns.name = None
        if {"serial", "parallel"} <= set(pv.columns):
            pv["speedup"] = pv["serial"] / pv["parallel"]
        pv.insert(0, "slug", slug)
        pivots.append(pv)
    if not pivots:
        return pd.DataFrame()
    return pd.concat(pivots, ignore_index=True)


def run(settings):
    df = collect(settings.runs)
    out_dir = Path(settings.eval) / "metrics"
    out_dir.mkdir(parents=True, exist_ok=True)

    long_out = out_dir / "benchmarks.csv"
    if df.empty:
        print(f"[bench] no run.log files under {settings.runs}")
        return df, None
    df.to_csv(long_out, index=False)

    pivot = speedup_pivot(df)
    if not pivot.empty:
        pivot.to_csv(out_dir / "benchmarks_pivot.csv", index=False)

    print(f"[bench] wrote {long_out} ({len(df)} rows)")
    return df, pivot
