import pandas as pd
import pytest

from kmrestarts import bench
from kmrestarts.runs import data_slug, run_dir


def _log(root, slug, method, k, secs, **extra):
    kdir = run_dir(root, slug, method, k)
    kdir.mkdir(parents=True, exist_ok=True)
    fields = {"slug": slug, "method": method, "K": k, "N": 100, "D": 8,
              "secs": secs, "avg_assign": 0.001, "avg_update": 0.002, **extra}
    (kdir / "run.log").write_text("".join(f"{key}={v}\n" for key, v in fields.items()), encoding="utf-8")
    return kdir


def test_collect_and_speedup(tmp_path):
    _log(tmp_path, "blobs", "serial", 4, 2.0)
    _log(tmp_path, "blobs", "parallel", 4, 0.5, num_threads=4)
    _log(tmp_path, "blobs", "serial", 8, 3.0)

    df = bench.collect(tmp_path)
    assert len(df) == 3
    row = df[(df["method"] == "parallel")].iloc[0]
    assert row["num_threads"] == 4 and row["avg_update"] == pytest.approx(0.002)

    pv = bench.speedup_pivot(df).set_index("K")
    assert pv.loc[4, "speedup"] == pytest.approx(4.0)
    assert pd.isna(pv.loc[8, "speedup"])


def test_unparseable_fields_fall_back(tmp_path):
    kdir = _log(tmp_path, "x", "serial", 2, "fast", K="two")
    row = bench._parse_log(kdir / "run.log")
    assert row["K"] == 0
    assert pd.isna(row["secs"])


def test_collect_empty(tmp_path):
    assert bench.collect(tmp_path).empty


def test_data_slug():
    assert data_slug("data/points.csv") == "points"
    assert data_slug("/tmp/set-1.tsv") == "set-1"
