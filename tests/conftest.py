import numpy as np
import pytest
import yaml

from kmrestarts.strategy import make_strategy
from kmrestarts.synth import make_blobs


@pytest.fixture(params=["serial", "parallel"])
def strategy(request):
    with make_strategy(request.param, 4) as s:
        yield s


@pytest.fixture
def blobs():
    X, true, centers = make_blobs(3000, 4, features=8, spread=0.5, seed=11)
    return X, true, centers


@pytest.fixture
def cfg_file(tmp_path):
    cfg = {
        "paths": {
            "runs_dir": str(tmp_path / "runs"),
            "eval_dir": str(tmp_path / "eval"),
            "figures_dir": str(tmp_path / "figures"),
        },
        "limits": {"max_clusters": 10, "max_restarts": 50, "max_iter": 300, "default_restarts": 4},
        "run": {"method": "parallel", "num_threads": 2, "seed": None, "verbose_every": 0},
    }
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def broadcast(values, features=8):
    return np.repeat(np.asarray(values, dtype=np.float32)[:, None], features, axis=1)
