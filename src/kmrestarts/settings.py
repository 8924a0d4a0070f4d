from __future__ import annotations
import os
from pathlib import Path
import yaml

from .errors import ConfigurationError

DEFAULTS = {
    "paths": {
        "runs_dir": "runs",
        "eval_dir": "eval",
        "figures_dir": "reports/figures",
    },
    "limits": {
        "max_points": 1_000_000,
        "features": 8,
        "max_clusters": 10,
        "max_restarts": 1000,
        "max_iter": 2000,
        "default_restarts": 100,
    },
    "run": {
        "method": "parallel",
        "num_threads": 0,
        "seed": None,
        "verbose_every": 0,
    },
}


def _merge(base: dict, over: dict | None) -> dict:
    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in base.items()}
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


class Limits:
    """Hard ceilings for one run. Enforced as configuration, not storage."""

    def __init__(self, max_points=1_000_000, features=8, max_clusters=10,
                 max_restarts=1000, max_iter=2000, default_restarts=100):
        self.max_points = int(max_points)
        self.features = int(features)
        self.max_clusters = int(max_clusters)
        self.max_restarts = int(max_restarts)
        self.max_iter = int(max_iter)
        self.default_restarts = int(default_restarts)

        if self.features < 1:
            raise ConfigurationError(f"features must be >= 1, got {self.features}")
        if self.max_clusters < 1:
            raise ConfigurationError(f"max_clusters must be >= 1, got {self.max_clusters}")
        if self.max_iter < 1:
            raise ConfigurationError(f"max_iter must be >= 1, got {self.max_iter}")
        if not 1 <= self.default_restarts <= self.max_restarts:
            raise ConfigurationError(
                f"default_restarts must be in [1, {self.max_restarts}], got {self.default_restarts}"
            )

    def check_k(self, k) -> int:
        k = int(k)
        if k <= 0 or k > self.max_clusters:
            raise ConfigurationError(f"k must be in [1, {self.max_clusters}], got {k}")
        return k

    def check_restarts(self, restarts) -> int:
        """A missing or non-positive count falls back to the default."""
        if restarts is None or int(restarts) <= 0:
            return self.default_restarts
        restarts = int(restarts)
        if restarts > self.max_restarts:
            raise ConfigurationError(f"restarts must be <= {self.max_restarts}, got {restarts}")
        return restarts

    def as_dict(self) -> dict:
        return dict(vars(self))


def resolve_threads(num_threads) -> int:
    n = int(num_threads or 0)
    if n < 0:
        raise ConfigurationError(f"num_threads must be >= 0, got {n}")
    return n or (os.cpu_count() or 1)


class Settings:
    def __init__(self, cfg="configs/default.yaml"):
        cfg_path = Path(cfg) if cfg else None
        raw = {}
        if cfg_path is not None and cfg_path.exists():
            with open(cfg_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        self.cfg = _merge(DEFAULTS, raw)

        p = self.cfg["paths"]
        self.runs = Path(p["runs_dir"])
        self.eval = Path(p["eval_dir"])
        self.figures = Path(p["figures_dir"])

        unknown = sorted(set(self.cfg["limits"]) - set(DEFAULTS["limits"]))
        if unknown:
            raise ConfigurationError(f"unknown key(s) under 'limits': {', '.join(unknown)}")
        self.limits = Limits(**self.cfg["limits"])

        r = self.cfg["run"]
        self.method = str(r.get("method") or "parallel")
        self.num_threads = resolve_threads(r.get("num_threads"))
        self.seed = r.get("seed")
        self.verbose_every = int(r.get("verbose_every") or 0)

    def ensure_dirs(self):
        for d in [self.runs, self.eval, self.figures]:
            d.mkdir(parents=True, exist_ok=True)
