from __future__ import annotations
import numpy as np


def make_blobs(n_points: int, k: int, features: int = 8, spread: float = 1.0,
               box: float = 20.0, seed: int | None = None):
    """
    Gaussian blobs around k random centers drawn inside [-box, box]^features.
    Returns: (X float32 (n_points, features), true_labels int32, centers)
    """
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-box, box, size=(k, features))
    true = rng.integers(0, k, size=n_points).astype(np.int32)
    X = centers[true] + rng.normal(0.0, spread, size=(n_points, features))
    return X.astype(np.float32), true, centers.astype(np.float32)
