from __future__ import annotations
import time
from collections import namedtuple

import numpy as np

from .errors import ConfigurationError, InputError
from .settings import Limits
from .strategy import make_strategy

UNASSIGNED = -1

RefineOutcome = namedtuple("RefineOutcome", ["iterations", "converged"])
RestartResult = namedtuple(
    "RestartResult", ["restart", "accuracy", "iterations", "converged", "best_accuracy"]
)


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.sqrt(np.sum((np.asarray(a) - np.asarray(b)) ** 2)))


def point_distances(X: np.ndarray, C: np.ndarray) -> np.ndarray:
    """(n, k) matrix of Euclidean distances from every row of X to every row of C."""
    out = np.empty((X.shape[0], C.shape[0]), dtype=np.result_type(X, C))
    for c in range(C.shape[0]):
        diff = X - C[c]
        out[:, c] = np.sqrt(np.einsum("ij,ij->i", diff, diff))
    return out


def init_centroids(data: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Copy k rows of `data` picked uniformly with replacement.
    Two centroids may start on the same point.
    """
    n = data.shape[0]
    if n == 0:
        raise InputError("cannot seed centroids: no points loaded")
    idx = rng.integers(0, n, size=int(k))
    return data[idx].copy()


class Accumulator:
    """Per-cluster feature sums (float64) and member counts."""

    def __init__(self, n_clusters: int, n_features: int):
        self.sums = np.zeros((n_clusters, n_features), dtype=np.float64)
        self.counts = np.zeros(n_clusters, dtype=np.int64)

    def add_points(self, X: np.ndarray, labels: np.ndarray):
        size = self.counts.shape[0]
        self.counts += np.bincount(labels, minlength=size)
        for f in range(X.shape[1]):
            self.sums[:, f] += np.bincount(labels, weights=X[:, f], minlength=size)
        return self

    def merge(self, other: "Accumulator"):
        self.sums += other.sums
        self.counts += other.counts
        return self


class StepTimings:
    """Wall time spent in assignment and update steps, summed over a run."""

    def __init__(self):
        self.assign_total = 0.0
        self.update_total = 0.0
        self.assign_steps = 0
        self.update_steps = 0

    def record(self, assign_secs: float, update_secs: float):
        self.assign_total += assign_secs
        self.update_total += update_secs
        self.assign_steps += 1
        self.update_steps += 1

    @property
    def avg_assign(self) -> float:
        return self.assign_total / self.assign_steps if self.assign_steps else 0.0

    @property
    def avg_update(self) -> float:
        return self.update_total / self.update_steps if self.update_steps else 0.0


def assign_points(data, centroids, labels, strategy) -> int:
    """
    Relabel every point with its nearest centroid, in place.
    Exact ties keep the lower centroid index. Returns how many labels changed.
    """
    def _assign_chunk(start, stop):
        # argmin returns the first minimum, so ties go to the lower index
        best = np.argmin(point_distances(data[start:stop], centroids), axis=1).astype(labels.dtype)
        current = labels[start:stop]
        changed = current != best
        current[changed] = best[changed]
        return int(np.count_nonzero(changed))

    return strategy.reduce_sum(_assign_chunk, data.shape[0])


def update_centroids(data, labels, centroids, strategy, capacity: int | None = None) -> np.ndarray:
    """
    Move every centroid to the mean of its members, in place.
    A cluster with no members keeps its previous position.
    Each chunk folds into a private accumulator; only the merge is locked.
    Returns the member count per cluster.
    """
    k, n_features = centroids.shape
    capacity = max(int(capacity or k), k)
    total = Accumulator(capacity, n_features)

    def _fold_chunk(start, stop):
        local = Accumulator(capacity, n_features)
        local.add_points(data[start:stop], labels[start:stop])
        with strategy.lock:
            total.merge(local)

    strategy.map_chunks(_fold_chunk, data.shape[0])

    counts = total.counts[:k]
    filled = counts > 0
    centroids[filled] = (total.sums[:k][filled] / counts[filled, None]).astype(centroids.dtype)
    return counts.copy()


def compute_accuracy(data, labels, centroids, strategy) -> np.float32:
    """Mean distance from each point to its assigned centroid."""
    n = data.shape[0]
    if n == 0:
        raise InputError("cannot evaluate accuracy: no points loaded")

    def _chunk_total(start, stop):
        diff = data[start:stop] - centroids[labels[start:stop]]
        return float(np.sqrt(np.einsum("ij,ij->i", diff, diff)).sum(dtype=np.float64))

    total = strategy.reduce_sum(_chunk_total, n)
    return np.float32(total / n)


def refine(data, centroids, labels, strategy, max_iter: int, capacity: int | None = None,
           timings: StepTimings | None = None, verbose_every: int = 0, tag: str = "") -> RefineOutcome:
    """
    Alternate assignment and update until an assignment changes nothing
    or `max_iter` iterations have run. Hitting the cap is not an error.
    """
    for it in range(int(max_iter)):
        t0 = time.time()
        changes = assign_points(data, centroids, labels, strategy)
        t1 = time.time()
        update_centroids(data, labels, centroids, strategy, capacity=capacity)
        t2 = time.time()
        if timings is not None:
            timings.record(t1 - t0, t2 - t1)

        if verbose_every and it % verbose_every == 0:
            acc = compute_accuracy(data, labels, centroids, strategy)
            print(f"[refine] {tag}iter {it}  acc={acc:.6f}  changes={changes}")

        if changes == 0:
            return RefineOutcome(it + 1, True)
    return RefineOutcome(int(max_iter), False)


class BestResult:
    """Lowest-accuracy centroid set seen so far and where it came from."""

    def __init__(self):
        self.centroids = None
        self.accuracy = float("inf")
        self.restart = None
        self.iterations = None
        self.converged = None

    @property
    def found(self) -> bool:
        return self.restart is not None

    def offer(self, centroids, accuracy, restart, iterations, converged=True) -> bool:
        """Keep this result iff it is strictly better. Ties keep the earlier one."""
        if not accuracy < self.accuracy:
            return False
        self.centroids = np.array(centroids, copy=True)
        self.accuracy = float(accuracy)
        self.restart = int(restart)
        self.iterations = int(iterations)
        self.converged = bool(converged)
        return True


class RestartKMeans:
    """
    k-means repeated over independent random restarts, keeping the best.

    `method` picks the execution strategy ("serial" or "parallel"); both run
    the same algorithm. k and the restart count are validated against
    `limits` at construction, before any data is touched.
    """

    def __init__(self, n_clusters, restarts=None, max_iter=None, method="parallel",
                 num_threads=None, seed=None, limits: Limits | None = None, verbose_every=0):
        self.limits = limits or Limits()
        self.n_clusters = self.limits.check_k(n_clusters)
        self.restarts = self.limits.check_restarts(restarts)
        if max_iter is None:
            self.max_iter = self.limits.max_iter
        elif int(max_iter) < 1:
            raise ConfigurationError(f"max_iter must be >= 1, got {max_iter}")
        else:
            self.max_iter = min(int(max_iter), self.limits.max_iter)
        if seed is not None and int(seed) < 0:
            raise ConfigurationError(f"seed must be a non-negative integer, got {seed}")
        self.method = method
        self.num_threads = num_threads
        self.seed = seed
        self.verbose_every = int(verbose_every or 0)
        if self.verbose_every < 0:
            raise ConfigurationError(f"verbose_every must be >= 0, got {self.verbose_every}")
        make_strategy(method, num_threads)

        self.centroids = None
        self.best_ = None
        self.history_ = []
        self.timings_ = None
        self.seed_ = None
        self.elapsed_ = 0.0

    def _check_data(self, data) -> np.ndarray:
        X = np.ascontiguousarray(data, dtype=np.float32)
        if X.ndim != 2:
            raise InputError(f"expected a 2-D point array, got shape {X.shape}")
        if X.shape[0] == 0:
            raise InputError("no points loaded; refusing to cluster an empty dataset")
        if X.shape[0] > self.limits.max_points:
            raise InputError(f"{X.shape[0]} points exceeds max_points={self.limits.max_points}")
        if not np.isfinite(X).all():
            raise InputError("input contains NaN or infinite feature values")
        return X

    def fit(self, data):
        X = self._check_data(data)
        n = X.shape[0]

        self.seed_ = int(self.seed) if self.seed is not None else int(time.time())
        rng = np.random.default_rng(self.seed_)

        labels = np.full(n, UNASSIGNED, dtype=np.int32)
        best = BestResult()
        history = []
        timings = StepTimings()

        t0 = time.time()
        with make_strategy(self.method, self.num_threads) as strategy:
            for r in range(self.restarts):
                labels.fill(UNASSIGNED)
                centroids = init_centroids(X, self.n_clusters, rng)
                outcome = refine(
                    X, centroids, labels, strategy, self.max_iter,
                    capacity=self.limits.max_clusters, timings=timings,
                    verbose_every=self.verbose_every, tag=f"restart {r} ",
                )
                acc = compute_accuracy(X, labels, centroids, strategy)
                best.offer(centroids, acc, r, outcome.iterations, outcome.converged)
                history.append(RestartResult(r, float(acc), outcome.iterations,
                                             outcome.converged, best.accuracy))
        self.elapsed_ = time.time() - t0

        self.best_ = best
        self.centroids = best.centroids
        self.history_ = history
        self.timings_ = timings
        return self

    def predict(self, data) -> np.ndarray:
        if self.centroids is None:
            raise RuntimeError("fit() has not been called")
        X = self._check_data(data)
        labels = np.full(X.shape[0], UNASSIGNED, dtype=np.int32)
        with make_strategy(self.method, self.num_threads) as strategy:
            assign_points(X, self.centroids, labels, strategy)
        return labels
