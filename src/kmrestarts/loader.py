from __future__ import annotations
import re
from pathlib import Path

import numpy as np

from .errors import InputError

# any run of commas, spaces or tabs separates two fields
DELIM_RE = re.compile(r"[,\s]+")


def parse_record(line: str, features: int, row: int) -> list[float]:
    """Parse the first `features` numbers of one line. Extra fields are ignored."""
    fields = [f for f in DELIM_RE.split(line.strip()) if f]
    values = []
    for j in range(features):
        if j >= len(fields):
            raise InputError(
                f"Parse error at row {row}, feature {j}: expected {features} values, found {len(fields)}",
                row=row, feature=j,
            )
        try:
            values.append(float(fields[j]))
        except ValueError:
            raise InputError(
                f"Parse error at row {row}, feature {j}. Offending text starts with: '{fields[j][:20]}'",
                row=row, feature=j,
            ) from None
    return values


def load_points(path, features: int = 8, max_points: int = 1_000_000) -> np.ndarray:
    """
    Read a comma/space/tab separated point file.
    Blank lines are skipped and reading stops after `max_points` rows.
    Returns: float32 array of shape (N, features); N may be 0 for an empty file.
    """
    path = Path(path)
    rows = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                if len(rows) >= max_points:
                    break
                if not line.strip():
                    continue
                rows.append(parse_record(line, features, row=len(rows)))
    except OSError as e:
        raise InputError(f"Error opening file {path}: {e.strerror or e}") from e

    if not rows:
        return np.empty((0, features), dtype=np.float32)
    return np.asarray(rows, dtype=np.float32)


def save_points(path, X: np.ndarray, delimiter: str = ",") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savetxt(path, X, delimiter=delimiter, fmt="%.6f")
    return path
