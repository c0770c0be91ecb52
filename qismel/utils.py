from __future__ import annotations

from typing import Any
import numpy as np


def cosine_similarity(a: Any, b: Any) -> float:
    """Cosine of the angle between two embeddings of possibly different width.

    Both vectors are laid into a shared zero-filled width, so missing trailing
    components count as 0. Returns 0.0 for a zero-norm or non-finite vector,
    which keeps the result usable as a bounded signal value.
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if not (np.isfinite(a).all() and np.isfinite(b).all()):
        return 0.0
    pair = np.zeros((2, max(a.shape[0], b.shape[0])))
    pair[0, : a.shape[0]] = a
    pair[1, : b.shape[0]] = b
    norms = np.linalg.norm(pair, axis=1)
    if norms[0] == 0.0 or norms[1] == 0.0:
        return 0.0
    return float(np.clip(pair[0] @ pair[1] / (norms[0] * norms[1]), -1.0, 1.0))
