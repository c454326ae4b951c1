"""Feature construction from raw per-sample read counts."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from sexmix.types import SampleCount

# Largest double below 1.0; ratios are pinned under it so log(1 - x) stays finite.
_UPPER = np.nextafter(1.0, 0.0)


def smoothed_ratio(count: int, total: int) -> float:
    """Laplace-smoothed ratio (count + 1) / (total + 1)."""
    return (count + 1) / (total + 1)


def compute_features(counts: Sequence[SampleCount]) -> np.ndarray:
    """Build the (n, 2) feature matrix of (Y ratio, XIST ratio) per sample.

    Column 0 is the Y-chromosome ratio, column 1 the XIST ratio. Values are
    kept strictly inside (0, 1): a count equal to the total (including the
    all-zero sample) lands on the largest double below 1. Garbage in,
    garbage out otherwise; counts are not validated.
    """
    features = np.empty((len(counts), 2), dtype=np.float64)
    for i, c in enumerate(counts):
        features[i, 0] = smoothed_ratio(c.ychrom_count, c.total_count)
        features[i, 1] = smoothed_ratio(c.xist_count, c.total_count)
    return np.minimum(features, _UPPER)
