import math
from typing import Optional

import numpy as np

from .defaults import POINTS_PER_PX


def decimation_stride(
    n_points: int, width: int, points_per_px: Optional[float] = POINTS_PER_PX
) -> int:
    """
    Stride needed to fit `n_points` samples into `width` pixels.

    Returns 1 when no decimation is required (including when `points_per_px`
    is None, which disables decimation). A zero width leaves room for a single
    sample, so the stride covers the whole series.
    """
    if points_per_px is None:
        return 1
    budget = width * points_per_px
    if n_points <= budget:
        return 1
    if budget <= 0:
        return max(n_points, 1)
    return math.ceil(n_points / budget)


def decimate(
    series, width: int, points_per_px: Optional[float] = POINTS_PER_PX
) -> np.ndarray:
    """
    Stride decimation of a sample series for display.

    Keeps the first sample of every stride window (no averaging or min/max
    reduction), so the output is an order-preserving subsequence of the input
    that always starts with the input's first sample.

    Parameters:
    - series: array-like of (x, y) pairs, shape (N, 2)
    - width: plot width in pixels
    - points_per_px: density budget, None for unbounded

    Returns:
    - the input itself when N <= width * points_per_px, otherwise
      series[::stride] with stride = ceil(N / (width * points_per_px))
    """
    series = np.asarray(series, dtype=float)
    stride = decimation_stride(len(series), width, points_per_px)
    if stride == 1:
        return series
    return series[::stride]
