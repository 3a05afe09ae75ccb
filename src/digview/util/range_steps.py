import math
from typing import NamedTuple, Optional

from .defaults import RANGE_STEPS


class RangeStep(NamedTuple):
    prev: Optional[float]
    next: Optional[float]


def nearest_ranges(number: float, steps=RANGE_STEPS) -> RangeStep:
    """
    Nearest "nice" values below and above `number`.

    `number` is normalised into [1, 10) by its decade, the step table is
    scanned for the bracketing pair and both bounds are scaled back. When the
    normalised value lies within 1% of a table entry it snaps to that entry,
    and the neighbours either side of it are returned instead, so a span that
    is already nice steps a full notch in both directions.

    Raises ValueError for non-positive input.
    """
    if not number > 0 or math.isinf(number):
        raise ValueError(f"Range must be a positive finite number, got {number}")

    decade = math.floor(math.log10(number))
    scale = 10.0**decade
    normalized = number / scale

    prev = None
    nxt = None
    for i in range(len(steps) - 1):
        ratio = steps[i + 1] / normalized
        if 0.99 < ratio < 1.01:
            prev = steps[i]
            nxt = steps[i + 2] if i + 2 < len(steps) else None
            break
        if steps[i] < normalized < steps[i + 1]:
            prev = steps[i]
            nxt = steps[i + 1]
            break

    return RangeStep(
        prev=None if prev is None else prev * scale,
        next=None if nxt is None else nxt * scale,
    )
