"""Moving-average smoothing for driven-path position traces."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from racespace.constants import SMOOTHING_WINDOW

TrackPoint = tuple[float, float]


def smooth_track_points(
    points: Sequence[TrackPoint],
    window: int = SMOOTHING_WINDOW,
) -> list[TrackPoint]:
    """Average each point with up to *window* neighbours on either side.

    The window is clamped at the sequence boundaries (shorter near the edges,
    never padded or wrapped), so the output always has the same length as the
    input.  Sequences shorter than *window* are returned unchanged.
    """
    if len(points) < window:
        return list(points)

    arr = np.asarray(points, dtype=float)
    n = len(arr)
    idx = np.arange(n)
    lo = np.maximum(0, idx - window)
    hi = np.minimum(n, idx + window + 1)

    # Prefix sums give every window mean in O(n)
    csum = np.vstack([np.zeros((1, 2)), np.cumsum(arr, axis=0)])
    means = (csum[hi] - csum[lo]) / (hi - lo)[:, None]

    return [(float(x), float(z)) for x, z in means]
