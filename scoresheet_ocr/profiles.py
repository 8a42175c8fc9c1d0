"""
Projection profiles.

A profile sums a binary pixel indicator across one axis of an image region,
giving one value per column (``axis="columns"``) or per row (``axis="rows"``).
Callers choose the binarization rule: light paper for column separators,
dark ink for table edges.
"""

import numpy as np

from .config import ProfileConfig
from .geometry import Region, to_gray


def brighter_than(threshold):
    return lambda gray: gray > threshold


def darker_than(threshold):
    return lambda gray: gray < threshold


class ProjectionProfiler:

    def __init__(self, config=None):
        self.config = config or ProfileConfig()

    def profile(self, image, region=None, axis='columns', binarize=None):
        """Sum binarize(gray) over the orthogonal axis for every scan position.

        Returns a new float64 array whose length is the region width
        (columns) or height (rows).
        """
        if region is None:
            region = Region.whole(image)
        if binarize is None:
            binarize = darker_than(self.config.ink_threshold)

        gray = to_gray(image)[region.y:region.bottom, region.x:region.right]
        binary = binarize(gray).astype(np.float64)

        if axis == 'columns':
            return binary.sum(axis=0)
        if axis == 'rows':
            return binary.sum(axis=1)
        raise ValueError(f"unknown profile axis: {axis!r}")

    def default_window(self, length):
        return max(self.config.min_smooth_window, length // self.config.smooth_divisor)

    def smooth(self, profile, window_size=None):
        """Centered moving average, window clamped at the array ends.

        Every sample becomes the mean of ``profile[x - w : x + w + 1]``
        intersected with the array, so the edge windows are asymmetric.
        """
        values = np.asarray(profile, dtype=np.float64)
        n = len(values)
        if n == 0:
            return values.copy()
        w = self.default_window(n) if window_size is None else max(0, int(window_size))

        idx = np.arange(n)
        lo = np.maximum(idx - w, 0)
        hi = np.minimum(idx + w, n - 1)
        cumsum = np.concatenate(([0.0], np.cumsum(values)))
        return (cumsum[hi + 1] - cumsum[lo]) / (hi - lo + 1)
