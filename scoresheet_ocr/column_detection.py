"""
Find candidate column boundaries inside the table.

The profile counts light pixels per column, so dark vertical ruling lines and
dense handwriting show up as valleys. Three independent detectors look for
those valleys and their union is collapsed into one boundary list.
"""

import logging

import numpy as np
from scipy.signal import argrelextrema

from .config import BoundaryDetectorConfig
from .profiles import ProjectionProfiler, brighter_than

log = logging.getLogger(__name__)


class ColumnBoundaryDetector:

    def __init__(self, config=None, profiler=None):
        self.config = config or BoundaryDetectorConfig()
        self.profiler = profiler or ProjectionProfiler()

    def detect(self, image, region, expected_columns=None):
        """Boundaries in image coordinates, from region.x to region.right.

        expected_columns is only used for logging here, sizing the final
        partition is the selector's job.
        """
        cfg = self.config
        raw = self.profiler.profile(image, region, 'columns', brighter_than(cfg.threshold))
        window = max(cfg.min_smooth_window, region.width // cfg.smooth_divisor)
        smoothed = self.profiler.smooth(raw, window)

        relative = self.boundaries_from_profile(smoothed)
        log.info("  boundary candidates: %d (expecting %s columns)",
                 len(relative) - 2, expected_columns if expected_columns else '?')
        return [region.x + b for b in relative]

    def boundaries_from_profile(self, smoothed):
        s = np.asarray(smoothed, dtype=np.float64)
        n = len(s)
        if n == 0:
            return [0]

        valleys = self.find_valleys(s)
        crossings = self.find_gradient_crossings(s)
        minima = self.find_local_minima(s)
        log.debug("  valleys=%d crossings=%d minima=%d",
                  len(valleys), len(crossings), len(minima))

        found = set(valleys) | set(crossings) | set(minima)
        return self.merge(found, n)

    #x is lower than both neighbours with enough two-sided contrast
    def find_valleys(self, s):
        if len(s) < 3:
            return []
        cfg = self.config
        threshold = max(cfg.valley_min_diff, cfg.valley_diff_fraction * s.mean())
        mid = s[1:-1]
        left = mid - s[:-2]
        right = mid - s[2:]
        hits = (left < 0) & (right < 0) & ((np.abs(left) + np.abs(right)) > threshold)
        return [int(x) + 1 for x in np.nonzero(hits)[0]]

    #derivative goes from falling to rising
    def find_gradient_crossings(self, s):
        if len(s) < 3:
            return []
        threshold = self.config.gradient_fraction * s.mean()
        d = np.diff(s)
        before = d[:-1]
        after = d[1:]
        hits = (before < 0) & (after > 0) & ((np.abs(before) + np.abs(after)) > threshold)
        return [int(x) + 1 for x in np.nonzero(hits)[0]]

    #strictly below every sample within the radius, and clearly below average
    def find_local_minima(self, s):
        n = len(s)
        if n < 3:
            return []
        cfg = self.config
        radius = max(1, n // cfg.minima_radius_divisor)
        candidates = argrelextrema(s, np.less, order=radius, mode='clip')[0]
        limit = cfg.minima_mean_fraction * s.mean()
        return [int(x) for x in candidates if s[x] < limit]

    def merge(self, positions, length):
        """Sort, add both region edges, collapse boundaries closer than min_gap.

        The first of a close group survives, the right edge always survives.
        """
        cfg = self.config
        min_gap = max(cfg.min_gap, length // cfg.min_gap_divisor)
        ordered = sorted(set(p for p in positions if 0 < p < length))

        kept = [0]
        for b in ordered:
            if b - kept[-1] >= min_gap:
                kept.append(b)

        if length - kept[-1] < min_gap and len(kept) > 1:
            kept[-1] = length
        else:
            kept.append(length)
        return kept
