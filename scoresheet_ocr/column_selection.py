"""
Pick the run of detected columns that looks most like the move columns.

Detected boundaries usually include a few extra ones: margin notes, a wide
comment column, move-number strips. Columns with outlying widths are dropped,
every window of the wanted size is scored on width uniformity, table coverage
and centering, and the best one wins. When nothing convincing is found the
table is simply divided into equal columns, so this never fails.
"""

import logging
from collections import namedtuple

import numpy as np

from .config import SelectorConfig
from .geometry import ColumnInfo, ColumnSequence

log = logging.getLogger(__name__)

Selection = namedtuple('Selection', ['boundaries', 'method', 'candidate'])


class ColumnSequenceSelector:

    def __init__(self, config=None):
        self.config = config or SelectorConfig()

    def select(self, boundaries, region, expected_columns):
        return self.choose(boundaries, region, expected_columns).boundaries

    def choose(self, boundaries, region, expected_columns):
        """Return a Selection with exactly expected_columns + 1 boundaries.

        method is one of "detected", "extrapolated" or "equal".
        """
        if expected_columns < 1:
            raise ValueError(f"expected_columns must be positive, got {expected_columns}")
        cfg = self.config

        if len(boundaries) < cfg.min_boundaries:
            log.info("  only %d boundaries, dividing table equally", len(boundaries))
            return self._equal(region, expected_columns)

        columns = self.build_columns(boundaries, region)
        if not columns:
            return self._equal(region, expected_columns)

        filtered = self.filter_outliers(columns, region, expected_columns)
        scored = self.score_all(filtered, region, expected_columns)
        if not scored and len(filtered) != len(columns):
            log.info("  no candidate among filtered columns, retrying unfiltered")
            scored = self.score_all(columns, region, expected_columns)

        if not scored:
            log.info("  no column sequence passed scoring, dividing table equally")
            return self._equal(region, expected_columns)

        best = self.best_candidate(scored)
        log.info("  best sequence: columns %s score=%.3f uniformity=%.3f coverage=%.3f",
                 best.indices, best.score, best.width_uniformity, best.coverage_ratio)

        if len(best) == expected_columns:
            return Selection(best.boundaries(), 'detected', best)

        if best.score > cfg.extrapolate_min_score:
            log.info("  extrapolating %d missing columns of width %.1f",
                     expected_columns - len(best), best.average_width)
            return Selection(self.extrapolate(best, region, expected_columns), 'extrapolated', best)

        log.info("  best sequence too short with score %.3f, dividing table equally", best.score)
        return self._equal(region, expected_columns)

    def build_columns(self, boundaries, region):
        columns = []
        for start, end in zip(boundaries[:-1], boundaries[1:]):
            if end > start:
                columns.append(ColumnInfo(len(columns), int(start), int(end), region.width))
        return columns

    def filter_outliers(self, columns, region, expected_columns):
        """Drop columns whose width doesn't fit the rest.

        A column goes if it is more than 50% off the median width, more than
        80% off region.width / expected_columns, or if it is the leading
        column and noticeably wider than the median (a comment column).
        Keeps the unfiltered list when fewer than three columns would remain.
        """
        cfg = self.config
        widths = np.array([c.width for c in columns], dtype=np.float64)
        median = float(np.median(widths))
        mean = float(widths.mean())
        expected = region.width / float(expected_columns)

        kept = []
        for pos, col in enumerate(columns):
            off_median = abs(col.width - median) / median
            off_expected = abs(col.width - expected) / expected
            wide_lead = pos == 0 and col.width > cfg.leading_column_ratio * median
            if off_median > cfg.median_deviation or off_expected > cfg.expected_deviation or wide_lead:
                log.debug("    [Outlier] column %d width=%d (median %.1f, mean %.1f, expected %.1f)",
                          col.index, col.width, median, mean, expected)
                continue
            kept.append(col)

        if len(kept) < cfg.min_filtered_columns:
            log.debug("    outlier filter left %d columns, keeping all %d", len(kept), len(columns))
            return list(columns)
        return kept

    def enumerate_candidates(self, columns, window_size):
        """Consecutive windows whose original indices never skip more than 3."""
        candidates = []
        for start in range(len(columns) - window_size + 1):
            run = columns[start:start + window_size]
            gaps = [b.index - a.index for a, b in zip(run[:-1], run[1:])]
            if all(g <= self.config.max_index_gap for g in gaps):
                candidates.append(run)
        return candidates

    def score_all(self, columns, region, expected_columns):
        window_size = min(expected_columns, len(columns))
        scored = []
        for run in self.enumerate_candidates(columns, window_size):
            seq = self.score_candidate(run, region)
            if seq is not None:
                scored.append(seq)
        return scored

    def score_candidate(self, run, region):
        """Score a window of columns, or return None if it is rejected."""
        cfg = self.config
        seq = ColumnSequence(list(run))
        widths = np.array(seq.widths, dtype=np.float64)
        mean = widths.mean()
        expected = region.width / float(len(run))

        cv = widths.std() / mean
        min_max = widths.min() / widths.max()
        range_ratio = (widths.max() - widths.min()) / mean
        coverage = (seq.end_x - seq.start_x) / float(region.width)

        reason = None
        if cv > cfg.max_cv:
            reason = f"cv {cv:.2f}"
        elif min_max < cfg.min_width_ratio:
            reason = f"min/max {min_max:.2f}"
        elif range_ratio > cfg.max_range_ratio:
            reason = f"range {range_ratio:.2f}"
        elif coverage < cfg.min_coverage:
            reason = f"coverage {coverage:.2f}"
        elif not cfg.min_avg_width_factor * expected <= mean <= cfg.max_avg_width_factor * expected:
            reason = f"average width {mean:.1f} vs expected {expected:.1f}"
        elif np.any(np.abs(widths - expected) / expected > cfg.max_column_deviation):
            reason = "column far from expected width"
        if reason:
            log.debug("    reject %s: %s", seq.indices, reason)
            return None

        uniformity = 0.4 * (1 - cv) + 0.4 * min_max + 0.2 * (1 - range_ratio / 2)
        midpoint = (seq.start_x + seq.end_x) / 2.0
        centeredness = 1 - abs(midpoint - region.center_x) / (region.width / 2.0)
        centeredness = min(1.0, max(0.0, centeredness))

        seq.width_uniformity = float(uniformity)
        seq.coverage_ratio = float(coverage)
        seq.centeredness = float(centeredness)
        seq.score = float(cfg.uniformity_weight * uniformity
                          + cfg.coverage_weight * self.coverage_score(coverage)
                          + cfg.centeredness_weight * centeredness)
        return seq

    def coverage_score(self, coverage):
        if 0.8 <= coverage <= 1.0:
            return 1.0
        if 0.7 <= coverage < 0.8:
            return 0.5 + 0.5 * (coverage - 0.7) / 0.1
        return max(0.0, 1 - abs(coverage - 0.9) / 0.5)

    def best_candidate(self, candidates):
        return max(candidates, key=lambda s: (s.score, s.width_uniformity))

    def extrapolate(self, seq, region, expected_columns):
        boundaries = seq.boundaries()
        step = seq.average_width
        while len(boundaries) < expected_columns + 1:
            boundaries.append(min(region.right, int(round(boundaries[-1] + step))))
        return boundaries

    @staticmethod
    def equal_division(region, expected_columns):
        return [region.x + i * region.width // expected_columns for i in range(expected_columns + 1)]

    def _equal(self, region, expected_columns):
        return Selection(self.equal_division(region, expected_columns), 'equal', None)
