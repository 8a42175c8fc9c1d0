"""
Tunable constants for the scoresheet pipeline.

The selector thresholds were tuned by hand on real scoresheet photos, they are
kept here so they can be recalibrated without touching the algorithms.
"""

import logging
import os
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("ignoring %s=%r, not an integer; using %d", name, raw, default)
        return default


@dataclass(frozen=True)
class ProfileConfig:
    # ink on light paper
    ink_threshold: int = 128
    # window = length / smooth_divisor, never below min_smooth_window
    smooth_divisor: int = 100
    min_smooth_window: int = 3


@dataclass(frozen=True)
class TableLocatorConfig:
    binary_threshold: int = 128
    dilate_kernel: int = 3
    noise_floor_px: int = 5
    # tried in order until one returns a non-empty region
    strategies: tuple = ("morphology", "profile")
    edge_peak_fraction: float = 0.3
    edge_mean_factor: float = 1.5
    default_edge_fraction: float = 0.1


@dataclass(frozen=True)
class BoundaryDetectorConfig:
    threshold: int = 128
    smooth_divisor: int = 200
    min_smooth_window: int = 2
    valley_min_diff: float = 1.0
    valley_diff_fraction: float = 0.05
    gradient_fraction: float = 0.02
    minima_radius_divisor: int = 100
    minima_mean_fraction: float = 0.8
    min_gap: int = 3
    min_gap_divisor: int = 100


@dataclass(frozen=True)
class SelectorConfig:
    min_boundaries: int = 4
    # outlier filtering
    median_deviation: float = 0.5
    expected_deviation: float = 0.8
    leading_column_ratio: float = 1.4
    min_filtered_columns: int = 3
    max_index_gap: int = 3
    # candidate rejection
    max_cv: float = 0.4
    min_width_ratio: float = 0.5
    max_range_ratio: float = 1.0
    min_coverage: float = 0.7
    min_avg_width_factor: float = 0.4
    max_avg_width_factor: float = 2.5
    max_column_deviation: float = 1.5
    # scoring weights
    uniformity_weight: float = 0.5
    coverage_weight: float = 0.4
    centeredness_weight: float = 0.1
    extrapolate_min_score: float = 0.7


@dataclass(frozen=True)
class OcrConfig:
    # environment is read per instance, not at import
    language: str = field(default_factory=lambda: os.environ.get("SCORESHEET_LANGUAGE", "English"))
    max_workers: int = field(default_factory=lambda: _env_int("SCORESHEET_OCR_WORKERS", 4))
    tesseract_config: str = field(
        default_factory=lambda: os.environ.get("SCORESHEET_TESSERACT_CONFIG", "--psm 6"))
    tesseract_lang: str = "eng"
    jpeg_quality: int = 95


@dataclass(frozen=True)
class PgnConfig:
    unknown_player: str = "?"
    result: str = "*"
    date_format: str = "%Y.%m.%d"


@dataclass(frozen=True)
class Settings:
    profile: ProfileConfig = field(default_factory=ProfileConfig)
    table: TableLocatorConfig = field(default_factory=TableLocatorConfig)
    boundaries: BoundaryDetectorConfig = field(default_factory=BoundaryDetectorConfig)
    selector: SelectorConfig = field(default_factory=SelectorConfig)
    ocr: OcrConfig = field(default_factory=OcrConfig)
    pgn: PgnConfig = field(default_factory=PgnConfig)


settings = Settings()
