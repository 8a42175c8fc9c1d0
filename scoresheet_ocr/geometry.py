"""Rectangles, columns and column-sequence value objects."""

from dataclasses import dataclass, field
from typing import List

import cv2
import numpy as np


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def empty(cls):
        return cls(0, 0, 0, 0)

    @classmethod
    def whole(cls, image):
        h, w = image.shape[:2]
        return cls(0, 0, w, h)

    @classmethod
    def from_bounds(cls, x1, y1, x2, y2, image_width, image_height):
        """Build a region from corner coordinates, clamped to the image."""
        x1 = int(min(max(x1, 0), image_width))
        x2 = int(min(max(x2, 0), image_width))
        y1 = int(min(max(y1, 0), image_height))
        y2 = int(min(max(y2, 0), image_height))
        if x2 <= x1 or y2 <= y1:
            return cls.empty()
        return cls(x1, y1, x2 - x1, y2 - y1)

    @property
    def right(self):
        return self.x + self.width

    @property
    def bottom(self):
        return self.y + self.height

    @property
    def is_empty(self):
        return self.width <= 0 or self.height <= 0

    @property
    def center_x(self):
        return self.x + self.width / 2.0

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'width': self.width, 'height': self.height}


def crop(image, region):
    """Return a copy of the pixels inside region (never a view)."""
    return image[region.y:region.bottom, region.x:region.right].copy()


def to_gray(image):
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


@dataclass(frozen=True)
class ColumnInfo:
    index: int
    start_x: int
    end_x: int
    region_width: int

    @property
    def width(self):
        return self.end_x - self.start_x

    @property
    def relative_width(self):
        return self.width / self.region_width if self.region_width else 0.0


@dataclass
class ColumnSequence:
    """A run of neighbouring columns evaluated together as move columns."""
    columns: List[ColumnInfo]
    average_width: float = 0.0
    width_uniformity: float = 0.0
    coverage_ratio: float = 0.0
    centeredness: float = 0.0
    score: float = 0.0
    widths: List[int] = field(default_factory=list)

    def __post_init__(self):
        self.widths = [c.width for c in self.columns]
        self.average_width = float(np.mean(self.widths)) if self.widths else 0.0

    def __len__(self):
        return len(self.columns)

    @property
    def start_x(self):
        return self.columns[0].start_x

    @property
    def end_x(self):
        return self.columns[-1].end_x

    @property
    def indices(self):
        return [c.index for c in self.columns]

    def boundaries(self):
        return [c.start_x for c in self.columns] + [self.end_x]
