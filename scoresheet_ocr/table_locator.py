"""
Locate the handwritten notation table inside a scoresheet photo.

Two strategies, tried in order until one gives a non-empty rectangle:

  morphology - binarize, dilate once with a 3x3 kernel to bridge gaps between
               glyphs and ruling lines, label 8-connected components and keep
               the bounding box of the largest one above the noise floor
  profile    - scan smoothed ink profiles inward from each side, the first
               strong rise marks the edge; never comes back empty
"""

import logging
from collections import namedtuple

import cv2
import numpy as np

from .config import TableLocatorConfig
from .errors import TableNotFoundError
from .geometry import Region, to_gray
from .profiles import ProjectionProfiler, darker_than

log = logging.getLogger(__name__)

TableLocation = namedtuple('TableLocation', ['region', 'strategy'])


class TableBoundaryLocator:

    def __init__(self, config=None, profiler=None, strategies=None):
        self.config = config or TableLocatorConfig()
        self.profiler = profiler or ProjectionProfiler()
        self.strategies = tuple(strategies or self.config.strategies)
        self._methods = {
            'morphology': self.locate_by_morphology,
            'profile': self.locate_by_profile,
        }
        unknown = [s for s in self.strategies if s not in self._methods]
        if unknown:
            raise ValueError(f"unknown table strategies: {unknown}")

    def locate(self, image, region=None):
        """Run the strategy chain and return a TableLocation.

        Raises TableNotFoundError if every strategy came back empty, which
        only happens when the profile strategy is left out of the chain.
        """
        if region is None:
            region = Region.whole(image)

        for name in self.strategies:
            found = self._methods[name](image, region)
            if not found.is_empty:
                log.info("table found by %s: x=%d y=%d w=%d h=%d",
                         name, found.x, found.y, found.width, found.height)
                return TableLocation(found, name)
            log.info("table strategy %s found nothing", name)

        raise TableNotFoundError(
            f"no table found in {region.width}x{region.height} image "
            f"(strategies: {', '.join(self.strategies)})")

    def locate_by_morphology(self, image, region):
        cfg = self.config
        h_img, w_img = image.shape[:2]
        gray = to_gray(image)[region.y:region.bottom, region.x:region.right]
        if gray.size == 0:
            return Region.empty()

        ink = (gray < cfg.binary_threshold).astype(np.uint8)
        kernel = np.ones((cfg.dilate_kernel, cfg.dilate_kernel), np.uint8)
        dilated = cv2.dilate(ink, kernel, iterations=1)

        n, _, stats, _ = cv2.connectedComponentsWithStats(dilated, connectivity=8)

        best = None
        best_area = 0
        # label 0 is the background
        for i in range(1, n):
            x, y, w, h = (int(v) for v in stats[i, :4])
            if w < cfg.noise_floor_px or h < cfg.noise_floor_px:
                continue
            if w * h > best_area:
                best_area = w * h
                best = (x, y, w, h)

        if best is None:
            return Region.empty()

        x, y, w, h = best
        return Region.from_bounds(region.x + x, region.y + y,
                                  region.x + x + w, region.y + y + h,
                                  w_img, h_img)

    def locate_by_profile(self, image, region):
        h_img, w_img = image.shape[:2]
        ink = darker_than(self.config.binary_threshold)

        columns = self.profiler.smooth(self.profiler.profile(image, region, 'columns', ink))
        rows = self.profiler.smooth(self.profiler.profile(image, region, 'rows', ink))

        left = self.find_edge(columns, from_start=True)
        right = self.find_edge(columns, from_start=False)
        top = self.find_edge(rows, from_start=True)
        bottom = self.find_edge(rows, from_start=False)

        found = Region.from_bounds(region.x + left, region.y + top,
                                   region.x + right, region.y + bottom,
                                   w_img, h_img)
        if found.is_empty:
            # edges crossed over, the whole search area is the best guess left
            log.info("profile edges crossed (l=%d r=%d t=%d b=%d), using full region",
                     left, right, top, bottom)
            return region
        return found

    def find_edge(self, profile, from_start):
        """Position of the table edge when scanning profile from one end.

        The edge is the nearest sample, walking back outwards from the first
        value above max(0.3*max, 1.5*mean), that is below half of that
        threshold. Falls back to 10% in from that side if nothing rises
        within the first half of the scan.
        """
        cfg = self.config
        values = np.asarray(profile, dtype=np.float64)
        n = len(values)
        default = int(n * cfg.default_edge_fraction)
        if n == 0:
            return 0

        threshold = max(cfg.edge_peak_fraction * values.max(),
                        cfg.edge_mean_factor * values.mean())
        half = threshold / 2.0
        above = values > threshold

        if from_start:
            hits = np.nonzero(above[:(n + 1) // 2])[0]
            if len(hits) == 0:
                return default
            j = int(hits[0])
            while j > 0 and values[j] >= half:
                j -= 1
            return j

        hits = np.nonzero(above[n // 2:])[0]
        if len(hits) == 0:
            return n - default
        j = int(hits[-1]) + n // 2
        while j < n - 1 and values[j] >= half:
            j += 1
        return min(n, j + 1)
