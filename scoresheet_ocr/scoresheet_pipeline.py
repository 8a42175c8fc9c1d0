"""
Scoresheet OCR Pipeline
These are the steps for turning a scoresheet photo into PGN
1. Table location - find the handwritten table (morphology, profile fallback)
2. Column layout - detect column boundaries, keep the best run of move columns
3. Column crops - cut one full-height image per column
4. OCR - read every column through the recognizer, in parallel
5. Assembly - transliterate, merge white/black columns, pair moves, render PGN
6. Validation - per-move syntax verdicts, then a legality replay

"""

import argparse
import io
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List

import cv2
import numpy as np
from PIL import Image

from .column_detection import ColumnBoundaryDetector
from .column_selection import ColumnSequenceSelector
from .config import settings as default_settings
from .errors import ImageLoadError
from .geometry import Region, crop
from .notation import TokenNormalizer, parse_column_response, parse_move_list
from .profiles import ProjectionProfiler
from .recognizers import TesseractRecognizer
from .table_locator import TableBoundaryLocator, TableLocation
from .transcript import PgnMetadata, TranscriptAssembler, ValidatedPair
from .validation import ERROR, WARNING, MoveValidator

log = logging.getLogger(__name__)


@dataclass
class Segmentation:
    table_region: Region
    table_strategy: str
    column_boundaries: List[int]
    selection_method: str
    detected_boundaries: List[int] = field(default_factory=list)

    @property
    def column_widths(self):
        b = self.column_boundaries
        return [b[i + 1] - b[i] for i in range(len(b) - 1)]


@dataclass
class ScoresheetResult:
    pgn: str
    pairs: list
    verdicts: List[ValidatedPair]
    white_moves: List[str]
    black_moves: List[str]
    column_moves: Dict[int, List[str]]
    segmentation: Segmentation
    timings: Dict[str, float] = field(default_factory=dict)


def load_image(source):
    """Decode a path or raw bytes into a BGR array."""
    if isinstance(source, np.ndarray):
        if source.size == 0:
            raise ImageLoadError("image is empty")
        return source

    try:
        if isinstance(source, (bytes, bytearray)):
            pil_img = Image.open(io.BytesIO(source)).convert('RGB')
        else:
            if not os.path.exists(source):
                raise ImageLoadError(f"Image file not found: {source}")
            pil_img = Image.open(source).convert('RGB')
    except OSError as exc:
        raise ImageLoadError(f"Image could not be read: {exc}") from exc

    img = cv2.cvtColor(np.array(pil_img), cv2.COLOR_RGB2BGR)
    if img.size == 0:
        raise ImageLoadError("image is empty")
    return img


def encode_jpeg(image, quality=95):
    ok, buf = cv2.imencode('.jpg', image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("could not encode column image")
    return buf.tobytes()


class ScoresheetPipeline:

    def __init__(self, recognizer=None, validator=None, settings=None):
        self.settings = settings or default_settings
        self.recognizer = recognizer or TesseractRecognizer(self.settings.ocr)
        self.validator = validator or MoveValidator()

        profiler = ProjectionProfiler(self.settings.profile)
        self.table_locator = TableBoundaryLocator(self.settings.table, profiler)
        self.detector = ColumnBoundaryDetector(self.settings.boundaries, profiler)
        self.selector = ColumnSequenceSelector(self.settings.selector)
        self.assembler = TranscriptAssembler(self.settings.pgn)

    def process(self, image, language=None, expected_columns=6, mode='columns',
                auto_crop=True, metadata=None):
        language = language or self.settings.ocr.language
        if mode not in ('columns', 'whole'):
            raise ValueError(f"unknown mode: {mode!r}")
        timings = {}
        starttime = time.time()

        img = load_image(image)
        h, w = img.shape[:2]
        log.info("Image: %dx%d, language=%s, columns=%d, mode=%s", w, h, language, expected_columns, mode)

        log.info("Step 1: Table location")
        t0 = time.time()
        location = self.locate_table(img, auto_crop)
        timings['step1_table'] = time.time() - t0

        log.info("Step 2: Column layout")
        t0 = time.time()
        segmentation = self.segment_table(img, location, expected_columns)
        timings['step2_columns'] = time.time() - t0
        log.info("  Boundaries (%s): %s", segmentation.selection_method, segmentation.column_boundaries)

        log.info("Step 3+4: Column crops and OCR")
        t0 = time.time()
        if mode == 'whole':
            column_moves = self.read_whole_table(img, segmentation, language, expected_columns)
        else:
            column_moves = self.read_columns(self.crop_columns(img, segmentation), language)
        timings['step4_ocr'] = time.time() - t0
        log.info("  Read %d of %d columns", len(column_moves), expected_columns)

        log.info("Step 5: Assembly")
        t0 = time.time()
        transcript = self.assembler.assemble(column_moves, metadata)
        timings['step5_assembly'] = time.time() - t0
        log.info("  %d white, %d black moves", len(transcript.white_moves), len(transcript.black_moves))

        log.info("Step 6: Validation")
        t0 = time.time()
        verdicts = self.validate(transcript)
        timings['step6_validation'] = time.time() - t0

        self.log_timings(timings, time.time() - starttime)

        return ScoresheetResult(
            pgn=transcript.pgn,
            pairs=transcript.pairs,
            verdicts=verdicts,
            white_moves=transcript.white_moves,
            black_moves=transcript.black_moves,
            column_moves=transcript.columns,
            segmentation=segmentation,
            timings=timings,
        )

    def segment(self, image, expected_columns=6, auto_crop=True):
        img = load_image(image)
        return self.segment_table(img, self.locate_table(img, auto_crop), expected_columns)

    def locate_table(self, img, auto_crop=True):
        if not auto_crop:
            return TableLocation(Region.whole(img), 'none')
        return self.table_locator.locate(img)

    def segment_table(self, img, location, expected_columns):
        detected = self.detector.detect(img, location.region, expected_columns)
        selection = self.selector.choose(detected, location.region, expected_columns)
        return Segmentation(
            table_region=location.region,
            table_strategy=location.strategy,
            column_boundaries=list(selection.boundaries),
            selection_method=selection.method,
            detected_boundaries=detected,
        )

    def crop_columns(self, img, segmentation):
        """JPEG bytes per column in order, None for zero-width columns."""
        table = segmentation.table_region
        b = segmentation.column_boundaries
        images = []
        for i in range(len(b) - 1):
            width = b[i + 1] - b[i]
            if width <= 0:
                images.append(None)
                continue
            column = crop(img, Region(b[i], table.y, width, table.height))
            images.append(encode_jpeg(column, self.settings.ocr.jpeg_quality))
        return images

    def read_columns(self, column_images, language):
        """OCR every column on a bounded pool, keyed by column index.

        A column whose OCR or parsing fails is logged and left out.
        """
        normalizer = TokenNormalizer.for_language(language)
        jobs = [(i, data) for i, data in enumerate(column_images) if data is not None]
        if not jobs:
            return {}

        results = {}
        workers = max(1, min(self.settings.ocr.max_workers, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.read_column, data, language, normalizer): i
                       for i, data in jobs}
            for future in as_completed(futures):
                i = futures[future]
                try:
                    moves = future.result()
                except Exception:
                    log.error("  Column %d: OCR failed, skipping", i, exc_info=True)
                    continue
                if not moves:
                    log.warning("  Column %d: no moves extracted", i)
                    continue
                log.info("  Column %d: %d moves", i, len(moves))
                results[i] = moves

        return dict(sorted(results.items()))

    def read_column(self, image_bytes, language, normalizer):
        raw = self.recognizer.extract_text(image_bytes, language)
        return normalizer.normalize_all(parse_move_list(raw))

    def read_whole_table(self, img, segmentation, language, expected_columns):
        normalizer = TokenNormalizer.for_language(language)
        table = encode_jpeg(crop(img, segmentation.table_region), self.settings.ocr.jpeg_quality)
        raw = self.recognizer.extract_columns(table, language, expected_columns)
        columns = parse_column_response(raw)
        return {i: normalizer.normalize_all(moves) for i, moves in sorted(columns.items())}

    def validate(self, transcript):
        white = self.validator.validate_moves(transcript.white_moves)
        black = self.validator.validate_moves(transcript.black_moves)
        self.log_verdicts('White', white)
        self.log_verdicts('Black', black)

        pairs = self.assembler.attach_verdicts(transcript.pairs, white, black)
        replay = getattr(self.validator, 'validate_game', None)
        if replay is not None:
            replay(pairs)
        return pairs

    def log_verdicts(self, side, verdicts):
        for v in verdicts:
            if v.status == ERROR:
                log.error("%s move %d '%s': %s", side, v.move_number, v.notation, v.message)
            elif v.status == WARNING:
                log.warning("%s move %d '%s': %s", side, v.move_number, v.notation, v.message)

    def log_timings(self, timings, total_time):
        log.info("timing summary")
        for step, t in sorted(timings.items()):
            pct = (t / total_time) * 100 if total_time > 0 else 0.0
            log.info("  %-20s: %6.2fs (%5.1f%%)", step, t, pct)
        log.info("  %-20s: %6.2fs", 'TOTAL', total_time)

    def describe_columns(self, segmentation, image_height):
        """JSON-ready summary of a segmentation, used by the debug endpoint."""
        b = segmentation.column_boundaries
        table = segmentation.table_region
        return {
            'imageHeight': image_height,
            'actualColumns': len(b) - 1,
            'columnBoundaries': b,
            'selectionMethod': segmentation.selection_method,
            'columnData': [
                {'columnIndex': i, 'startPosition': b[i], 'endPosition': b[i + 1],
                 'width': b[i + 1] - b[i]}
                for i in range(len(b) - 1)
            ],
            'tableBoundaries': dict(table.to_dict(), strategy=segmentation.table_strategy),
        }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Read a chess scoresheet photo into PGN")
    parser.add_argument('image')
    parser.add_argument('--language', default=default_settings.ocr.language)
    parser.add_argument('--columns', type=int, default=6)
    parser.add_argument('--mode', choices=('columns', 'whole'), default='columns')
    parser.add_argument('--no-crop', action='store_true', help="treat the whole photo as the table")
    parser.add_argument('--white')
    parser.add_argument('--black')
    parser.add_argument('--round')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    pipeline = ScoresheetPipeline()
    result = pipeline.process(
        args.image,
        language=args.language,
        expected_columns=args.columns,
        mode=args.mode,
        auto_crop=not args.no_crop,
        metadata=PgnMetadata(white=args.white, black=args.black, round=args.round),
    )

    print(result.pgn)
    errors = sum(1 for p in result.verdicts for v in (p.white, p.black) if v and v.status == ERROR)
    print(f"Moves: {len(result.white_moves)} white, {len(result.black_moves)} black, {errors} invalid")


if __name__ == '__main__':
    main()
