"""Shared fixtures: synthetic scoresheet images and fake OCR collaborators."""

import json
import threading

import numpy as np
import pytest

from scoresheet_ocr.config import OcrConfig, Settings
from scoresheet_ocr.recognizers import Recognizer
from scoresheet_ocr.scoresheet_pipeline import ScoresheetPipeline

MARGIN = 60
COLUMN_WIDTH = 100
TABLE_ROWS = 400
SEPARATOR_HALF = 6

# one reply per column of a six column sheet
SCHOLARS_MATE = [
    ["e4", "Bc4"],
    ["e5", "Nc6"],
    ["Qh5", "Qxf7#"],
    ["Nf6"],
    [],
    [],
]


def draw_separator(img, x, top, bottom, half=SEPARATOR_HALF):
    """Wedge shaped ruling line, darkest in its center column."""
    span = bottom - top
    for k in range(-half, half + 1):
        length = int(round(span * (1 - abs(k) / float(half + 1))))
        img[top:top + length, x + k] = 0


def draw_scoresheet(columns=6, column_width=COLUMN_WIDTH, rows=TABLE_ROWS, margin=MARGIN):
    """White page with a ruled table of `columns` equal columns."""
    width = columns * column_width + 2 * margin
    height = rows + 2 * margin
    img = np.full((height, width, 3), 255, np.uint8)

    left, right = margin, margin + columns * column_width
    top, bottom = margin, margin + rows
    img[top:top + 3, left - SEPARATOR_HALF:right + SEPARATOR_HALF + 1] = 0
    img[bottom - 3:bottom, left - SEPARATOR_HALF:right + SEPARATOR_HALF + 1] = 0
    for i in range(columns + 1):
        draw_separator(img, left + i * column_width, top, bottom)
    return img


@pytest.fixture
def scoresheet():
    return draw_scoresheet()


@pytest.fixture
def white_image():
    return np.full((200, 300, 3), 255, np.uint8)


@pytest.fixture
def black_image():
    return np.zeros((200, 300, 3), np.uint8)


@pytest.fixture
def noise_image():
    rng = np.random.RandomState(7)
    return rng.randint(0, 256, size=(240, 320, 3)).astype(np.uint8)


class FakeRecognizer(Recognizer):
    """Hands out canned replies in call order.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, replies=(), whole=None):
        self.replies = list(replies)
        self.whole = whole
        self.calls = []
        self._lock = threading.Lock()

    def extract_text(self, image_bytes, language):
        with self._lock:
            self.calls.append((len(image_bytes), language))
            reply = self.replies.pop(0) if self.replies else '[]'
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            return json.dumps(reply, ensure_ascii=False)
        return reply

    def extract_columns(self, image_bytes, language, expected_columns):
        if self.whole is None:
            return super().extract_columns(image_bytes, language, expected_columns)
        return json.dumps(self.whole, ensure_ascii=False)


@pytest.fixture
def serial_settings():
    # one worker keeps the recognizer calls in column order
    return Settings(ocr=OcrConfig(language='English', max_workers=1))


@pytest.fixture
def make_pipeline(serial_settings):
    def factory(replies=(), whole=None):
        recognizer = FakeRecognizer(replies, whole)
        return ScoresheetPipeline(recognizer=recognizer, settings=serial_settings)
    return factory
