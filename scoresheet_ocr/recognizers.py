"""
OCR collaborators.

A recognizer turns encoded image bytes into raw text the pipeline can parse:

    extract_text(image_bytes, language)  -> JSON list of move strings
    extract_columns(image_bytes, language, expected_columns)
        -> JSON {"columns": [{"columnIndex": i, "moves": [...]}, ...]}

Only extract_text is required, whole-image reading is optional.
"""

import json
import logging
import re

import cv2
import numpy as np
import pytesseract

from .config import OcrConfig
from .notation import notation_characters

log = logging.getLogger(__name__)

MOVE_NUMBER_RE = re.compile(r'^\d+\.*$')

TESSERACT_LANGS = {
    'English': 'eng',
    'Greek': 'ell',
}


class Recognizer:

    def extract_text(self, image_bytes, language):
        raise NotImplementedError

    def extract_columns(self, image_bytes, language, expected_columns):
        raise NotImplementedError(f"{type(self).__name__} can't read a whole table at once")


def decode_image_bytes(image_bytes):
    buf = np.frombuffer(image_bytes, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError("could not decode column image")
    return img


class TesseractRecognizer(Recognizer):
    """Classic OCR fallback, reads one column of moves per call."""

    def __init__(self, config=None):
        self.config = config or OcrConfig()

    def tesseract_options(self, language):
        chars = notation_characters(language) + ['-', '=']
        options = self.config.tesseract_config
        if chars:
            options += ' -c tessedit_char_whitelist=' + ''.join(chars)
        return options

    def extract_text(self, image_bytes, language):
        img = decode_image_bytes(image_bytes)
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        _, proc = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)

        text = pytesseract.image_to_string(
            proc,
            lang=TESSERACT_LANGS.get(language, self.config.tesseract_lang),
            config=self.tesseract_options(language),
        )
        # drop move numbers, the columns already encode the order
        tokens = [t for t in text.split() if not MOVE_NUMBER_RE.match(t)]
        log.debug("tesseract read %d tokens", len(tokens))
        return json.dumps(tokens, ensure_ascii=False)
