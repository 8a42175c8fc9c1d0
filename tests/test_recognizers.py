"""Tests for the Tesseract recognizer, with pytesseract stubbed out."""

import json

import cv2
import numpy as np
import pytest

from scoresheet_ocr import recognizers
from scoresheet_ocr.config import OcrConfig
from scoresheet_ocr.recognizers import Recognizer, TesseractRecognizer, decode_image_bytes


@pytest.fixture
def column_jpeg():
    img = np.full((120, 40, 3), 255, np.uint8)
    img[30:40, 10:30] = 0
    ok, buf = cv2.imencode('.jpg', img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def tesseract_calls(monkeypatch):
    calls = []

    def fake_image_to_string(image, lang=None, config=None):
        calls.append({'shape': image.shape, 'lang': lang, 'config': config,
                      'values': set(np.unique(image).tolist())})
        return "1. e4\n2. Nf3 \n3... O-O\n\n"

    monkeypatch.setattr(recognizers.pytesseract, 'image_to_string', fake_image_to_string)
    return calls


class TestTesseractRecognizer:
    def test_move_numbers_dropped(self, column_jpeg, tesseract_calls) -> None:
        raw = TesseractRecognizer().extract_text(column_jpeg, 'English')
        assert json.loads(raw) == ["e4", "Nf3", "O-O"]

    def test_binarized_input(self, column_jpeg, tesseract_calls) -> None:
        TesseractRecognizer().extract_text(column_jpeg, 'English')
        call = tesseract_calls[0]
        assert call['shape'] == (120, 40)
        assert call['values'] <= {0, 255}

    def test_language_mapping(self, column_jpeg, tesseract_calls) -> None:
        rec = TesseractRecognizer()
        rec.extract_text(column_jpeg, 'Greek')
        rec.extract_text(column_jpeg, 'Klingon')
        assert [c['lang'] for c in tesseract_calls] == ['ell', 'eng']

    def test_whitelist(self) -> None:
        options = TesseractRecognizer(OcrConfig(tesseract_config='--psm 4')).tesseract_options('English')
        assert options.startswith('--psm 4 -c tessedit_char_whitelist=')
        assert 'N' in options and '-' in options

    def test_unknown_language_only_whitelists_symbols(self) -> None:
        rec = TesseractRecognizer(OcrConfig(tesseract_config='--psm 6'))
        assert rec.tesseract_options('Klingon') == '--psm 6 -c tessedit_char_whitelist=-='

    def test_whole_table_unsupported(self, column_jpeg) -> None:
        with pytest.raises(NotImplementedError):
            TesseractRecognizer().extract_columns(column_jpeg, 'English', 6)


def test_base_recognizer_is_abstract() -> None:
    with pytest.raises(NotImplementedError):
        Recognizer().extract_text(b'', 'English')


def test_decode_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        decode_image_bytes(b'\x00\x01\x02')
