"""
Move token clean-up: OCR response parsing and transliteration to Latin
algebraic notation.
"""

import json
import logging

from .errors import MoveParseError

log = logging.getLogger(__name__)

# Order matters, substitutions run one after another. Greek capital Alpha and
# Beta look like Latin A and B but mean bishop and queen, each source letter
# maps to exactly one target.
GREEK_TO_LATIN = (
    ('Π', 'R'),  # Πύργος
    ('Α', 'B'),  # Αξιωματικός
    ('Β', 'Q'),  # Βασίλισσα
    ('Ι', 'N'),  # Ίππος
    ('Ρ', 'K'),  # Ρήγας
    ('0', '0'),
    ('O', '0'),
    ('x', 'x'),
    ('+', '+'),
    ('#', '#'),
    ('α', 'a'),
    ('β', 'b'),
    ('γ', 'c'),
    ('δ', 'd'),
    ('ε', 'e'),
    ('ζ', 'f'),
    ('η', 'g'),
    ('θ', 'h'),
)

ALPHABETS = {
    'Greek': GREEK_TO_LATIN,
    'English': (),
}

RANKS = list('12345678')

NOTATION_CHARACTERS = {
    'Greek': ['Π', 'Α', 'Β', 'Ι', 'Ρ', '0', 'O', 'x', '+', '#',
              'α', 'β', 'γ', 'δ', 'ε', 'ζ', 'η', 'θ'] + RANKS,
    'English': ['R', 'N', 'B', 'Q', 'K', 'x', '+', '#', '0', '=',
                'a', 'b', 'c', 'd', 'e', 'f', 'g', 'h'] + RANKS,
}


def notation_characters(language):
    return list(NOTATION_CHARACTERS.get(language, []))


class TokenNormalizer:
    """Rewrites raw OCR tokens into Latin algebraic notation.

    The substitution table belongs to the instance, so a test or a new
    scoresheet language can bring its own alphabet.
    """

    def __init__(self, substitutions=()):
        self.substitutions = tuple(substitutions)
        self._lookup = dict(self.substitutions)

    @classmethod
    def for_language(cls, language):
        if language not in ALPHABETS:
            log.warning("no alphabet for %r, leaving tokens untransliterated", language)
        return cls(ALPHABETS.get(language, ()))

    def normalize(self, token):
        move = token.strip()
        for source, target in self.substitutions:
            move = move.replace(source, target)
        return self.fix_special_cases(move)

    def normalize_all(self, tokens):
        return [self.normalize(t) for t in tokens]

    def fix_special_cases(self, move):
        # queenside first, otherwise "0-0-0" would become "O-O-0"
        move = move.replace('0-0-0', 'O-O-O')
        move = move.replace('0-0', 'O-O')

        if '=' in move:
            chars = list(move)
            for i in range(len(chars) - 1):
                if chars[i] == '=':
                    chars[i + 1] = self._lookup.get(chars[i + 1], chars[i + 1])
            move = ''.join(chars)
        return move


def _strip_fences(raw_text):
    text = raw_text.strip().strip('`').strip()
    # "```json\n[...]```" style replies
    if text[:4].lower() == 'json' and text[4:5] in ('\n', '\r'):
        text = text[4:]
    return text.strip()


def _load_json(raw_text):
    try:
        return json.loads(_strip_fences(raw_text))
    except json.JSONDecodeError as exc:
        raise MoveParseError(f"OCR response is not valid JSON: {exc}") from exc


def parse_move_list(raw_text):
    """Parse a JSON array of move strings out of an OCR reply."""
    if raw_text is None or not raw_text.strip():
        log.warning("empty OCR response")
        return []

    moves = _load_json(raw_text)
    if not isinstance(moves, list) or not all(isinstance(m, str) for m in moves):
        raise MoveParseError("OCR response is not a list of move strings")

    log.debug("parsed %d moves: %s", len(moves), ', '.join(moves))
    return moves


def parse_column_response(raw_text):
    """Parse {"columns": [{"columnIndex": i, "moves": [...]}, ...]}.

    Returns a dict of column index -> move list.
    """
    if raw_text is None or not raw_text.strip():
        return {}

    data = _load_json(raw_text)
    if not isinstance(data, dict) or not isinstance(data.get('columns'), list):
        raise MoveParseError("column response has no 'columns' list")

    columns = {}
    for entry in data['columns']:
        if not isinstance(entry, dict):
            raise MoveParseError(f"column entry is not an object: {entry!r}")
        index = entry.get('columnIndex')
        moves = entry.get('moves', [])
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise MoveParseError(f"bad columnIndex: {index!r}")
        if not isinstance(moves, list) or not all(isinstance(m, str) for m in moves):
            raise MoveParseError(f"moves of column {index} are not strings")
        columns[index] = moves
    return columns
