"""
Turn per-column move lists into paired moves and PGN text.

Scoresheet columns alternate white / black from the left, so column 0, 2, 4
hold white moves and 1, 3, 5 black ones. A short side is padded with None,
assembly never fails.
"""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import PgnConfig

log = logging.getLogger(__name__)


@dataclass
class MovePair:
    move_number: int
    white: Optional[str] = None
    black: Optional[str] = None

    @property
    def is_empty(self):
        return not (self.white and self.white.strip()) and not (self.black and self.black.strip())


@dataclass
class ValidatedPair:
    move_number: int
    white: Optional[object] = None
    black: Optional[object] = None

    def to_dict(self):
        return {
            'move_number': self.move_number,
            'white': self.white.to_dict() if self.white else None,
            'black': self.black.to_dict() if self.black else None,
        }


@dataclass
class PgnMetadata:
    white: Optional[str] = None
    black: Optional[str] = None
    date: Optional[datetime.date] = None
    round: Optional[str] = None


@dataclass
class Transcript:
    white_moves: List[str]
    black_moves: List[str]
    pairs: List[MovePair]
    pgn: str
    columns: Dict[int, List[str]] = field(default_factory=dict)


class TranscriptAssembler:

    def __init__(self, config=None):
        self.config = config or PgnConfig()

    def split_columns(self, column_moves):
        """Merge column move lists into (white_moves, black_moves).

        column_moves is a list (position = column index) or a dict keyed by
        column index, missing columns simply contribute nothing.
        """
        if not isinstance(column_moves, dict):
            column_moves = dict(enumerate(column_moves))

        white, black = [], []
        for index in sorted(column_moves):
            moves = column_moves[index] or []
            if index % 2 == 0:
                white.extend(moves)
            else:
                black.extend(moves)
        return white, black

    def pair_moves(self, white_moves, black_moves):
        count = max(len(white_moves), len(black_moves))
        return [
            MovePair(
                move_number=i + 1,
                white=white_moves[i] if i < len(white_moves) else None,
                black=black_moves[i] if i < len(black_moves) else None,
            )
            for i in range(count)
        ]

    def attach_verdicts(self, pairs, white_verdicts, black_verdicts):
        validated = []
        for i, pair in enumerate(pairs):
            validated.append(ValidatedPair(
                move_number=pair.move_number,
                white=white_verdicts[i] if pair.white is not None and i < len(white_verdicts) else None,
                black=black_verdicts[i] if pair.black is not None and i < len(black_verdicts) else None,
            ))
        return validated

    def render_pgn(self, pairs, metadata=None):
        cfg = self.config
        metadata = metadata or PgnMetadata()
        game_date = metadata.date or datetime.date.today()

        headers = [('Date', game_date.strftime(cfg.date_format))]
        if metadata.round:
            headers.append(('Round', metadata.round))
        headers.append(('White', metadata.white or cfg.unknown_player))
        headers.append(('Black', metadata.black or cfg.unknown_player))
        headers.append(('Result', cfg.result))

        lines = []
        for pair in pairs:
            if pair.is_empty:
                continue
            parts = []
            if pair.white and pair.white.strip():
                parts.append(f"{pair.move_number}. {pair.white}")
            if pair.black and pair.black.strip():
                parts.append(pair.black)
            lines.append(' '.join(parts))

        header_text = '\n'.join(f'[{key} "{_escape(value)}"]' for key, value in headers)
        body = '\n'.join(lines) + f" {cfg.result}"
        return f"{header_text}\n\n{body}\n"

    def assemble(self, column_moves, metadata=None):
        if not isinstance(column_moves, dict):
            column_moves = dict(enumerate(column_moves))
        white, black = self.split_columns(column_moves)
        if abs(len(white) - len(black)) > 1:
            log.warning("white has %d moves, black %d", len(white), len(black))
        pairs = self.pair_moves(white, black)
        return Transcript(white, black, pairs, self.render_pgn(pairs, metadata), dict(column_moves))


def _escape(value):
    return str(value).replace('\\', '\\\\').replace('"', '\\"')
