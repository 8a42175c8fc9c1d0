"""
Default move validator.

Syntax is checked with a SAN pattern, legality by replaying the game on a
python-chess board. Statuses are "ok", "warning" or "error".
"""

import logging
import re
from dataclasses import dataclass

import chess

log = logging.getLogger(__name__)

SAN_PATTERN = re.compile(r'^([KQRBN]?[a-h]?[1-8]?x?[a-h][1-8](=[QRBN])?[+#]?|O-O(-O)?[+#]?)$')
CASTLING_PATTERN = re.compile(r'^[0Oo]-[0Oo](-[0Oo])?[+#]?$')
VALID_PROMOTIONS = ('=Q', '=R', '=B', '=N')

OK = 'ok'
WARNING = 'warning'
ERROR = 'error'


@dataclass
class MoveVerdict:
    move_number: int
    notation: str
    normalized: str
    status: str = OK
    message: str = ''

    @property
    def valid(self):
        return self.status != ERROR

    def to_dict(self):
        return {
            'move_number': self.move_number,
            'text': self.notation,
            'normalized': self.normalized,
            'status': self.status,
            'message': self.message,
            'valid': self.valid,
        }


def normalize_castling(move):
    if not CASTLING_PATTERN.match(move):
        return move
    suffix = move[-1] if move.endswith(('+', '#')) else ''
    if move.count('-') == 2:
        return 'O-O-O' + suffix
    return 'O-O' + suffix


class MoveValidator:

    def validate_moves(self, moves):
        """One verdict per move of a single side, numbered from 1."""
        verdicts = []
        for i, raw in enumerate(moves):
            move = (raw or '').strip()
            normalized = normalize_castling(move)
            status, message = self.check_syntax(normalized, i + 1)
            verdicts.append(MoveVerdict(i + 1, raw or '', normalized, status, message))

        # two checks in a row by the same side is usually a misread
        for prev, cur in zip(verdicts[:-1], verdicts[1:]):
            if cur.status == OK and prev.normalized.endswith('+') and cur.normalized.endswith('+'):
                cur.status = WARNING
                cur.message = (f"Moves {prev.move_number}-{cur.move_number}: consecutive checks, "
                               "please verify these moves")
        return verdicts

    def check_syntax(self, move, move_number):
        if not move:
            return ERROR, f"Move {move_number}: Empty or whitespace move"

        if not SAN_PATTERN.match(move):
            message = f"Move {move_number}: Invalid move syntax '{move}'"
            if '=' in move and not move.rstrip('+#').endswith(VALID_PROMOTIONS):
                message += ". Valid promotions are: " + ', '.join(VALID_PROMOTIONS)
            return ERROR, message

        return OK, ''

    def validate_game(self, pairs):
        """Replay validated pairs on a board and flag moves that are illegal.

        Replay stops at the first missing, invalid or illegal move, later
        moves keep their syntax verdicts. Returns the same pairs.
        """
        board = chess.Board()
        for pair in pairs:
            for verdict in (pair.white, pair.black):
                if verdict is None or verdict.status == ERROR:
                    return pairs
                try:
                    board.push_san(verdict.normalized)
                except chess.AmbiguousMoveError:
                    self._downgrade(verdict, "ambiguous in position")
                    return pairs
                except ValueError:
                    self._downgrade(verdict, "illegal in position")
                    return pairs
        return pairs

    def _downgrade(self, verdict, reason):
        verdict.status = WARNING
        text = f"Move {verdict.move_number} '{verdict.normalized}': {reason}"
        verdict.message = f"{verdict.message}; {text}" if verdict.message else text
        log.debug("  %s", text)
