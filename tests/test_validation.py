"""Tests for the default move validator."""

import pytest

from scoresheet_ocr.transcript import TranscriptAssembler
from scoresheet_ocr.validation import ERROR, OK, WARNING, MoveValidator, normalize_castling


@pytest.fixture
def validator():
    return MoveValidator()


def replay(validator, white, black):
    assembler = TranscriptAssembler()
    pairs = assembler.pair_moves(white, black)
    validated = assembler.attach_verdicts(
        pairs, validator.validate_moves(white), validator.validate_moves(black))
    return validator.validate_game(validated)


class TestSyntax:
    def test_valid_moves(self, validator) -> None:
        verdicts = validator.validate_moves(["e4", "Nf3", "Bxc6", "exd8=Q+", "O-O", "Raxe1#"])
        assert [v.status for v in verdicts] == [OK] * 6
        assert [v.move_number for v in verdicts] == [1, 2, 3, 4, 5, 6]

    def test_empty_move(self, validator) -> None:
        verdict = validator.validate_moves(["  "])[0]
        assert verdict.status == ERROR
        assert not verdict.valid
        assert "Empty" in verdict.message

    def test_garbage(self, validator) -> None:
        verdict = validator.validate_moves(["e4", "Zz9"])[1]
        assert verdict.status == ERROR
        assert verdict.message == "Move 2: Invalid move syntax 'Zz9'"

    def test_bad_promotion_hint(self, validator) -> None:
        verdict = validator.validate_moves(["e8=K"])[0]
        assert verdict.status == ERROR
        assert "Valid promotions are: =Q, =R, =B, =N" in verdict.message

    def test_zero_castling_accepted(self, validator) -> None:
        verdict = validator.validate_moves(["0-0-0+"])[0]
        assert verdict.status == OK
        assert verdict.normalized == "O-O-O+"
        assert verdict.notation == "0-0-0+"

    def test_consecutive_checks(self, validator) -> None:
        verdicts = validator.validate_moves(["Qh5+", "Qxf7+"])
        assert verdicts[0].status == OK
        assert verdicts[1].status == WARNING
        assert verdicts[1].valid
        assert "consecutive checks" in verdicts[1].message

    @pytest.mark.parametrize("move,expected", [
        ("0-0", "O-O"), ("o-o", "O-O"), ("0-0-0#", "O-O-O#"), ("e4", "e4"),
    ])
    def test_normalize_castling(self, move, expected) -> None:
        assert normalize_castling(move) == expected

    def test_to_dict(self, validator) -> None:
        d = validator.validate_moves(["e4"])[0].to_dict()
        assert d == {'move_number': 1, 'text': "e4", 'normalized': "e4",
                     'status': OK, 'message': '', 'valid': True}


class TestReplay:
    def test_legal_game(self, validator) -> None:
        pairs = replay(validator, ["e4", "Bc4", "Qh5", "Qxf7#"], ["e5", "Nc6", "Nf6"])
        statuses = [v.status for p in pairs for v in (p.white, p.black) if v]
        assert statuses == [OK] * 7

    def test_illegal_move_downgraded(self, validator) -> None:
        pairs = replay(validator, ["e4", "Nf6"], ["e5"])
        verdict = pairs[1].white
        assert verdict.status == WARNING
        assert verdict.valid
        assert "illegal in position" in verdict.message

    def test_ambiguous_move(self, validator) -> None:
        pairs = replay(validator, ["e4", "Nc3", "Ne2"], ["a6", "a5"])
        assert pairs[2].white.status == WARNING
        assert "ambiguous" in pairs[2].white.message

    def test_replay_stops_after_problem(self, validator) -> None:
        pairs = replay(validator, ["e4", "Ke3", "Ke3"], ["e5", "d6"])
        assert pairs[1].white.status == WARNING
        # the board never saw move 2, so later moves keep their syntax verdict
        assert pairs[1].black.status == OK
        assert pairs[2].white.status == OK

    def test_stops_at_syntax_error(self, validator) -> None:
        pairs = replay(validator, ["e4", "??", "Ke7"], ["e5", "d6"])
        assert pairs[1].white.status == ERROR
        assert pairs[2].white.status == OK
