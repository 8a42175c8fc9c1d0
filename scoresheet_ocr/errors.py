"""Exceptions raised by the scoresheet OCR pipeline."""


class ScoresheetError(Exception):
    pass


class ImageLoadError(ScoresheetError):
    """Image path is missing or its bytes can't be decoded."""


class TableNotFoundError(ScoresheetError):
    """No table locating strategy produced a usable region."""


class MoveParseError(ScoresheetError, ValueError):
    """OCR output is not a move list / column response."""
