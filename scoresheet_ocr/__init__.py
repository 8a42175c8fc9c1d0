"""
Chess scoresheet OCR: find the notation table in a photo, split it into move
columns, read them through an OCR collaborator and assemble PGN.
"""

from .column_detection import ColumnBoundaryDetector
from .column_selection import ColumnSequenceSelector
from .errors import ImageLoadError, MoveParseError, ScoresheetError, TableNotFoundError
from .geometry import ColumnInfo, ColumnSequence, Region
from .notation import TokenNormalizer, parse_column_response, parse_move_list
from .profiles import ProjectionProfiler
from .scoresheet_pipeline import ScoresheetPipeline, ScoresheetResult, Segmentation, load_image
from .table_locator import TableBoundaryLocator
from .transcript import MovePair, PgnMetadata, TranscriptAssembler
from .validation import MoveValidator, MoveVerdict

__version__ = "0.1.0"
