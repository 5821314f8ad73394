"""PCB Board Backend - board outline normalization for circuit documents.

Raw pcb_board records go in, canonical rect/polygon boards come out::

    from board_backend import normalize_board
    board = normalize_board({"center": {"x": 0, "y": 0}, "width": "10mm", "height": 20})
    assert board.shape == "rect"
"""

__version__ = "0.1.0"

from .circuit_schema import (  # noqa: E402
    AutoroutingError,
    BoardMaterial,
    NinePointAnchor,
    PcbBoard,
    PcbBoardPolygon,
    PcbBoardRect,
    Point2D,
    PositionMode,
    SequentialIdFactory,
    prefixed_id,
)
from .engines.board_normalizer import (  # noqa: E402
    FailureCode,
    NormalizationError,
    normalize_board,
    parse_autorouting_error,
)
from .engines.document_normalizer import normalize_circuit_elements  # noqa: E402

__all__ = [
    "AutoroutingError", "BoardMaterial", "NinePointAnchor", "PcbBoard",
    "PcbBoardPolygon", "PcbBoardRect", "Point2D", "PositionMode",
    "SequentialIdFactory", "prefixed_id",
    "FailureCode", "NormalizationError", "normalize_board", "parse_autorouting_error",
    "normalize_circuit_elements",
]
