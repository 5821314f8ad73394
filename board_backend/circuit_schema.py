"""
Board Schema — canonical PCB board outline records.

Strictly typed, immutable models for the `pcb_board` and `autorouting_error`
elements of a circuit document.  These are the *output* types: every field
that has a default is already filled in by the time a model exists, so
consumers can match on ``board.shape`` and read fields without re-validating.

Raw, loosely-typed input goes through engines.board_normalizer first.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from enum import Enum
from typing import Annotated, Any, Callable, Dict, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    TypeAdapter,
    model_validator,
)

from .units import Length


# ─── Enums and Constants ─────────────────────────────────────────────────────

class BoardMaterial(str, Enum):
    """Laminate the board is fabricated from."""
    FR4 = "fr4"
    FR1 = "fr1"


class PositionMode(str, Enum):
    """How the board center is interpreted."""
    RELATIVE_TO_PANEL_ANCHOR = "relative_to_panel_anchor"
    NONE = "none"


class NinePointAnchor(str, Enum):
    """The nine standard relative alignment positions."""
    TOP_LEFT = "top_left"
    TOP_CENTER = "top_center"
    TOP_RIGHT = "top_right"
    CENTER_LEFT = "center_left"
    CENTER = "center"
    CENTER_RIGHT = "center_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_CENTER = "bottom_center"
    BOTTOM_RIGHT = "bottom_right"


class BoardShape(str, Enum):
    RECT = "rect"
    POLYGON = "polygon"


DEFAULT_BOARD_THICKNESS_MM = 1.4
DEFAULT_NUM_LAYERS = 4
DEFAULT_BOARD_MATERIAL = BoardMaterial.FR4

# Applied once, by the normalizer, to any of these fields left unset.
BOARD_DEFAULTS: Dict[str, Any] = {
    "thickness":  DEFAULT_BOARD_THICKNESS_MM,
    "num_layers": DEFAULT_NUM_LAYERS,
    "material":   DEFAULT_BOARD_MATERIAL,
}


# ─── Identifiers ───────────────────────────────────────────────────────────────

IdFactory = Callable[[str], str]


def prefixed_id(kind: str) -> str:
    """Fresh unique id for an element kind, e.g. ``pcb_board_3f9c0a1be27d``."""
    return f"{kind}_{uuid.uuid4().hex[:12]}"


class SequentialIdFactory:
    """Deterministic ids (``pcb_board_1``, ``pcb_board_2`` …), one counter per kind.

    Use one instance per document run when ids must be reproducible.
    Safe to share between threads.
    """

    def __init__(self, start: int = 1) -> None:
        self._start = start
        self._counters: Dict[str, itertools.count] = {}
        self._lock = threading.Lock()

    def __call__(self, kind: str) -> str:
        with self._lock:
            counter = self._counters.setdefault(kind, itertools.count(self._start))
            return f"{kind}_{next(counter)}"


# ─── Geometric Types ───────────────────────────────────────────────────────────

class Point2D(BaseModel):
    """2D point, coordinates in mm."""
    model_config = ConfigDict(frozen=True)

    x: Length = Field(..., description="X coordinate in mm")
    y: Length = Field(..., description="Y coordinate in mm")

    @model_validator(mode="before")
    @classmethod
    def accept_pair(cls, values: Any) -> Any:
        """Accept ``[x, y]`` / ``(x, y)`` as well as ``{"x": .., "y": ..}``."""
        if isinstance(values, (list, tuple)):
            if len(values) != 2:
                raise ValueError(f"Point must have exactly 2 coordinates, got {len(values)}")
            return {"x": values[0], "y": values[1]}
        return values


# ─── Board Models ──────────────────────────────────────────────────────────────

class PcbBoardBase(BaseModel):
    """Fields shared by every board shape."""
    model_config = ConfigDict(frozen=True)

    type: Literal["pcb_board"] = "pcb_board"
    pcb_board_id: str = Field(..., min_length=1)
    pcb_panel_id: Optional[str] = None
    is_subcircuit: Optional[StrictBool] = None
    subcircuit_id: Optional[str] = None
    center: Point2D
    display_offset_x: Optional[str] = Field(
        default=None,
        description="How to display the x offset for this board, usually as the user specified it",
    )
    display_offset_y: Optional[str] = Field(
        default=None,
        description="How to display the y offset for this board, usually as the user specified it",
    )
    thickness: Length = Field(..., gt=0, description="Board thickness in mm")
    num_layers: int = Field(..., ge=1, strict=True, description="Number of copper layers")
    material: BoardMaterial
    anchor_position: Optional[Point2D] = None
    anchor_alignment: Optional[NinePointAnchor] = None
    position_mode: Optional[PositionMode] = None


class PcbBoardRect(PcbBoardBase):
    """Rectangular board outline."""
    shape: Literal["rect"] = "rect"
    width: Length = Field(..., gt=0, description="Board width in mm")
    height: Length = Field(..., gt=0, description="Board height in mm")


class PcbBoardPolygon(PcbBoardBase):
    """Polygonal board outline; the last point connects back to the first."""
    shape: Literal["polygon"] = "polygon"
    outline: Tuple[Point2D, ...] = Field(..., min_length=1)


PcbBoard = Annotated[Union[PcbBoardRect, PcbBoardPolygon], Field(discriminator="shape")]

# Deprecated spelling, kept for older callers.
PCBBoard = PcbBoard

BOARD_MODELS: Dict[str, type[PcbBoardBase]] = {
    BoardShape.RECT.value: PcbBoardRect,
    BoardShape.POLYGON.value: PcbBoardPolygon,
}

# For re-reading records that are already canonical (e.g. a saved document).
pcb_board_adapter: TypeAdapter[PcbBoard] = TypeAdapter(PcbBoard)


# ─── Diagnostics ─────────────────────────────────────────────────────────────

class AutoroutingError(BaseModel):
    """The autorouter failed to route a portion of the board.

    Carried through unchanged; only presence and string typing are checked.
    """
    model_config = ConfigDict(frozen=True)

    type: Literal["autorouting_error"] = "autorouting_error"
    pcb_error_id: StrictStr = Field(
        ...,
        validation_alias=AliasChoices("pcb_error_id", "id"),
    )
    message: StrictStr
