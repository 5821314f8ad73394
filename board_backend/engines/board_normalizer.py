"""
Board Normalizer — raw pcb_board records → canonical PcbBoard.

Pipeline (each stage is a pure function, usable on its own):
  1. detect_shape_conflict  – width/height and outline together is always an error
  2. infer_board_shape      – fill in a missing ``shape`` from the fields supplied
  3. shape check            – tag must be rect/polygon and agree with the fields
  4. apply_board_defaults   – thickness / num_layers / material / id, exactly once
  5. model construction     – frozen PcbBoardRect or PcbBoardPolygon

Every failure is a single NormalizationError naming the rule that fired and
the offending field paths.  Nothing is retried and no partial board is ever
returned.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError

from ..circuit_schema import (
    BOARD_DEFAULTS,
    BOARD_MODELS,
    AutoroutingError,
    BoardShape,
    IdFactory,
    PcbBoard,
    prefixed_id,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FailureCode",
    "NormalizationError",
    "apply_board_defaults",
    "detect_shape_conflict",
    "failure_from_validation_error",
    "infer_board_shape",
    "normalize_board",
    "parse_autorouting_error",
]


# ── Failure taxonomy ──────────────────────────────────────────────────────────

class FailureCode(str, Enum):
    CONFLICTING_SHAPE_FIELDS = "conflicting_shape_fields"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNKNOWN_OR_MISMATCHED_SHAPE = "unknown_or_mismatched_shape"
    INVALID_ENUMERATION_VALUE = "invalid_enumeration_value"
    INVALID_FIELD_TYPE = "invalid_field_type"


class NormalizationError(ValueError):
    """A record was rejected.

    code    – which rule fired
    fields  – offending field paths, e.g. ("width", "outline[2].x")
    issues  – the individual validation issues behind the failure
    """

    def __init__(
        self,
        code: FailureCode,
        message: str,
        fields: Sequence[str] = (),
        issues: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.fields: Tuple[str, ...] = tuple(fields)
        self.issues: List[Dict[str, Any]] = list(issues or [])

    def with_path_prefix(self, prefix: str) -> "NormalizationError":
        """Same failure, with every path nested under ``prefix`` (e.g. ``[3]``)."""
        def _join(path: str) -> str:
            if not path:
                return prefix
            return f"{prefix}{path}" if path.startswith("[") else f"{prefix}.{path}"

        return NormalizationError(
            self.code,
            f"{prefix}: {self.message}",
            fields=[_join(f) for f in self.fields] or [prefix],
            issues=[{**issue, "loc": _join(issue.get("loc", ""))} for issue in self.issues],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "fields": list(self.fields),
            "issues": self.issues,
        }

    def __repr__(self) -> str:
        return f"NormalizationError({self.code.value!r}, {self.message!r}, fields={self.fields!r})"


# ── Translating pydantic errors ───────────────────────────────────────────────

_SHAPE_FIELDS = {"shape", "width", "height", "outline"}
_ENUM_FIELDS = {"material", "anchor_alignment", "position_mode"}
_ENUM_ERROR_TYPES = {"enum", "literal_error"}

# Lower rank wins when a record has several problems.
_CODE_RANK = {
    FailureCode.MISSING_REQUIRED_FIELD: 0,
    FailureCode.INVALID_ENUMERATION_VALUE: 1,
    FailureCode.INVALID_FIELD_TYPE: 2,
}


def _format_loc(loc: Sequence[Any]) -> str:
    """('outline', 2, 'x') -> 'outline[2].x'"""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _classify(error: Dict[str, Any]) -> Tuple[FailureCode, Tuple[Any, ...]]:
    """Return the failure code and the location it is reported on."""
    loc = tuple(error.get("loc") or ())
    if error["type"] == "missing":
        if len(loc) == 1:
            return FailureCode.MISSING_REQUIRED_FIELD, loc
        # A point lacking a coordinate is a malformed point, not an absent field.
        return FailureCode.INVALID_FIELD_TYPE, loc[:-1]
    if loc and loc[0] in _ENUM_FIELDS and error["type"] in _ENUM_ERROR_TYPES:
        return FailureCode.INVALID_ENUMERATION_VALUE, loc
    return FailureCode.INVALID_FIELD_TYPE, loc


def failure_from_validation_error(exc: ValidationError, kind: str = "pcb_board") -> NormalizationError:
    """Collapse a pydantic ValidationError into one NormalizationError.

    Shape fields (width/height/outline) are validated before common fields,
    so their issues outrank everything else; within the same stage a missing
    field outranks a bad enumeration value, which outranks a bad type.
    """
    ranked = []
    issues = []
    for error in exc.errors(include_url=False, include_input=False):
        loc = tuple(error.get("loc") or ())
        code, field_loc = _classify(error)
        stage = 0 if loc and loc[0] in _SHAPE_FIELDS else 1
        ranked.append(((stage, _CODE_RANK[code]), code, _format_loc(field_loc), error["msg"]))
        issues.append({"loc": _format_loc(loc), "type": error["type"], "msg": error["msg"]})

    best_rank = min(r[0] for r in ranked)
    winners = [r for r in ranked if r[0] == best_rank]
    code = winners[0][1]
    fields = list(dict.fromkeys(r[2] for r in winners))

    if code is FailureCode.MISSING_REQUIRED_FIELD:
        message = f"{kind}: missing required field(s): {', '.join(fields)}"
    elif code is FailureCode.INVALID_ENUMERATION_VALUE:
        message = f"{kind}: unrecognized value for {', '.join(fields)} ({winners[0][3]})"
    else:
        message = f"{kind}: invalid value for {', '.join(fields)} ({winners[0][3]})"
    return NormalizationError(code, message, fields=fields, issues=issues)


# ── Pipeline stages ───────────────────────────────────────────────────────────

def _present(raw: Mapping[str, Any], key: str) -> bool:
    return raw.get(key) is not None


def detect_shape_conflict(raw: Mapping[str, Any]) -> None:
    """Reject records carrying both rectangle and polygon geometry.

    Runs before the shape tag is even looked at: an explicit ``shape`` cannot
    make the combination acceptable.
    """
    has_width_height = _present(raw, "width") or _present(raw, "height")
    has_outline = _present(raw, "outline")
    if has_width_height and has_outline:
        fields = [k for k in ("width", "height", "outline") if _present(raw, k)]
        raise NormalizationError(
            FailureCode.CONFLICTING_SHAPE_FIELDS,
            "Cannot specify both width/height and outline. Use width/height for "
            "rectangular boards or outline for polygon boards.",
            fields=fields,
        )


def infer_board_shape(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``raw`` with ``shape`` derived from the fields present.

    An explicit shape is kept as-is.  Without one, ``outline`` means polygon,
    otherwise width/height means rect.  With neither, the copy has no shape.
    """
    record = dict(raw)
    if record.get("shape") not in (None, ""):
        return record

    record.pop("shape", None)
    if _present(raw, "outline"):
        record["shape"] = BoardShape.POLYGON.value
    elif _present(raw, "width") or _present(raw, "height"):
        record["shape"] = BoardShape.RECT.value
    return record


def _check_shape(record: Dict[str, Any]) -> BoardShape:
    if "shape" not in record:
        raise NormalizationError(
            FailureCode.MISSING_REQUIRED_FIELD,
            "pcb_board: missing required field(s): width, height or outline "
            "(give width/height for a rectangular board or outline for a polygon board)",
            fields=["width", "height", "outline"],
        )

    raw_shape = record["shape"]
    try:
        shape = BoardShape(raw_shape)
    except ValueError:
        raise NormalizationError(
            FailureCode.UNKNOWN_OR_MISMATCHED_SHAPE,
            f"pcb_board: unknown shape {raw_shape!r}. Valid: {[s.value for s in BoardShape]}",
            fields=["shape"],
        ) from None

    if shape is BoardShape.RECT and _present(record, "outline"):
        raise NormalizationError(
            FailureCode.UNKNOWN_OR_MISMATCHED_SHAPE,
            "pcb_board: shape 'rect' does not take an outline; "
            "use width/height or set shape to 'polygon'",
            fields=["shape", "outline"],
        )
    if shape is BoardShape.POLYGON and (_present(record, "width") or _present(record, "height")):
        raise NormalizationError(
            FailureCode.UNKNOWN_OR_MISMATCHED_SHAPE,
            "pcb_board: shape 'polygon' does not take width/height; "
            "use outline or set shape to 'rect'",
            fields=["shape"] + [k for k in ("width", "height") if _present(record, k)],
        )
    return shape


def apply_board_defaults(record: Mapping[str, Any], id_factory: IdFactory = prefixed_id) -> Dict[str, Any]:
    """Fill every unset defaulted field.  Fields already set are left alone."""
    out = dict(record)
    for key, value in BOARD_DEFAULTS.items():
        if out.get(key) is None:
            out[key] = value
    if out.get("pcb_board_id") is None:
        out["pcb_board_id"] = id_factory("pcb_board")
    if out.get("type") is None:
        out["type"] = "pcb_board"
    return out


# ── Public entry points ───────────────────────────────────────────────────────

def normalize_board(raw: Any, id_factory: IdFactory = prefixed_id) -> PcbBoard:
    """Validate a raw pcb_board record and return the canonical board.

    Raises NormalizationError if the record is rejected.  The only side
    effect is calling ``id_factory`` when the record has no pcb_board_id.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        raise NormalizationError(
            FailureCode.INVALID_FIELD_TYPE,
            f"pcb_board: expected an object, got {type(raw).__name__}",
        )

    detect_shape_conflict(raw)
    record = infer_board_shape(raw)
    shape = _check_shape(record)
    record["shape"] = shape.value

    record = apply_board_defaults(record, id_factory)

    model = BOARD_MODELS[shape.value]
    try:
        board = model.model_validate(record)
    except ValidationError as exc:
        failure = failure_from_validation_error(exc)
        logger.debug("Rejected %s board %s: %s", shape.value, record.get("pcb_board_id"), failure.message)
        raise failure from None

    logger.debug("Normalized %s board %s", board.shape, board.pcb_board_id)
    return board


def parse_autorouting_error(raw: Any) -> AutoroutingError:
    """Check an autorouting_error record (id + message) and return it unchanged."""
    if isinstance(raw, AutoroutingError):
        return raw
    if not isinstance(raw, Mapping):
        raise NormalizationError(
            FailureCode.INVALID_FIELD_TYPE,
            f"autorouting_error: expected an object, got {type(raw).__name__}",
        )
    try:
        return AutoroutingError.model_validate(dict(raw))
    except ValidationError as exc:
        raise failure_from_validation_error(exc, kind="autorouting_error") from None
