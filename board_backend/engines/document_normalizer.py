"""
Document Normalizer — run every element of a circuit document through the
matching normalizer.

A circuit document is a flat list of elements, each tagged by ``type``.
pcb_board elements become canonical boards, autorouting_error elements are
checked and carried through, anything else is copied through untouched.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Union

from pydantic import BaseModel

from ..circuit_schema import AutoroutingError, IdFactory, PcbBoard, prefixed_id
from .board_normalizer import (
    FailureCode,
    NormalizationError,
    normalize_board,
    parse_autorouting_error,
)

logger = logging.getLogger(__name__)

CircuitElement = Union[PcbBoard, AutoroutingError, Dict[str, Any]]


def _element_type(element: Any) -> Any:
    if isinstance(element, BaseModel):
        return getattr(element, "type", None)
    if isinstance(element, Mapping):
        return element.get("type")
    return None


def normalize_circuit_elements(
    elements: Iterable[Any],
    id_factory: IdFactory = prefixed_id,
) -> List[CircuitElement]:
    """Normalize a whole document, preserving element order.

    The first rejected element stops the run; its NormalizationError is
    re-raised with paths prefixed by the element index (``[2].width``).
    """
    out: List[CircuitElement] = []
    for index, element in enumerate(elements):
        prefix = f"[{index}]"
        if not isinstance(element, (Mapping, BaseModel)):
            raise NormalizationError(
                FailureCode.INVALID_FIELD_TYPE,
                f"{prefix}: expected an object, got {type(element).__name__}",
                fields=[prefix],
            )

        element_type = _element_type(element)
        if element_type is None:
            raise NormalizationError(
                FailureCode.MISSING_REQUIRED_FIELD,
                f"{prefix}: missing required field(s): type",
                fields=[f"{prefix}.type"],
            )
        if not isinstance(element_type, str):
            raise NormalizationError(
                FailureCode.INVALID_FIELD_TYPE,
                f"{prefix}: element type must be a string, got {type(element_type).__name__}",
                fields=[f"{prefix}.type"],
            )

        try:
            if element_type == "pcb_board":
                out.append(normalize_board(element, id_factory))
            elif element_type == "autorouting_error":
                out.append(parse_autorouting_error(element))
            else:
                out.append(element.model_dump() if isinstance(element, BaseModel) else dict(element))
        except NormalizationError as exc:
            logger.warning("Element %s (%s) rejected: %s", prefix, element_type, exc.message)
            raise exc.with_path_prefix(prefix) from None

    logger.info("Normalized %d circuit elements", len(out))
    return out


def summarize_elements(elements: Iterable[CircuitElement]) -> Dict[str, int]:
    """Element counts by type, e.g. ``{"pcb_board": 1, "autorouting_error": 2}``."""
    return dict(Counter(str(_element_type(e)) for e in elements))
