"""
PCB Board Backend – FastAPI service v0.1

Exposes the board normalizer over JSON so document editors, exporters and
the autorouter can hand over raw records and get canonical boards back.

Endpoints:
  GET  /health                       – liveness + counters
  POST /boards/normalize             – raw pcb_board → canonical rect/polygon board
  POST /autorouting-errors/validate  – check an autorouting_error record
  POST /documents/normalize          – run a whole circuit document through

Rejected input comes back as HTTP 422 with the failure code, field paths and
the individual issues.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Body, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .circuit_schema import AutoroutingError, PcbBoard
from .engines.board_normalizer import NormalizationError, normalize_board, parse_autorouting_error
from .engines.document_normalizer import normalize_circuit_elements, summarize_elements

# ── Logging ───────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ── Configuration (plain constants from the environment) ─────────────────────

HOST         = os.environ.get("HOST", "127.0.0.1")
PORT         = int(os.environ.get("PORT", "8765"))
RELOAD       = os.environ.get("RELOAD", "false").lower() == "true"
WORKERS      = int(os.environ.get("WORKERS", "1"))
LOG_LEVEL    = os.environ.get("LOG_LEVEL", "info")
CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")


# ── Response models ───────────────────────────────────────────────────────────

def _request_id() -> str:
    return str(uuid.uuid4())[:8]


class HealthResponse(BaseModel):
    status:             str
    version:            str
    uptime_seconds:     float
    boards_normalized:  int = 0
    records_rejected:   int = 0
    capabilities:       List[str] = Field(default_factory=list)


class BoardResponse(BaseModel):
    success:    bool = True
    board:      PcbBoard
    request_id: str  = Field(default_factory=_request_id)


class DocumentResponse(BaseModel):
    success:        bool = True
    elements:       List[Dict[str, Any]] = Field(default_factory=list)
    element_counts: Dict[str, int]       = Field(default_factory=dict)
    request_id:     str                  = Field(default_factory=_request_id)


# ── Application State ─────────────────────────────────────────────────────────

class AppState:
    def __init__(self) -> None:
        self.start_time:        float = time.time()
        self.boards_normalized: int   = 0
        self.records_rejected:  int   = 0

    @property
    def uptime_seconds(self) -> float:
        return time.time() - self.start_time

    def get_capabilities(self) -> List[str]:
        return ["board_normalization", "shape_inference", "autorouting_error_validation",
                "document_normalization"]


_state = AppState()


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PCB Board Backend v%s…", __version__)
    logger.info("Startup complete. capabilities=%s", _state.get_capabilities())
    yield
    logger.info(
        "Shutting down PCB Board Backend (boards=%d rejected=%d).",
        _state.boards_normalized, _state.records_rejected,
    )


# ── FastAPI app ───────────────────────────────────────────────────────────────

app = FastAPI(
    title="PCB Board Backend",
    description="Validation and normalization of PCB board outline records",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    # Set CORS_ORIGINS to a comma-separated list to lock down in production.
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ── Request timing middleware ─────────────────────────────────────────────────

@app.middleware("http")
async def add_timing_header(request: Request, call_next: Any):
    t0 = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Process-Time-Ms"] = f"{(time.perf_counter() - t0) * 1000:.1f}"
    return response


# ── Error handlers ────────────────────────────────────────────────────────────

@app.exception_handler(NormalizationError)
async def normalization_error_handler(request: Request, exc: NormalizationError) -> JSONResponse:
    _state.records_rejected += 1
    logger.info("Rejected %s %s: [%s] %s", request.method, request.url.path, exc.code.value, exc.message)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.to_dict()},
    )


@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception %s %s", request.method, request.url)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred."},
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse, tags=["meta"])
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=app.version,
        uptime_seconds=round(_state.uptime_seconds, 1),
        boards_normalized=_state.boards_normalized,
        records_rejected=_state.records_rejected,
        capabilities=_state.get_capabilities(),
    )


@app.post("/boards/normalize", response_model=BoardResponse, tags=["boards"])
async def normalize_board_endpoint(raw: Dict[str, Any] = Body(...)) -> BoardResponse:
    """
    Raw pcb_board record → canonical board.

    ``shape`` may be omitted: an outline makes a polygon board, width/height
    make a rect board.  Supplying both kinds of geometry is rejected.
    """
    board = normalize_board(raw)
    _state.boards_normalized += 1
    return BoardResponse(board=board)


@app.post("/autorouting-errors/validate", response_model=AutoroutingError, tags=["diagnostics"])
async def validate_autorouting_error(raw: Dict[str, Any] = Body(...)) -> AutoroutingError:
    """Check an autorouting_error record and echo it back unchanged."""
    return parse_autorouting_error(raw)


@app.post("/documents/normalize", response_model=DocumentResponse, tags=["documents"])
async def normalize_document(elements: List[Any] = Body(...)) -> DocumentResponse:
    """Normalize every element of a circuit document, preserving order."""
    normalized = normalize_circuit_elements(elements)
    counts = summarize_elements(normalized)
    _state.boards_normalized += counts.get("pcb_board", 0)
    return DocumentResponse(
        elements=[e.model_dump(mode="json") if isinstance(e, BaseModel) else e for e in normalized],
        element_counts=counts,
    )


# ── Entry point ───────────────────────────────────────────────────────────────

def main() -> None:
    import uvicorn

    uvicorn.run(
        "board_backend.board_server:app",
        host=HOST,
        port=PORT,
        reload=RELOAD,
        workers=WORKERS,
        log_level=LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
