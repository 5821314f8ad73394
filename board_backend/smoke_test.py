"""
Smoke test — hit every endpoint of a running backend and verify responses.
Run AFTER starting the backend:  python -m board_backend.board_server

Usage:
    python -m board_backend.smoke_test
"""
import json
import os
import sys
import urllib.error
import urllib.request

BASE = os.environ.get("BOARD_BACKEND_URL", "http://127.0.0.1:8765")
PASS = "✓"
FAIL = "✗"

ORIGIN = {"x": 0, "y": 0}

# (label, body, expected_status, expected shape or failure code)
BOARD_CASES = [
    ("inferred rect",
     {"center": ORIGIN, "width": "10mm", "height": "20mm"},
     200, "rect"),
    ("inferred polygon",
     {"center": ORIGIN, "outline": [{"x": 0, "y": 0}, {"x": 10, "y": 0}, {"x": 10, "y": 10}, {"x": 0, "y": 10}]},
     200, "polygon"),
    ("conflicting geometry",
     {"center": ORIGIN, "width": 10, "height": 20, "outline": [{"x": 0, "y": 0}, {"x": 1, "y": 1}]},
     422, "conflicting_shape_fields"),
    ("no geometry",
     {"center": ORIGIN},
     422, "missing_required_field"),
    ("rect tag with outline",
     {"center": ORIGIN, "shape": "rect", "outline": [{"x": 0, "y": 0}, {"x": 1, "y": 1}]},
     422, "unknown_or_mismatched_shape"),
]


def _get(path: str) -> dict:
    with urllib.request.urlopen(f"{BASE}{path}", timeout=10) as r:
        return json.loads(r.read())


def _post(path: str, body, timeout: int = 30) -> tuple:
    """POST JSON; returns (status, decoded body) for 2xx and 4xx alike."""
    req = urllib.request.Request(
        f"{BASE}{path}",
        data=json.dumps(body).encode(),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as r:
            return r.status, json.loads(r.read())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read())


def check(label: str, ok: bool, detail: str = "") -> bool:
    sym = PASS if ok else FAIL
    msg = f"  {sym}  {label}"
    if detail:
        msg += f"  →  {detail}"
    print(msg)
    return ok


def main():
    print("\n=== PCB Board Backend Smoke Test ===\n")
    all_passed = True

    # ── /health ───────────────────────────────────────────────────────────────
    try:
        h = _get("/health")
        ok = h.get("status") == "healthy"
        all_passed &= check("/health", ok,
            f"version={h.get('version')}  boards={h.get('boards_normalized')}")
    except Exception as e:
        all_passed &= check("/health", False, str(e))

    # ── /boards/normalize ─────────────────────────────────────────────────────
    print()
    for label, body, expected_status, expected in BOARD_CASES:
        try:
            code, r = _post("/boards/normalize", body)
            if expected_status == 200:
                board = r.get("board", {})
                ok = code == 200 and board.get("shape") == expected
                detail = (f"shape={board.get('shape')}  thickness={board.get('thickness')}  "
                          f"layers={board.get('num_layers')}  material={board.get('material')}")
            else:
                got = r.get("detail", {}).get("code")
                ok = code == expected_status and got == expected
                detail = f"status={code}  code={got}"
            all_passed &= check(f"/boards/normalize [{label}]", ok, detail)
        except Exception as e:
            all_passed &= check(f"/boards/normalize [{label}]", False, str(e))

    # ── /autorouting-errors/validate ──────────────────────────────────────────
    print()
    try:
        code, r = _post("/autorouting-errors/validate",
                        {"type": "autorouting_error", "pcb_error_id": "err_1", "message": "net GND unrouted"})
        all_passed &= check("/autorouting-errors/validate", code == 200 and r.get("pcb_error_id") == "err_1",
                            f"status={code}")
    except Exception as e:
        all_passed &= check("/autorouting-errors/validate", False, str(e))

    # ── /documents/normalize ──────────────────────────────────────────────────
    try:
        code, r = _post("/documents/normalize", [
            {"type": "source_component", "name": "R1"},
            {"type": "pcb_board", "center": ORIGIN, "width": 50, "height": 40},
            {"type": "autorouting_error", "pcb_error_id": "err_2", "message": "trace blocked"},
        ])
        ok = code == 200 and r.get("element_counts", {}).get("pcb_board") == 1
        all_passed &= check("/documents/normalize", ok, f"counts={r.get('element_counts')}")
    except Exception as e:
        all_passed &= check("/documents/normalize", False, str(e))

    # ── summary ───────────────────────────────────────────────────────────────
    print()
    if all_passed:
        print(f"  {PASS}  All checks passed — backend is ready.\n")
        sys.exit(0)
    else:
        print(f"  {FAIL}  Some checks failed — see above.\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
