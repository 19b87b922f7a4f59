#!/usr/bin/env python3
"""
Probe: send a fixed set of positions to a running relay and time each answer.

Run against a local server (python -m web) after changing the prompt, the
model or the retry settings, to see what the model now answers and how long
each round trip takes. Failed requests are listed with their status and
error body instead of a move.

Usage: python3 tools/probe.py [base_url] [model]
"""
import sys
import time

import httpx

DEFAULT_URL = "http://localhost:3000"
ENDPOINT = "/api/gemini-move"

# Opening, middlegame and endgame positions, kept fixed so runs compare.
POSITIONS = [
    ("Start",        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"),
    ("After 1.e4",   "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"),
    ("Sicilian",     "rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2"),
    ("Italian",      "r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R b KQkq - 3 3"),
    ("London",       "rnbqkb1r/ppp1pppp/5n2/3p4/3P1B2/5N2/PPP1PPPP/RN1QKB1R b KQkq - 3 3"),
    ("Mid-open",     "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Queen ending", "6k1/ppp2ppp/8/3p4/3P4/8/PPP2PPP/6K1 w - - 0 1"),
    ("Rook ending",  "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Pawn race",    "8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1"),
]


def probe_position(client: httpx.Client, label: str, fen: str, model: str | None) -> dict:
    """Send one FEN to the relay.

    Args:
        client: HTTP client pointed at the relay.
        label: Human-readable position name for display.
        fen: Position to ask about.
        model: Model override, or None for the server default.

    Returns:
        Dict with keys: label, status, move, error, time_ms.
    """
    body = {"fen": fen}
    if model:
        body["model"] = model

    start = time.monotonic()
    try:
        response = client.post(ENDPOINT, json=body)
    except httpx.HTTPError as exc:
        return {"label": label, "status": 0, "move": "-", "error": str(exc),
                "time_ms": int((time.monotonic() - start) * 1000)}
    elapsed_ms = int((time.monotonic() - start) * 1000)

    data = response.json() if response.content else {}
    return {
        "label": label,
        "status": response.status_code,
        "move": data.get("move", "-"),
        "error": data.get("error", ""),
        "time_ms": elapsed_ms,
    }


def main() -> None:
    """Probe every position and print a summary table."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL
    model = sys.argv[2] if len(sys.argv) > 2 else None

    print(f"Gemini move relay probe — {base_url}{ENDPOINT}")
    print(f"Model: {model or '(server default)'}")
    print()
    print(f"{'Position':<14} {'Status':>6} {'Move':<8} {'Time(ms)':>9}  Error")
    print("-" * 68)

    results = []
    # Attempts may back off for ~30s; leave room for a full retry cycle.
    with httpx.Client(base_url=base_url, timeout=120.0) as client:
        for label, fen in POSITIONS:
            r = probe_position(client, label, fen, model)
            results.append(r)
            print(
                f"{r['label']:<14} {r['status']:>6} {r['move']:<8} "
                f"{r['time_ms']:>9,}  {r['error']}"
            )

    ok = [r for r in results if r["status"] == 200]
    print("-" * 68)
    if ok:
        avg_time = sum(r["time_ms"] for r in ok) // len(ok)
        print(f"{len(ok)}/{len(results)} answered, average {avg_time:,} ms")
    else:
        print(f"0/{len(results)} answered")


if __name__ == "__main__":
    main()
