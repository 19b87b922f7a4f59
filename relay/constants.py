"""
Relay constants: upstream endpoint, prompts, generation and retry parameters.

Every fixed value the relay sends upstream or uses to pace its retries lives
here, so the request builder and the retry loop never carry magic numbers.
Anything an operator may want to change per deployment is read through
relay.config and only defaults to the values below.
"""

# ---------------------------------------------------------------------------
# Upstream endpoint
# ---------------------------------------------------------------------------
# The model name is spliced into the path; the API key travels as a query
# parameter, never in a header.

GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta/models/"
DEFAULT_MODEL: str = "gemini-2.5-flash-preview-09-2025"

# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------
# The FEN already encodes the side to move, so the user prompt only has to
# hand it over. The system instruction does the work of constraining the
# output to a single SAN token.

SYSTEM_INSTRUCTION: str = (
    "You are a world-class chess engine. Your sole task is to analyze the "
    "current board state (provided as a FEN string) and respond ONLY with the "
    "best move in Standard Algebraic Notation (SAN), without any surrounding "
    "text, markdown, or explanation. The response must be a single, valid "
    "chess move (e.g., 'e4', 'Nf3', 'Qxg7'). Do not use move tokens (e.g., "
    "e2e4) unless necessary for ambiguity."
)

FEN_PROMPT_TEMPLATE: str = (
    "Analyze the current board state provided by this FEN string and give "
    "the single best move: {fen}"
)

# ---------------------------------------------------------------------------
# Generation parameters
# ---------------------------------------------------------------------------
# FEN requests want the most deterministic answer the model will give.
# Free prompts get a little more room and a hard output cap.

FEN_TEMPERATURE: float = 0.1
PROMPT_TEMPERATURE: float = 0.3
PROMPT_MAX_OUTPUT_TOKENS: int = 64

# ---------------------------------------------------------------------------
# Retry parameters
# ---------------------------------------------------------------------------
# Delay after failed attempt i is 2**i * BASE + uniform(0, JITTER) ms, so
# five attempts wait at most ~1+2+4+8 s plus jitter before giving up.

MAX_ATTEMPTS: int = 5
BACKOFF_BASE_MS: int = 1_000
BACKOFF_JITTER_MS: int = 1_000

# Per-attempt ceiling on the outbound call, in seconds.
REQUEST_TIMEOUT_S: float = 30.0

RATE_LIMIT_STATUS: int = 429

# ---------------------------------------------------------------------------
# Messages and inbound surface
# ---------------------------------------------------------------------------

EMPTY_RESPONSE_MESSAGE: str = "Gemini returned an empty or invalid response."

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3_000
