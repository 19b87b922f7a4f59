"""
Gemini move relay package.

This package forwards chess-position queries to the Gemini generateContent
API with a server-side key, retries transient failures with exponential
backoff, and reduces the model's answer to a single move token.

Modules:
    constants — Upstream URL, prompts, generation and retry parameters
    config    — RelaySettings loaded from the environment / .env
    errors    — RelayError taxonomy and HTTP status mapping
    gemini    — Request/response models and upstream payload construction
    retry     — Bounded retry combinator with backoff and jitter
    sanitize  — Move-token cleaning
    relay     — ResilientRelay, the end-to-end request flow
"""
