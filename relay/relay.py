"""
ResilientRelay: one relay request, end to end.

    validate input -> check credential -> build payload
        -> POST with bounded retry -> parse JSON -> extract text -> clean

Input and credential checks happen before any network traffic, so a bad
request or a misconfigured deployment never reaches Gemini. Upstream
failures (transport errors, 429, any non-2xx) are retried by
relay.retry.retry_with_backoff; once the budget is spent the final
attempt's error is surfaced verbatim as TransientUpstreamFailure.

The relay holds no per-request state. One instance, with one shared
httpx.AsyncClient, serves any number of concurrent requests.
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from relay.config import RelaySettings
from relay.constants import EMPTY_RESPONSE_MESSAGE, RATE_LIMIT_STATUS
from relay.errors import (
    ConfigError,
    TransientUpstreamFailure,
    TransportError,
    UpstreamError,
)
from relay.gemini import (
    FenRequest,
    GenerateContentResponse,
    RelayRequest,
    build_payload,
    generate_content_url,
)
from relay.retry import AttemptFailed, RetriesExhausted, RetryPolicy, retry_with_backoff
from relay.sanitize import clean_move

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelayResult:
    """
    Successful relay outcome.

    Fields:
        text:     Cleaned single-token move string.
        raw:      Upstream JSON body, unmodified.
        model:    Model the request was sent to.
        attempts: Number of upstream attempts used (1 = first try succeeded).
    """

    text: str
    raw: dict[str, Any]
    model: str
    attempts: int


class ResilientRelay:
    """
    Forwards relay requests to Gemini with the deployment's secret.

    Attributes:
        settings: Deployment configuration, including the API key.
        client:   Outbound HTTP client. Owned by the caller.
        policy:   Retry budget and backoff shape.
    """

    def __init__(
        self,
        settings: RelaySettings,
        client: httpx.AsyncClient,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.settings = settings
        self.client = client
        self.policy = RetryPolicy(max_attempts=settings.max_attempts)
        self._sleep = sleep
        self._rand = rand

    async def relay(self, request: RelayRequest) -> RelayResult:
        """
        Send one request upstream and return the cleaned result.

        Args:
            request: A validated FenRequest or PromptRequest.

        Returns:
            RelayResult with the cleaned move token.

        Raises:
            ConfigError:              No API key is configured.
            TransientUpstreamFailure: Every attempt failed.
            UpstreamError:            Upstream answered without usable text.
            TransportError:           Anything else went wrong.
        """
        api_key = self.settings.api_key
        if not api_key:
            raise ConfigError("Server configuration error: Gemini API Key is missing.")

        model = self._model_for(request)
        url = generate_content_url(self.settings.api_base, model)
        payload = build_payload(request).to_json()

        try:
            outcome = await retry_with_backoff(
                lambda: self._attempt(url, api_key, payload),
                self.policy,
                retry_on=(AttemptFailed, httpx.HTTPError),
                sleep=self._sleep,
                rand=self._rand,
                label=f"Gemini {model}",
            )
        except RetriesExhausted as exc:
            raise TransientUpstreamFailure(str(exc.last_error), exc.attempts) from exc.last_error
        except Exception as exc:
            _log.exception("Error during API call to %s", url)
            raise TransportError(str(exc) or type(exc).__name__) from exc

        response: httpx.Response = outcome.value
        raw, text = self._extract(response)
        move = clean_move(text)
        if not move:
            _log.error("Gemini returned no usable token: %r", text)
            raise UpstreamError(EMPTY_RESPONSE_MESSAGE)

        if isinstance(request, FenRequest):
            _log.info("FEN: %s -> Move: %s", request.fen, move)
        else:
            _log.info("Prompt via %s -> %s (%d attempts)", model, move, outcome.attempts)
        return RelayResult(text=move, raw=raw, model=model, attempts=outcome.attempts)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _model_for(self, request: RelayRequest) -> str:
        if isinstance(request, FenRequest):
            return request.model or self.settings.default_model
        return request.model

    async def _attempt(self, url: str, api_key: str, payload: dict[str, Any]) -> httpx.Response:
        """
        One upstream call. Returns only on a 2xx.

        Raises:
            AttemptFailed:   429 or another non-success status.
            httpx.HTTPError: Transport failure, including timeouts.
        """
        response = await self.client.post(url, params={"key": api_key}, json=payload)
        if response.status_code == RATE_LIMIT_STATUS:
            raise AttemptFailed("Rate limit exceeded")
        if not response.is_success:
            raise AttemptFailed(
                f"HTTP error! status: {response.status_code}. Body: {response.text}"
            )
        return response

    def _extract(self, response: httpx.Response) -> tuple[dict[str, Any], str]:
        """
        Parse the body and pull out the first candidate's text.

        Raises:
            UpstreamError: Body is not a JSON object or carries no text.
        """
        try:
            raw = response.json()
        except ValueError as exc:
            _log.error("Gemini API returned non-JSON body: %s", response.text[:500])
            raise UpstreamError(EMPTY_RESPONSE_MESSAGE) from exc

        if not isinstance(raw, dict):
            _log.error("Gemini API Error Response: %s", json.dumps(raw, indent=2))
            raise UpstreamError(EMPTY_RESPONSE_MESSAGE)

        try:
            parsed = GenerateContentResponse.model_validate(raw)
        except ValidationError as exc:
            _log.error("Gemini API Error Response: %s", json.dumps(raw, indent=2))
            message = _raw_error_message(raw) or EMPTY_RESPONSE_MESSAGE
            raise UpstreamError(message) from exc

        text = parsed.first_text()
        if text is None:
            _log.error("Gemini API Error Response: %s", json.dumps(raw, indent=2))
            raise UpstreamError(parsed.error_message() or EMPTY_RESPONSE_MESSAGE)
        return raw, text.strip()


def _raw_error_message(raw: dict[str, Any]) -> str | None:
    error = raw.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None
