"""
Wire shapes for the relay: what callers send in, what goes to Gemini, and
what comes back.

Callers use one of two request shapes:

    FenRequest     {"fen": "...", "model": "..."?}
        The relay writes the prompt and attaches a fixed system instruction.
    PromptRequest  {"prompt": "...", "model": "..."}
        The caller owns the prompt text and picks the model.

Both become a GenerateContentRequest posted to
    <api_base><model>:generateContent?key=<secret>

Gemini answers with a GenerateContentResponse. Only the first candidate's
first text part is ever used. Unknown fields on either side are ignored so
upstream additions never break parsing.
"""

from typing import Any, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from relay.constants import (
    FEN_PROMPT_TEMPLATE,
    FEN_TEMPERATURE,
    PROMPT_MAX_OUTPUT_TOKENS,
    PROMPT_TEMPERATURE,
    SYSTEM_INSTRUCTION,
)
from relay.errors import BadRequest


# ---------------------------------------------------------------------------
# Inbound request shapes
# ---------------------------------------------------------------------------


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must be a non-empty string")
    return value


class FenRequest(BaseModel):
    """
    Ask for the best move in a position.

    Fields:
        fen:   Board position in FEN. Passed through as-is, never parsed.
        model: Gemini model name; the deployment default is used when omitted.
    """

    model_config = ConfigDict(frozen=True)

    fen: str
    model: str | None = None

    @field_validator("fen")
    @classmethod
    def fen_not_blank(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("model")
    @classmethod
    def blank_model_means_default(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class PromptRequest(BaseModel):
    """Forward a caller-written prompt to a caller-chosen model."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    model: str

    @field_validator("prompt", "model")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _require_text(v)


RelayRequest = Union[FenRequest, PromptRequest]


def parse_relay_request(body: Any) -> RelayRequest:
    """
    Validate a decoded JSON body into one of the two request shapes.

    A body with a non-blank "fen" is a FenRequest. Otherwise a body carrying
    "prompt" or "model" is a PromptRequest, so a blank "fen" next to a full
    prompt does not shadow it. Anything else is rejected.

    Raises:
        BadRequest: The body is not an object or required fields are missing,
                    blank, or not strings.
    """
    if not isinstance(body, dict):
        raise BadRequest("Invalid JSON request body.")

    fen = body.get("fen")
    blank_fen = isinstance(fen, str) and not fen.strip()
    if fen is not None and not blank_fen:
        try:
            return FenRequest.model_validate(body)
        except ValidationError as exc:
            raise BadRequest("Missing FEN string in request body.") from exc

    if "prompt" in body or "model" in body:
        try:
            return PromptRequest.model_validate(body)
        except ValidationError as exc:
            raise BadRequest("Missing 'prompt' or 'model' in request body.") from exc

    raise BadRequest("Missing FEN string in request body.")


# ---------------------------------------------------------------------------
# Upstream payload
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Part(_CamelModel):
    text: str | None = None


class Content(_CamelModel):
    role: str | None = None
    parts: list[Part] = []


class GenerationConfig(_CamelModel):
    temperature: float
    max_output_tokens: int | None = None


class GenerateContentRequest(_CamelModel):
    contents: list[Content]
    system_instruction: Content | None = None
    generation_config: GenerationConfig

    def to_json(self) -> dict[str, Any]:
        """Body as Gemini expects it: camelCase keys, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


def build_payload(request: RelayRequest) -> GenerateContentRequest:
    """Deterministically derive the upstream body from a relay request."""
    if isinstance(request, FenRequest):
        return GenerateContentRequest(
            contents=[Content(parts=[Part(text=FEN_PROMPT_TEMPLATE.format(fen=request.fen))])],
            system_instruction=Content(parts=[Part(text=SYSTEM_INSTRUCTION)]),
            generation_config=GenerationConfig(temperature=FEN_TEMPERATURE),
        )
    return GenerateContentRequest(
        contents=[Content(role="user", parts=[Part(text=request.prompt)])],
        generation_config=GenerationConfig(
            temperature=PROMPT_TEMPERATURE,
            max_output_tokens=PROMPT_MAX_OUTPUT_TOKENS,
        ),
    )


def generate_content_url(api_base: str, model: str) -> str:
    """
    Endpoint for a model, without the key.

    The key is attached as a query parameter by the caller so that this URL
    is safe to log.
    """
    return f"{api_base}{quote(model, safe='')}:generateContent"


# ---------------------------------------------------------------------------
# Upstream response
# ---------------------------------------------------------------------------


class Candidate(_CamelModel):
    content: Content | None = None


class ApiErrorBody(_CamelModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None


class GenerateContentResponse(_CamelModel):
    candidates: list[Candidate] = []
    error: ApiErrorBody | None = None

    def first_text(self) -> str | None:
        """Text of the first part of the first candidate, if there is one."""
        if not self.candidates:
            return None
        content = self.candidates[0].content
        if content is None or not content.parts:
            return None
        return content.parts[0].text or None

    def error_message(self) -> str | None:
        return self.error.message if self.error is not None else None
