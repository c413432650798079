"""
Anthropic client for the optional LLM descriptor source.
Replies must be a single JSON object matching a Pydantic model; a rejected
reply is sent back to the model with the validation error so the next
attempt can correct it.
"""

from __future__ import annotations

import json
import logging
from typing import List, Type, TypeVar

import anthropic
from pydantic import BaseModel, ValidationError

from mathviz.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_client: anthropic.Anthropic | None = None


def _get_client() -> anthropic.Anthropic:
    global _client
    if _client is None:
        if not settings.anthropic_api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY is not set; the LLM parser is unavailable. "
                "Set it or leave USE_LLM_PARSER off to use the rule-based analyzer."
            )
        _client = anthropic.Anthropic(api_key=settings.anthropic_api_key)
    return _client


JSON_INSTRUCTION = (
    "\n\nReply with one JSON object and nothing else: "
    "no markdown fences, no commentary."
)


def _response_text(response) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "".join(block.text for block in response.content if block.type == "text").strip()


def _unfence(raw: str) -> str:
    if raw.startswith("```"):
        raw = raw.split("\n", 1)[-1]
        raw = raw.rsplit("```", 1)[0]
    return raw.strip()


def _correction(raw: str, error: Exception) -> str:
    return (
        f"Your previous reply was rejected.\nReply: {raw[:500]}\nError: {error}\n"
        "Return the corrected JSON object only."
    )


def llm_call(
    system_prompt: str,
    user_prompt: str,
    response_model: Type[T],
    max_retries: int = 2,
) -> T:
    """
    Ask the model for a response_model instance.
    Each rejected reply is appended to the conversation with its error.
    Raises RuntimeError once max_retries corrections have also failed.
    """
    client = _get_client()
    messages: List[dict] = [{"role": "user", "content": user_prompt}]
    last_error: Exception | None = None

    for attempt in range(max_retries + 1):
        response = client.messages.create(
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            system=system_prompt + JSON_INSTRUCTION,
            messages=messages,
        )
        raw = _response_text(response)
        logger.debug("LLM reply %d for %s (%d chars)", attempt + 1, response_model.__name__, len(raw))
        try:
            return response_model.model_validate(json.loads(_unfence(raw)))
        except (json.JSONDecodeError, ValidationError) as exc:
            last_error = exc
            logger.warning("LLM reply rejected (attempt %d/%d): %s", attempt + 1, max_retries + 1, exc)
            messages = messages + [
                {"role": "assistant", "content": raw or "(empty)"},
                {"role": "user", "content": _correction(raw, exc)},
            ]

    raise RuntimeError(
        f"LLM failed to return valid {response_model.__name__} "
        f"after {max_retries + 1} attempts. Last error: {last_error}"
    )
