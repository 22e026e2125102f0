"""
OpenAI Completion Client (LangChain-based)

Implements CompletionClient using LangChain's ChatOpenAI with OpenAI
structured outputs (json_schema response format).

Response handling:
    - The parsed object is used when LangChain could parse the reply.
    - Otherwise the JSON object is recovered from the raw message text
      (fenced or prose-wrapped replies).
    - openai.APIStatusError becomes TransportError carrying the service's
      error message, or "OpenAI API returned status N" when it has none.

Example:
    >>> client = OpenAICompletionClient(api_key="sk-...")
    >>> response = await client.complete(messages, EXTRACTION_SCHEMA,
    ...                                  schema_name="extraction_response")
    >>> response.parsed["extractions"]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import openai

from infopiece.config.credentials import CredentialStore, resolve_api_key
from infopiece.exceptions import ParseError, TransportError
from infopiece.extraction.json_recovery import parse_json_object
from infopiece.extraction.schemas import response_format
from infopiece.providers.base import CompletionClient, CompletionResponse
from infopiece.types.messages import Message

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage
    from langchain_openai import ChatOpenAI

    from infopiece.config.settings import ExtractorConfig

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-2024-08-06"


def _as_int(value: Any) -> int | None:
    """Best-effort int coercion."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _extract_token_usage(response: Any) -> tuple[int | None, int | None]:
    """
    Extract token usage from LangChain response metadata.

    Returns:
        (input_tokens, output_tokens)
    """
    if response is None:
        return None, None

    usage = getattr(response, "usage_metadata", None)
    if isinstance(usage, dict):
        input_tokens = _as_int(usage.get("input_tokens"))
        output_tokens = _as_int(usage.get("output_tokens"))
        if input_tokens is not None or output_tokens is not None:
            return input_tokens, output_tokens

    response_metadata = getattr(response, "response_metadata", None)
    if isinstance(response_metadata, dict):
        token_usage = response_metadata.get("token_usage") or response_metadata.get("usage")
        if isinstance(token_usage, dict):
            return (
                _as_int(token_usage.get("prompt_tokens") or token_usage.get("input_tokens")),
                _as_int(token_usage.get("completion_tokens") or token_usage.get("output_tokens")),
            )

    return None, None


def _message_text(response: Any) -> str | None:
    """Text content of a LangChain AIMessage (string or list of parts)."""
    if response is None:
        return None
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
            if isinstance(part, (str, dict))
        ]
        return "".join(parts)
    return None


def _transport_error(exc: openai.APIStatusError) -> TransportError:
    """Map an OpenAI status error, preferring the message in its error body."""
    message = None
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            message = error.get("message")
    if not isinstance(message, str) or not message:
        message = f"OpenAI API returned status {exc.status_code}"
    return TransportError(message, status_code=exc.status_code)


def _to_langchain(messages: Sequence[Message]) -> list["BaseMessage"]:
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    converted: list[BaseMessage] = []
    for message in messages:
        if message.role == "system":
            converted.append(SystemMessage(content=message.content))
        elif message.role == "assistant":
            converted.append(AIMessage(content=message.content))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


def _get_chat_openai(
    api_key: str,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.0,
    base_url: str | None = None,
) -> "ChatOpenAI":
    """
    Get a ChatOpenAI instance.

    Raises:
        ImportError: If langchain-openai package is not installed
    """
    try:
        from langchain_openai import ChatOpenAI
    except ImportError:
        raise ImportError(
            "OpenAI client requires the 'langchain-openai' package. "
            "Install with: pip install langchain-openai"
        )

    # Failed calls end the refinement attempt; the SDK must not retry them
    kwargs: dict[str, Any] = {
        "model": model,
        "temperature": temperature,
        "api_key": api_key,
        "max_retries": 0,
    }
    if base_url:
        kwargs["base_url"] = base_url

    return ChatOpenAI(**kwargs)


class OpenAICompletionClient(CompletionClient):
    """
    OpenAI completion client using LangChain.

    Args:
        api_key: Resolved OpenAI API key (see from_config for resolution)
        model: Model to use (default: "gpt-4o-2024-08-06")
        temperature: Sampling temperature
        base_url: Optional OpenAI-compatible endpoint
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        temperature: float = 0.0,
        base_url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._base_url = base_url
        # Lazy initialization - create client on first use
        self._client: ChatOpenAI | None = None

    @classmethod
    def from_config(
        cls,
        config: "ExtractorConfig",
        *,
        api_key: str | None = None,
        store: CredentialStore | None = None,
    ) -> "OpenAICompletionClient":
        """
        Build a client, resolving the API key once.

        Precedence: `api_key`, config.openai_api_key, the credential store,
        then OPENAI_API_KEY.

        Raises:
            MissingCredentialError: If no key can be resolved
        """
        if store is None and config.credentials_file:
            store = CredentialStore(config.credentials_file)
        resolved = resolve_api_key(api_key or config.openai_api_key, store=store)
        return cls(
            resolved,
            config.llm_model,
            temperature=config.llm_temperature,
            base_url=config.llm_base_url,
        )

    def _get_client(self) -> "ChatOpenAI":
        """Get or create the ChatOpenAI client."""
        if self._client is None:
            self._client = _get_chat_openai(
                api_key=self._api_key,
                model=self._model,
                temperature=self._temperature,
                base_url=self._base_url,
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Current model name."""
        return self._model

    async def complete(
        self,
        messages: Sequence[Message],
        schema: dict[str, Any],
        *,
        schema_name: str,
    ) -> CompletionResponse:
        """
        Send the dialogue with a json_schema response format.

        Returns:
            CompletionResponse with the parsed object and raw text

        Raises:
            TransportError: On non-success or connection failures
            ParseError: If no JSON object can be recovered
        """
        structured = self._get_client().with_structured_output(
            response_format(schema_name, schema),
            method="json_schema",
            include_raw=True,
        )

        try:
            result = await structured.ainvoke(_to_langchain(messages))
        except openai.APIStatusError as exc:
            raise _transport_error(exc) from exc
        except openai.APIConnectionError as exc:
            raise TransportError(f"OpenAI request failed: {exc}") from exc

        raw = result.get("raw") if isinstance(result, dict) else None
        parsed = result.get("parsed") if isinstance(result, dict) else result
        raw_text = _message_text(raw)

        if parsed is None:
            refusal = getattr(raw, "additional_kwargs", {}).get("refusal")
            if isinstance(refusal, str) and refusal.strip():
                raise ParseError(f"Model refused the request: {refusal.strip()}")
            if not raw_text:
                raise ParseError("No content returned from API")
            logger.debug(f"Structured parse failed for {schema_name}; recovering JSON from raw text")
            parsed = parse_json_object(raw_text.strip())

        input_tokens, output_tokens = _extract_token_usage(raw)
        return CompletionResponse(
            parsed=parsed,
            raw_text=raw_text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def with_model(self, model: str) -> "OpenAICompletionClient":
        """Return a new client instance with a different model."""
        return OpenAICompletionClient(
            self._api_key,
            model,
            temperature=self._temperature,
            base_url=self._base_url,
        )
