"""
Completion Providers

Provider-agnostic interface for the completion service used by the
refinement loop.

Modules:
    base: Abstract CompletionClient and CompletionResponse
    llm/: Completion client implementations

Supported Providers:
    - OpenAI (gpt-4o-2024-08-06 and other structured-output models) via LangChain

Design:
    - Clients receive an ordered dialogue plus a strict JSON schema
    - Lazy import so the core loop can run against any client
    - Structured output via LangChain's with_structured_output(method="json_schema")

Example:
    >>> from infopiece.providers import CompletionClient
    >>> from infopiece.providers.llm import OpenAICompletionClient
"""

from infopiece.providers.base import CompletionClient, CompletionResponse

__all__ = ["CompletionClient", "CompletionResponse"]
