"""Completion client implementations."""


def __getattr__(name: str):
    if name == "OpenAICompletionClient":
        from infopiece.providers.llm.openai import OpenAICompletionClient
        return OpenAICompletionClient

    raise AttributeError(f"module 'infopiece.providers.llm' has no attribute {name!r}")


__all__ = ["OpenAICompletionClient"]
