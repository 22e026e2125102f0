"""
ExtractorConfig - Configuration Management

Sensible defaults with full override capability.

Example:
    >>> # Use defaults (reads from environment)
    >>> config = ExtractorConfig()

    >>> # Explicit configuration
    >>> config = ExtractorConfig(llm_model="gpt-4o-mini", max_iterations=3)

    >>> # From config file
    >>> config = ExtractorConfig.from_file("./infopiece.toml")

Environment Variables:
    INFOPIECE_LLM_MODEL - Model for extraction and verification
    INFOPIECE_LLM_BASE_URL - Alternative OpenAI-compatible endpoint
    INFOPIECE_MAX_ITERATIONS - Default per-call iteration limit
    INFOPIECE_CONFIDENCE_THRESHOLD - Verification score needed to stop early
    INFOPIECE_PACING_DELAY - Seconds between messages in batch mode
    INFOPIECE_CREDENTIALS_FILE - Location of the persisted API key

The API key itself is not read here: see config/credentials.py for the
resolution order (explicit value, persisted store, OPENAI_API_KEY).
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any


class ExtractorConfig:
    """Configuration for infopiece."""

    # === LLM Configuration ===

    llm_model: str = "gpt-4o-2024-08-06"
    """Model for both extraction and verification calls"""

    llm_temperature: float = 0.0
    """Sampling temperature"""

    llm_base_url: str | None = None
    """Optional OpenAI-compatible base URL"""

    # === Credentials ===

    openai_api_key: str | None = None
    """Explicit API key; takes precedence over the persisted store and environment"""

    credentials_file: str | None = None
    """Persisted credential file (default: ~/.infopiece/credentials.toml)"""

    # === Refinement Configuration ===

    include_verification: bool = True
    """Run a verification call after each extraction"""

    max_iterations: int = 1
    """Per-call iteration limit enforced by the refinement loop"""

    confidence_threshold: float = 0.8
    """Verification score below which another iteration is requested"""

    continue_ceiling: int = 3
    """Total iterations after which "continue refinement" is no longer offered"""

    min_message_length: int = 20
    """Messages with less stripped content than this are skipped"""

    # === Batch Configuration ===

    pacing_delay_seconds: float = 0.5
    """Delay between messages when processing a conversation"""

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize configuration.

        Args:
            **kwargs: Override any configuration option
        """
        self._load_from_env()

        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Unknown configuration option: {key}")

        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be between 0 and 1")

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        if model := os.getenv("INFOPIECE_LLM_MODEL"):
            self.llm_model = model
        if base_url := os.getenv("INFOPIECE_LLM_BASE_URL"):
            self.llm_base_url = base_url
        if iterations := os.getenv("INFOPIECE_MAX_ITERATIONS"):
            self.max_iterations = int(iterations)
        if threshold := os.getenv("INFOPIECE_CONFIDENCE_THRESHOLD"):
            self.confidence_threshold = float(threshold)
        if delay := os.getenv("INFOPIECE_PACING_DELAY"):
            self.pacing_delay_seconds = float(delay)
        if credentials := os.getenv("INFOPIECE_CREDENTIALS_FILE"):
            self.credentials_file = credentials

    @classmethod
    def from_file(cls, path: str | Path) -> "ExtractorConfig":
        """
        Load configuration from TOML file.

        Sections are flattened into config keys:

            [llm]
            model = "gpt-4o-mini"          # -> llm_model
            temperature = 0.0              # -> llm_temperature

            [refinement]
            max_iterations = 3             # -> max_iterations
            confidence_threshold = 0.8

            [batch]
            pacing_delay_seconds = 0.5

        Flat top-level keys are accepted as-is.

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        section_mapping = {
            "llm": "llm_",
            "refinement": "",
            "batch": "",
        }

        flat_config: dict[str, Any] = {}
        for section, prefix in section_mapping.items():
            for key, value in data.get(section, {}).items():
                flat_config[f"{prefix}{key}"] = value

        for key, value in data.items():
            if key not in section_mapping and not isinstance(value, dict):
                flat_config[key] = value

        return cls(**flat_config)

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Load configuration from environment variables only."""
        return cls()

    def to_file(self, path: str | Path) -> None:
        """
        Save configuration to TOML file.

        The API key is never written; use the credential store for that.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sections: dict[str, dict[str, str | int | float | bool | None]] = {
            "llm": {
                "model": self.llm_model,
                "temperature": self.llm_temperature,
                "base_url": self.llm_base_url,
            },
            "refinement": {
                "include_verification": self.include_verification,
                "max_iterations": self.max_iterations,
                "confidence_threshold": self.confidence_threshold,
                "continue_ceiling": self.continue_ceiling,
                "min_message_length": self.min_message_length,
            },
            "batch": {
                "pacing_delay_seconds": self.pacing_delay_seconds,
            },
        }

        lines = ["# infopiece configuration", ""]
        for section_name, section_values in sections.items():
            lines.append(f"[{section_name}]")
            for key, value in section_values.items():
                if isinstance(value, str):
                    lines.append(f'{key} = "{value}"')
                elif isinstance(value, bool):
                    lines.append(f"{key} = {str(value).lower()}")
                elif isinstance(value, (int, float)):
                    lines.append(f"{key} = {value}")
            lines.append("")

        lines.extend([
            "# The API key is resolved from `infopiece login` or OPENAI_API_KEY.",
            "",
        ])

        path.write_text("\n".join(lines))

    def with_overrides(self, **kwargs: Any) -> "ExtractorConfig":
        """Return new config with specified overrides."""
        new_config = ExtractorConfig.__new__(ExtractorConfig)
        for key in dir(self):
            if not key.startswith("_") and not callable(getattr(self, key)):
                setattr(new_config, key, getattr(self, key))
        for key, value in kwargs.items():
            if not hasattr(new_config, key):
                raise ValueError(f"Unknown configuration option: {key}")
            setattr(new_config, key, value)
        return new_config
