"""
Credential Resolution

The OpenAI API key is resolved once, when a completion client is built,
with this precedence:

    1. Explicit value (argument or ExtractorConfig.openai_api_key)
    2. Persisted value in the local credential store
    3. OPENAI_API_KEY environment variable

The engine never reads or mutates credentials mid-run.

Credential file format (TOML):
    [openai]
    api_key = "sk-..."
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from pathlib import Path

from infopiece.exceptions import CredentialStoreError, MissingCredentialError

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_FILE = Path.home() / ".infopiece" / "credentials.toml"
API_KEY_ENV_VAR = "OPENAI_API_KEY"


class CredentialStore:
    """
    Locally persisted API key.

    Args:
        path: Credential file. Defaults to INFOPIECE_CREDENTIALS_FILE or
            ~/.infopiece/credentials.toml
    """

    def __init__(self, path: str | Path | None = None) -> None:
        if path is None:
            path = os.getenv("INFOPIECE_CREDENTIALS_FILE") or DEFAULT_CREDENTIALS_FILE
        self.path = Path(path)

    def load(self) -> str | None:
        """Return the persisted key, or None if nothing is stored."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise CredentialStoreError(f"Cannot read credential file {self.path}: {exc}") from exc

        section = data.get("openai", {})
        if not isinstance(section, dict):
            raise CredentialStoreError(f"Cannot read credential file {self.path}: [openai] must be a table")

        api_key = section.get("api_key")
        if isinstance(api_key, str) and api_key.strip():
            return api_key.strip()
        return None

    def save(self, api_key: str) -> None:
        """Persist a key, readable only by the current user."""
        if not api_key.strip():
            raise ValueError("API key must not be empty")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # json.dumps yields a valid TOML basic string
            self.path.write_text(f"[openai]\napi_key = {json.dumps(api_key.strip())}\n")
            self.path.chmod(0o600)
        except OSError as exc:
            raise CredentialStoreError(f"Cannot write credential file {self.path}: {exc}") from exc
        logger.info(f"Saved API key to {self.path}")

    def clear(self) -> bool:
        """Remove the persisted key. Returns False if none was stored."""
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as exc:
            raise CredentialStoreError(f"Cannot remove credential file {self.path}: {exc}") from exc
        return True


def resolve_api_key(
    explicit: str | None = None,
    *,
    store: CredentialStore | None = None,
) -> str:
    """
    Resolve the API key: explicit, then persisted, then environment.

    Raises:
        MissingCredentialError: If no source yields a key
    """
    if explicit and explicit.strip():
        return explicit.strip()

    persisted = (store or CredentialStore()).load()
    if persisted:
        return persisted

    env_key = os.getenv(API_KEY_ENV_VAR)
    if env_key and env_key.strip():
        return env_key.strip()

    raise MissingCredentialError(
        "OpenAI API key not found. Pass an API key, run `infopiece login`, "
        f"or set {API_KEY_ENV_VAR}."
    )
