"""
Configuration System

Configuration Priority (highest to lowest):
    1. Programmatic (passed to ExtractorConfig())
    2. Environment variables (INFOPIECE_* prefix)
    3. Built-in defaults

Config files are loaded explicitly with ExtractorConfig.from_file().

Modules:
    settings: ExtractorConfig class
    credentials: API key store and resolution order
"""

from infopiece.config.credentials import CredentialStore, resolve_api_key
from infopiece.config.settings import ExtractorConfig

__all__ = ["ExtractorConfig", "CredentialStore", "resolve_api_key"]
