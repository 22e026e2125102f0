"""Tests for configuration and credential resolution."""

import os
import stat

import pytest

from infopiece.config.credentials import CredentialStore, resolve_api_key
from infopiece.config.settings import ExtractorConfig
from infopiece.exceptions import CredentialStoreError, MissingCredentialError

_ENV_VARS = (
    "INFOPIECE_LLM_MODEL",
    "INFOPIECE_LLM_BASE_URL",
    "INFOPIECE_MAX_ITERATIONS",
    "INFOPIECE_CONFIDENCE_THRESHOLD",
    "INFOPIECE_PACING_DELAY",
    "INFOPIECE_CREDENTIALS_FILE",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestExtractorConfig:
    """Defaults, environment, and overrides."""

    def test_defaults(self):
        config = ExtractorConfig()
        assert config.llm_model == "gpt-4o-2024-08-06"
        assert config.include_verification is True
        assert config.max_iterations == 1
        assert config.confidence_threshold == 0.8
        assert config.continue_ceiling == 3
        assert config.min_message_length == 20
        assert config.pacing_delay_seconds == 0.5

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("INFOPIECE_LLM_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("INFOPIECE_MAX_ITERATIONS", "3")
        monkeypatch.setenv("INFOPIECE_CONFIDENCE_THRESHOLD", "0.9")
        monkeypatch.setenv("INFOPIECE_PACING_DELAY", "0")

        config = ExtractorConfig()

        assert config.llm_model == "gpt-4o-mini"
        assert config.max_iterations == 3
        assert config.confidence_threshold == 0.9
        assert config.pacing_delay_seconds == 0.0

    def test_kwargs_override_environment(self, monkeypatch):
        monkeypatch.setenv("INFOPIECE_MAX_ITERATIONS", "3")
        assert ExtractorConfig(max_iterations=2).max_iterations == 2

    def test_unknown_option(self):
        with pytest.raises(ValueError, match="Unknown configuration option"):
            ExtractorConfig(max_iteration=2)

    @pytest.mark.parametrize("kwargs", [{"max_iterations": 0}, {"confidence_threshold": 1.5}])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ExtractorConfig(**kwargs)

    def test_with_overrides(self):
        config = ExtractorConfig(max_iterations=2)
        updated = config.with_overrides(include_verification=False)
        assert updated.include_verification is False
        assert updated.max_iterations == 2
        assert config.include_verification is True
        with pytest.raises(ValueError):
            config.with_overrides(bogus=True)


class TestConfigFiles:

    def test_from_file_sections(self, tmp_path):
        path = tmp_path / "infopiece.toml"
        path.write_text(
            "max_iterations = 2\n"
            "[llm]\nmodel = \"gpt-4o-mini\"\ntemperature = 0.2\n"
            "[refinement]\nconfidence_threshold = 0.7\n"
            "[batch]\npacing_delay_seconds = 0\n"
        )

        config = ExtractorConfig.from_file(path)

        assert config.llm_model == "gpt-4o-mini"
        assert config.llm_temperature == 0.2
        assert config.confidence_threshold == 0.7
        assert config.pacing_delay_seconds == 0
        assert config.max_iterations == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ExtractorConfig.from_file(tmp_path / "nope.toml")

    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "infopiece.toml"
        original = ExtractorConfig(
            llm_model="gpt-4o-mini",
            max_iterations=3,
            include_verification=False,
            openai_api_key="sk-secret",
        )

        original.to_file(path)
        loaded = ExtractorConfig.from_file(path)

        assert "sk-secret" not in path.read_text()
        assert loaded.llm_model == "gpt-4o-mini"
        assert loaded.max_iterations == 3
        assert loaded.include_verification is False
        assert loaded.llm_base_url is None


class TestCredentials:
    """Credential store and key precedence."""

    def test_store_round_trip(self, tmp_path):
        store = CredentialStore(tmp_path / "creds.toml")
        assert store.load() is None

        store.save("  sk-test  ")

        assert store.load() == "sk-test"
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600
        assert store.clear() is True
        assert store.clear() is False
        assert store.load() is None

    def test_store_path_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("INFOPIECE_CREDENTIALS_FILE", str(tmp_path / "env.toml"))
        assert CredentialStore().path == tmp_path / "env.toml"

    def test_store_section_not_a_table(self, tmp_path):
        path = tmp_path / "creds.toml"
        path.write_text('openai = "sk-test"\n')
        with pytest.raises(CredentialStoreError, match="must be a table"):
            CredentialStore(path).load()

    def test_save_empty_key(self, tmp_path):
        with pytest.raises(ValueError):
            CredentialStore(tmp_path / "creds.toml").save("   ")

    def test_corrupt_store(self, tmp_path):
        path = tmp_path / "creds.toml"
        path.write_text("[openai\napi_key = ")
        with pytest.raises(CredentialStoreError):
            CredentialStore(path).load()

    def test_explicit_wins(self, monkeypatch, tmp_path):
        store = CredentialStore(tmp_path / "creds.toml")
        store.save("sk-stored")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert resolve_api_key("sk-explicit", store=store) == "sk-explicit"

    def test_store_before_environment(self, monkeypatch, tmp_path):
        store = CredentialStore(tmp_path / "creds.toml")
        store.save("sk-stored")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert resolve_api_key(None, store=store) == "sk-stored"

    def test_environment_fallback(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert resolve_api_key("  ", store=CredentialStore(tmp_path / "none.toml")) == "sk-env"

    def test_missing(self, tmp_path):
        with pytest.raises(MissingCredentialError):
            resolve_api_key(None, store=CredentialStore(tmp_path / "none.toml"))
