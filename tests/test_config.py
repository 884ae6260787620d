"""Tests for configuration loading."""

import yaml

from basilisk_stream.config import (
    DEFAULT_MODEL,
    BackoffSpec,
    ClientConfig,
    load_config,
)


class TestBackoffSpec:
    def test_defaults(self):
        spec = BackoffSpec()
        assert spec.max_retries == 3
        assert spec.initial_retry_delay_ms == 1000
        assert spec.max_jitter_ms == 1000


class TestClientConfig:
    def test_defaults(self):
        cfg = ClientConfig()
        assert cfg.model == DEFAULT_MODEL
        assert cfg.request_timeout_ms == 2000
        assert cfg.n == 1
        assert cfg.temperature == 1
        assert cfg.backoff == BackoffSpec()

    def test_backoff_not_shared(self):
        a = ClientConfig()
        b = ClientConfig()
        a.backoff.max_retries = 9
        assert b.backoff.max_retries == 3


class TestLoadConfig:
    def test_defaults_when_no_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        cfg = load_config(tmp_path / "does_not_exist.yaml")
        assert cfg == ClientConfig()

    def test_loads_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        path = tmp_path / "basilisk.yaml"
        path.write_text(yaml.safe_dump({
            "api_key": "sk-file",
            "base_url": "http://localhost:1234/v1",
            "model": "local-model",
            "request_timeout_ms": 5000,
            "backoff": {"max_retries": 1, "max_jitter_ms": 0},
        }))

        cfg = load_config(path)

        assert cfg.api_key == "sk-file"
        assert cfg.base_url == "http://localhost:1234/v1"
        assert cfg.model == "local-model"
        assert cfg.request_timeout_ms == 5000
        assert cfg.backoff == BackoffSpec(
            max_retries=1, initial_retry_delay_ms=1000, max_jitter_ms=0,
        )

    def test_empty_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        path = tmp_path / "basilisk.yaml"
        path.write_text("")
        assert load_config(path) == ClientConfig()

    def test_env_api_key_fallback(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        cfg = load_config(tmp_path / "missing.yaml")
        assert cfg.api_key == "sk-env"

    def test_file_key_wins_over_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        path = tmp_path / "basilisk.yaml"
        path.write_text("api_key: sk-file\n")
        assert load_config(path).api_key == "sk-file"

    def test_search_paths(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / "basilisk.yaml").write_text("model: found-in-cwd\n")
        assert load_config().model == "found-in-cwd"
