from __future__ import annotations

from prompt_proxy.common.settings import DEFAULT_MODEL_ID, load_settings, parse_origins


def test_defaults() -> None:
    s = load_settings({})
    assert s.api_key is None
    assert s.port == 3001
    assert s.allowed_origins == ("http://localhost:3000",)
    assert s.model == DEFAULT_MODEL_ID
    assert s.max_tokens == 2000
    assert not s.is_production
    assert not s.trust_proxy


def test_reads_environment() -> None:
    s = load_settings(
        {
            "ANTHROPIC_API_KEY": "sk-test",
            "PORT": "8080",
            "ALLOWED_ORIGINS": "https://a.example, https://b.example/",
            "ENVIRONMENT": "production",
            "TRUST_PROXY": "true",
            "ANTHROPIC_BASE_URL": "http://localhost:9000/",
        }
    )
    assert s.api_key == "sk-test"
    assert s.port == 8080
    assert s.allowed_origins == ("https://a.example", "https://b.example")
    assert s.is_production
    assert s.trust_proxy
    assert s.base_url == "http://localhost:9000"


def test_empty_api_key_counts_as_missing() -> None:
    assert load_settings({"ANTHROPIC_API_KEY": ""}).api_key is None


def test_parse_origins() -> None:
    assert parse_origins("*") == ("*",)
    assert parse_origins("  ") == ("http://localhost:3000",)
    assert parse_origins(None) == ("http://localhost:3000",)
