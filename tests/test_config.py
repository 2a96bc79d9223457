import pytest

from txn_pipeline.config import load_config

ENV_VARS = [
    "AI_GATEWAY_BASE_URL", "AI_GATEWAY_API_KEY", "AI_MODEL",
    "CURRENCY_API_KEY", "currency_API_KEY", "CURRENCY_API_BASE_URL",
    "NOTION_API_KEY", "notion_API_KEY", "DATABASE_ID", "Database_ID",
    "NOTION_BASE_URL", "NOTION_VERSION", "TARGET_CURRENCY", "API_TIMEOUT", "PIPELINE_OUT_ROOT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = load_config()
    assert cfg.ai_base_url == "https://ai-gateway.vercel.sh/v1"
    assert cfg.ai_model == "openai/gpt-5-mini"
    assert cfg.target_currency == "EUR"
    assert cfg.notion_version == "2022-06-28"
    assert cfg.api_timeout == 300.0
    assert cfg.ai_api_key is None and cfg.notion_token is None
    assert cfg.out_root is None


def test_legacy_aliases(monkeypatch):
    monkeypatch.setenv("currency_API_KEY", "cur")
    monkeypatch.setenv("notion_API_KEY", "tok")
    monkeypatch.setenv("Database_ID", "db")
    cfg = load_config()
    assert (cfg.currency_api_key, cfg.notion_token, cfg.notion_database_id) == ("cur", "tok", "db")


def test_primary_name_wins(monkeypatch):
    monkeypatch.setenv("NOTION_API_KEY", "primary")
    monkeypatch.setenv("notion_API_KEY", "legacy")
    assert load_config().notion_token == "primary"


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("TARGET_CURRENCY", "usd")
    monkeypatch.setenv("AI_GATEWAY_BASE_URL", "https://gateway.example/v1/")
    cfg = load_config(out_root=str(tmp_path / "runs"), model="openai/gpt-4o-mini")
    assert cfg.target_currency == "USD"
    assert cfg.ai_base_url == "https://gateway.example/v1"
    assert cfg.ai_model == "openai/gpt-4o-mini"
    assert cfg.out_root.is_dir()
    assert load_config(target_currency="gbp").target_currency == "GBP"


def test_missing_ai_key_warns(caplog):
    with caplog.at_level("WARNING"):
        load_config()
    assert "AI_GATEWAY_API_KEY" in caplog.text
