from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from txn_pipeline.types import PipelineConfig


@pytest.fixture
def cfg():
    return PipelineConfig(
        ai_api_key="ai-key",
        currency_api_key="cur-key",
        notion_token="notion-token",
        notion_database_id="db-123",
    )


@pytest.fixture
def make_response():
    """Fabrique une fausse `requests.Response` (status, JSON, texte)."""

    def _make(status_code=200, payload=None, text=""):
        resp = MagicMock()
        resp.status_code = status_code
        resp.ok = 200 <= status_code < 400
        resp.text = text
        if isinstance(payload, Exception):
            resp.json.side_effect = payload
        else:
            resp.json.return_value = payload
        return resp

    return _make


@pytest.fixture
def make_chat_client():
    """Faux client OpenAI dont `chat.completions.create` renvoie `content`."""

    def _make(content):
        client = MagicMock()
        message = SimpleNamespace(content=content)
        client.chat.completions.create.return_value = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        return client

    return _make
