"""
Tests for the OpenAI summarizer adapter (client is faked, no network)
"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from config import settings
from services.errors import OracleError
from services.oracle_service import OpenAISummarizerOracle, TOP3_OUTPUT_SCHEMA

CANDIDATES = [
    {"id": "a", "word": "kind", "category": "warmth", "count": 3},
    {"id": "b", "word": "brave", "category": "drive", "count": 2},
    {"id": "c", "word": "calm", "category": "character", "count": 1},
]


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def make_oracle(create_mock):
    oracle = OpenAISummarizerOracle()
    oracle.retry_delay = 0
    oracle.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create_mock)))
    return oracle


@pytest.mark.asyncio
async def test_returns_raw_content_and_pins_temperature():
    content = json.dumps({"selected": ["a", "b", "c"]})
    create = AsyncMock(return_value=completion(content))
    oracle = make_oracle(create)

    result = await oracle.select_top3(CANDIDATES, 6)

    assert result == content
    kwargs = create.await_args.kwargs
    assert kwargs["temperature"] == 0
    assert kwargs["response_format"] == {"type": "json_schema", "json_schema": TOP3_OUTPUT_SCHEMA}
    payload = json.loads(kwargs["messages"][1]["content"])
    assert payload["totalSubmissions"] == 6
    assert [c["id"] for c in payload["candidates"]] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_retries_transient_errors():
    oracle_content = json.dumps({"selected": ["c", "b", "a"]})
    create = AsyncMock(side_effect=[RuntimeError("503 upstream"), completion(oracle_content)])
    oracle = make_oracle(create)
    oracle.max_retries = 2

    assert await oracle.select_top3(CANDIDATES, 6) == oracle_content
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_gives_up_after_retries():
    create = AsyncMock(side_effect=RuntimeError("connection reset"))
    oracle = make_oracle(create)
    oracle.max_retries = 2

    with pytest.raises(OracleError, match="connection reset"):
        await oracle.select_top3(CANDIDATES, 6)
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_empty_completion_is_an_oracle_error():
    oracle = make_oracle(AsyncMock(return_value=completion(None)))

    with pytest.raises(OracleError):
        await oracle.select_top3(CANDIDATES, 6)


@pytest.mark.asyncio
async def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    oracle = OpenAISummarizerOracle()

    with pytest.raises(OracleError, match="OPENAI_API_KEY"):
        await oracle.select_top3(CANDIDATES, 6)
