"""
Summarizer oracle
Asks an OpenAI chat model to pick the 3 most representative adjectives from a histogram
"""
import json
import asyncio
from typing import List, Dict, Any, Optional
from openai import AsyncOpenAI
from config import settings
from services.errors import OracleError
import logging

logger = logging.getLogger(__name__)


# JSON Schema for structured output
TOP3_OUTPUT_SCHEMA = {
    "name": "top3_selection",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "selected": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Exactly 3 unique candidate ids"
            }
        },
        "required": ["selected"],
        "additionalProperties": False
    }
}


SYSTEM_PROMPT = """You summarize how people describe someone.

INPUT:
A JSON object with "totalSubmissions" (number of anonymous votes, each vote picked 3 adjectives)
and "candidates": adjectives that were picked at least once, each with id, word, category and count.

TASK:
Pick exactly 3 UNIQUE adjective ids from the provided candidates that best summarize the entire distribution.

RULES:
- Use ONLY ids that appear in the candidates list. Never invent ids.
- Prefer adjectives with high counts, but avoid three near-synonyms when a distinct, well-supported trait exists.
- Return JSON only as {"selected":["id1","id2","id3"]}."""


class SummarizerOracle:
    """
    Interface for top-3 selection.

    Implementations return the raw response content. Validation and fallback
    belong to the caller, which treats every output as untrusted.
    """

    async def select_top3(self, candidates: List[Dict[str, Any]], total_submissions: int) -> str:
        raise NotImplementedError


class OpenAISummarizerOracle(SummarizerOracle):
    """OpenAI-backed oracle, temperature 0, strict JSON schema output"""

    def __init__(self):
        self.client: Optional[AsyncOpenAI] = None
        self.model = settings.OPENAI_MODEL
        self.timeout = settings.ORACLE_TIMEOUT_SECONDS
        self.max_retries = max(1, settings.ORACLE_MAX_RETRIES)
        self.retry_delay = 0.5  # seconds

    def _ensure_client(self):
        """Initialize client if not already done"""
        if self.client is None:
            if not settings.OPENAI_API_KEY:
                raise OracleError("OPENAI_API_KEY is not configured")
            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=self.timeout,
                max_retries=0,
            )

    def _build_user_message(self, candidates: List[Dict[str, Any]], total_submissions: int) -> str:
        payload = {
            "totalSubmissions": total_submissions,
            "candidates": [
                {
                    "id": c["id"],
                    "word": c["word"],
                    "category": c.get("category"),
                    "count": c["count"],
                }
                for c in candidates
            ],
        }
        return json.dumps(payload, ensure_ascii=False)

    async def select_top3(self, candidates: List[Dict[str, Any]], total_submissions: int) -> str:
        self._ensure_client()
        user_message = self._build_user_message(candidates, total_submissions)

        last_error = None
        for attempt in range(self.max_retries):
            try:
                logger.debug(f"[ORACLE] Calling model={self.model} candidates={len(candidates)} total={total_submissions}")
                response = await self.client.chat.completions.create(
                    model=self.model,
                    temperature=0,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": user_message},
                    ],
                    response_format={
                        "type": "json_schema",
                        "json_schema": TOP3_OUTPUT_SCHEMA,
                    },
                    max_completion_tokens=200,
                )
                content = response.choices[0].message.content if response.choices else None
                if not content:
                    raise OracleError("Empty completion")
                return content

            except OracleError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(f"[ORACLE] API error (attempt {attempt + 1}/{self.max_retries}): {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise OracleError(f"Oracle unavailable: {last_error}")


# Singleton instance
openai_summarizer = OpenAISummarizerOracle()
