"""
AI Service

Generative-text collaborator behind the ``TextCompleter`` interface:
- OpenAI-compatible chat completions (OpenAI, OpenRouter via OPENAI_BASE_URL)
- Gemini ``generateContent`` over REST

Also hosts ticket triage, whose suggestions are cached.
"""

import asyncio
import hashlib
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from app.core.cache import cache_triage, get_cached_triage
from app.core.config import settings
from app.core.exceptions import AppError, UpstreamFailure
from app.core.http_client import post_with_retry


logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

TRIAGE_CATEGORIES = ("Authentication", "Billing", "Bug", "Feature Request", "General", "Other")
TRIAGE_URGENCY = ("Low", "Medium", "High")
TRIAGE_SENTIMENT = ("Calm", "Frustrated", "Angry")

TRIAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "category": {"type": "string", "enum": list(TRIAGE_CATEGORIES)},
        "urgency": {"type": "string", "enum": list(TRIAGE_URGENCY)},
        "sentiment": {"type": "string", "enum": list(TRIAGE_SENTIMENT)},
        "suggestedSubject": {"type": "string"},
        "improvedMessage": {"type": "string"},
    },
    "required": ["category", "urgency", "sentiment", "suggestedSubject", "improvedMessage"],
}


# ============== Client Initialization ==============

_openai_client: Optional[AsyncOpenAI] = None


def get_openai_client() -> AsyncOpenAI:
    """Get or create the async OpenAI client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL or None,
            timeout=settings.AI_TIMEOUT_SECONDS,
            max_retries=1,
        )
    return _openai_client


# ============== Completers ==============

class TextCompleter:
    """Turns a prompt (plus optional history) into text."""

    name = "base"

    async def complete(
        self,
        prompt: str,
        json_schema: Optional[Dict[str, Any]] = None,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        raise NotImplementedError


class OpenAICompleter(TextCompleter):
    name = "openai"

    async def complete(
        self,
        prompt: str,
        json_schema: Optional[Dict[str, Any]] = None,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        kwargs: Dict[str, Any] = {}
        if json_schema is not None:
            kwargs["response_format"] = {"type": "json_object"}

        client = get_openai_client()
        response = await client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=messages,
            temperature=0.3 if json_schema is not None else 0.65,
            **kwargs,
        )

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamFailure("AI returned an empty response")
        return content.strip()


class GeminiCompleter(TextCompleter):
    name = "gemini"

    async def complete(
        self,
        prompt: str,
        json_schema: Optional[Dict[str, Any]] = None,
        system: Optional[str] = None,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        contents = [
            {
                "role": "model" if turn["role"] == "assistant" else "user",
                "parts": [{"text": turn["content"]}],
            }
            for turn in (history or [])
            if turn["role"] in ("user", "assistant")
        ]
        contents.append({"role": "user", "parts": [{"text": prompt}]})

        body: Dict[str, Any] = {"contents": contents}
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}
        if json_schema is not None:
            body["generationConfig"] = {"responseMimeType": "application/json"}

        response = await post_with_retry(
            GEMINI_URL.format(model=settings.GEMINI_MODEL),
            params={"key": settings.GEMINI_API_KEY},
            json=body,
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
        if response.status_code >= 400:
            logger.error("Gemini error %s: %s", response.status_code, response.text[:300])
            raise UpstreamFailure("AI request failed")

        data = response.json()
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise UpstreamFailure("AI returned an empty response")

        text = "".join(part.get("text", "") for part in parts).strip()
        if not text:
            raise UpstreamFailure("AI returned an empty response")
        return text


def get_text_completer() -> TextCompleter:
    if settings.AI_PROVIDER == "gemini":
        return GeminiCompleter()
    return OpenAICompleter()


async def complete(
    prompt: str,
    json_schema: Optional[Dict[str, Any]] = None,
    system: Optional[str] = None,
    history: Optional[List[Dict[str, str]]] = None,
    completer: Optional[TextCompleter] = None,
) -> str:
    """
    Run a completion bounded by AI_TIMEOUT_SECONDS.

    Raises:
        UpstreamFailure: On timeout or any provider error.
    """
    completer = completer or get_text_completer()
    try:
        return await asyncio.wait_for(
            completer.complete(prompt, json_schema=json_schema, system=system, history=history),
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning("%s completion timed out after %ss", completer.name, settings.AI_TIMEOUT_SECONDS)
        raise UpstreamFailure("AI request timed out")
    except AppError:
        raise
    except Exception as e:
        logger.error("%s completion failed: %s", completer.name, e)
        raise UpstreamFailure("AI request failed") from e


# ============== JSON Parsing ==============

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_reply(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of a model reply.

    Markdown code fences and text around the outermost object are
    tolerated.

    Raises:
        UpstreamFailure: If no JSON object can be recovered.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            logger.error("AI returned invalid JSON: %s", cleaned[:300])
            raise UpstreamFailure("AI returned invalid JSON")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            logger.error("AI returned invalid JSON: %s", cleaned[:300])
            raise UpstreamFailure("AI returned invalid JSON")

    if not isinstance(data, dict):
        raise UpstreamFailure("AI returned invalid JSON")
    return data


# ============== Ticket Triage ==============

def _pick(value: Any, allowed: tuple[str, ...], default: str) -> str:
    for option in allowed:
        if isinstance(value, str) and value.strip().lower() == option.lower():
            return option
    return default


def _triage_prompt(email: Optional[str], subject: Optional[str], message: str) -> str:
    return f"""Analyze this support ticket and respond ONLY with valid JSON. No markdown, no explanation, no extra text.

Allowed categories: {", ".join(TRIAGE_CATEGORIES)}
Allowed urgency: {", ".join(TRIAGE_URGENCY)}
Allowed sentiment: {", ".join(TRIAGE_SENTIMENT)}

INPUT:
Email: {email or "not provided"}
Subject: {subject or "EMPTY"}
Message: {message}

OUTPUT FORMAT (must be valid JSON):
{{
  "category": "",
  "urgency": "",
  "sentiment": "",
  "suggestedSubject": "",
  "improvedMessage": ""
}}"""


def _triage_key(email: Optional[str], subject: Optional[str], message: str) -> str:
    raw = "\x1f".join([(email or "").lower().strip(), (subject or "").strip(), message.strip()])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


async def analyze_ticket(
    message: str,
    email: Optional[str] = None,
    subject: Optional[str] = None,
) -> Dict[str, str]:
    """
    Suggest category, urgency, sentiment and a cleaned-up subject/message.

    Values outside the allowed sets are coerced to a default.

    Returns:
        dict: Keys category, urgency, sentiment, suggestedSubject, improvedMessage.
    """
    cache_key = _triage_key(email, subject, message)
    cached = get_cached_triage(cache_key)
    if cached is not None:
        logger.debug("Triage cache hit")
        return cached

    reply = await complete(_triage_prompt(email, subject, message), json_schema=TRIAGE_SCHEMA)
    data = parse_json_reply(reply)

    triage = {
        "category": _pick(data.get("category"), TRIAGE_CATEGORIES, "Other"),
        "urgency": _pick(data.get("urgency"), TRIAGE_URGENCY, "Medium"),
        "sentiment": _pick(data.get("sentiment"), TRIAGE_SENTIMENT, "Calm"),
        "suggestedSubject": str(data.get("suggestedSubject") or subject or "").strip(),
        "improvedMessage": str(data.get("improvedMessage") or message).strip(),
    }
    cache_triage(cache_key, triage)
    return triage
