import logging
import os
from typing import Optional

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "30"))
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

EMPTY_REPLY = "Sorry, I could not generate a response."


class LLMError(RuntimeError):
    pass


async def generate_reply(
    prompt: str,
    api_key: str,
    model: str = GEMINI_MODEL,
    client: Optional[httpx.AsyncClient] = None,
) -> str:
    url = GEMINI_URL.format(model=model)
    data = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": 0.7, "maxOutputTokens": 800},
    }

    try:
        if client is not None:
            response = await client.post(url, params={"key": api_key}, json=data)
        else:
            async with httpx.AsyncClient(timeout=GEMINI_TIMEOUT) as session:
                response = await session.post(url, params={"key": api_key}, json=data)
    except httpx.HTTPError as exc:
        raise LLMError(f"Gemini request failed: {exc}") from exc

    if response.status_code != 200:
        logger.error("Gemini API error %s: %s", response.status_code, response.text[:500])
        raise LLMError(f"Gemini API returned HTTP {response.status_code}")

    try:
        resp_json = response.json()
    except ValueError:
        raise LLMError(f"Failed to parse JSON from Gemini API: {response.text[:200]}")

    try:
        return resp_json["candidates"][0]["content"]["parts"][0]["text"] or EMPTY_REPLY
    except (KeyError, IndexError, TypeError):
        logger.warning("Gemini response without candidate text: %s", str(resp_json)[:500])
        return EMPTY_REPLY
