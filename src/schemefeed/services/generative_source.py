"""Primary fetch tier: schemes from a generative chat-completions upstream.

The upstream answers in free text. The first balanced ``[...]`` span is
extracted, decoded as JSON and validated against GeneratedScheme. Any
failure raises SourceUnavailable so the pipeline can fall through to the
next tier; no partial recovery is attempted.
"""

import json
import logging
import re

import httpx
from pydantic import TypeAdapter, ValidationError

from schemefeed.config import Settings
from schemefeed.schemas.scheme import GeneratedScheme

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_SCHEME_LIST = TypeAdapter(list[GeneratedScheme])
_MAX_COMPLETION_CHARS = 64_000
_MAX_CANDIDATES = 32

UPDATE_CONTEXT = (
    "The government has just released NEW schemes and updates. "
    "Include these latest announcements:"
)
CURRENT_CONTEXT = "Provide the current active government schemes:"


class SourceUnavailable(Exception):
    """The generative upstream could not produce a usable scheme list."""


def _balanced_span(text: str, start: int) -> str | None:
    """Return the bracket span opening at ``start``, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


def extract_json_array(text: str) -> list:
    """Extract the first well-formed JSON array embedded in ``text``.

    At most ``_MAX_CANDIDATES`` opening brackets are tried. An opening
    bracket that never closes ends the scan: the rest of the text is
    treated as a truncated answer. Raises ValueError when no
    balanced span decodes to a list, when the input is longer than
    ``_MAX_COMPLETION_CHARS`` or when the array is nested too deeply.
    """
    if len(text) > _MAX_COMPLETION_CHARS:
        raise ValueError(f"upstream response exceeds {_MAX_COMPLETION_CHARS} characters")
    cleaned = _CODE_FENCE.sub("", text).strip()
    start = cleaned.find("[")
    for _ in range(_MAX_CANDIDATES):
        if start == -1:
            break
        span = _balanced_span(cleaned, start)
        if span is None:
            break
        try:
            value = json.loads(span)
        except json.JSONDecodeError:
            value = None
        except RecursionError as exc:
            raise ValueError("upstream array is nested too deeply") from exc
        if isinstance(value, list):
            return value
        start = cleaned.find("[", start + 1)
    raise ValueError("no JSON array found in upstream response")


def parse_schemes(text: str) -> list[GeneratedScheme]:
    """Extract and validate the scheme list from an upstream completion."""
    try:
        raw = extract_json_array(text)
        schemes = _SCHEME_LIST.validate_python(raw)
    except (ValueError, ValidationError, RecursionError) as exc:
        raise SourceUnavailable(f"unparseable upstream payload: {exc}") from exc
    if not schemes:
        raise SourceUnavailable("upstream returned an empty scheme list")
    return schemes


def build_prompt(oracle_says_updated: bool) -> str:
    context = UPDATE_CONTEXT if oracle_says_updated else CURRENT_CONTEXT
    return (
        f"{context}\n\n"
        "Return ONLY a JSON array of 6-8 Indian Government schemes that are "
        "ACTIVE and recently UPDATED. Make them look like real government "
        "announcements with version numbers.\n\n"
        '[{"id": 1, "title": "Real Scheme Name", '
        '"description": "Current status with recent updates...", '
        '"category": "Healthcare/Education/etc", "version": "2.1", '
        f'"isNew": {json.dumps(oracle_says_updated)}}}]\n\n'
        "Return ONLY JSON."
    )


class GenerativeSource:
    """Fetches schemes from a DeepSeek-compatible chat-completions endpoint."""

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.deepseek_api_key
        self.api_url = settings.deepseek_api_url
        self.model = settings.deepseek_model
        self.timeout_seconds = settings.generative_timeout_seconds
        self.temperature = settings.generative_temperature
        self.max_tokens = settings.generative_max_tokens

    async def fetch(self, oracle_says_updated: bool) -> list[GeneratedScheme]:
        if not self.api_key:
            raise SourceUnavailable("generative source is not configured (no API key)")

        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(oracle_says_updated)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    json=body,
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
        except httpx.TimeoutException as exc:
            raise SourceUnavailable(
                f"generative source timed out after {self.timeout_seconds}s"
            ) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise SourceUnavailable(f"generative source request failed: {exc}") from exc

        if response.status_code >= 400:
            raise SourceUnavailable(f"generative source returned {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise SourceUnavailable("malformed completion envelope") from exc
        if not isinstance(content, str):
            raise SourceUnavailable("completion content is not text")

        schemes = parse_schemes(content)
        logger.debug("Generative source returned %d schemes", len(schemes))
        return schemes
