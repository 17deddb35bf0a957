"""Interview-answer analysis via an external chat-completion gateway.

The model is asked for a bare JSON object; replies sometimes arrive wrapped
in markdown fences or not as JSON at all.  ``parse_analysis`` accepts the
former and turns everything else into ``SpeechAnalysis.fallback()``.
Transport errors get the same treatment: the caller always receives a
SpeechAnalysis, never an exception.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Protocol, runtime_checkable

import httpx

from prep_service.core.config import SETTINGS
from prep_service.core.metrics import SPEECH_ANALYSIS_FALLBACKS
from prep_service.models.speech import DEFAULT_WPM, SpeechAnalysis

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```")

SYSTEM_PROMPT = """You are an interview coach analyzing a candidate's spoken response. \
Evaluate the transcript and return a JSON object with these fields:
- fluency_score (0-100): How smooth and natural the speech flows
- grammar_score (0-100): Grammatical correctness
- confidence_score (0-100): How confident the response sounds
- filler_count (integer): Count of filler words like "um", "uh", "like", "you know"
- wpm (integer): Estimated words per minute (assume 60 second response if not specified)
- feedback (string): 2-3 sentences of constructive feedback

Return ONLY valid JSON, no markdown."""


def _number(value: Any) -> int:
    # bool is an int subclass; a "true" score is still garbage
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"not a number: {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {value!r}")
    return round(value)


def _score(value: Any) -> int:
    return max(0, min(100, _number(value)))


def _count(value: Any) -> int:
    return max(0, _number(value))


def parse_analysis(content: Any) -> SpeechAnalysis:
    try:
        if not isinstance(content, str):
            raise TypeError(f"content is {type(content).__name__}, not text")
        data = json.loads(_FENCE_RE.sub("", content).strip())
        if not isinstance(data, dict):
            raise ValueError("analysis is not an object")
        feedback = data.get("feedback")
        if not isinstance(feedback, str) or not feedback.strip():
            raise ValueError("missing feedback")
        return SpeechAnalysis(
            fluency_score=_score(data["fluency_score"]),
            grammar_score=_score(data["grammar_score"]),
            confidence_score=_score(data["confidence_score"]),
            filler_count=_count(data.get("filler_count", 0)),
            words_per_minute=_count(
                data.get("wpm", data.get("words_per_minute", DEFAULT_WPM))
            ),
            feedback=feedback.strip(),
        )
    except (ValueError, KeyError, TypeError, OverflowError) as exc:
        # json.JSONDecodeError is a ValueError
        logger.warning("Unparseable speech analysis, using defaults: %s", exc)
        SPEECH_ANALYSIS_FALLBACKS.labels(reason="unparseable").inc()
        return SpeechAnalysis.fallback()


@runtime_checkable
class SpeechAnalyzer(Protocol):
    async def analyze(self, transcript: str, question: str) -> SpeechAnalysis: ...


class FakeSpeechAnalyzer:
    """Returns canned replies; used in tests and when no gateway is configured."""

    def __init__(self, reply: str | None = None) -> None:
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def analyze(self, transcript: str, question: str) -> SpeechAnalysis:
        self.calls.append((transcript, question))
        if self.reply is None:
            return SpeechAnalysis.fallback()
        return parse_analysis(self.reply)


class HttpSpeechAnalyzer:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._transport = transport

    def _payload(self, transcript: str, question: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f'Interview Question: "{question}"\n\n'
                        f'Candidate\'s Response:\n"{transcript}"'
                    ),
                },
            ],
            "temperature": 0.3,
        }

    async def analyze(self, transcript: str, question: str) -> SpeechAnalysis:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    f"{self._base_url}/chat/completions",
                    json=self._payload(transcript, question),
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Speech analysis request failed, using defaults: %s", exc)
            SPEECH_ANALYSIS_FALLBACKS.labels(reason="transport").inc()
            return SpeechAnalysis.fallback()

        try:
            content = body["choices"][0]["message"]["content"] or "{}"
        except (KeyError, IndexError, TypeError):
            content = "{}"
        return parse_analysis(content)


def build_analyzer() -> SpeechAnalyzer:
    if SETTINGS.speech_analysis_enabled:
        return HttpSpeechAnalyzer(
            SETTINGS.ai_gateway_url,  # type: ignore[arg-type]
            SETTINGS.ai_api_key,  # type: ignore[arg-type]
            SETTINGS.ai_model,
        )
    logger.info("No AI gateway configured; speech analysis returns defaults")
    return FakeSpeechAnalyzer()
