from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from prometheus_client import REGISTRY

from prep_service.models.speech import DEFAULT_FEEDBACK, DEFAULT_WPM, SpeechAnalysis
from prep_service.services.speech_analysis import (
    FakeSpeechAnalyzer,
    HttpSpeechAnalyzer,
    parse_analysis,
)

_GOOD = {
    "fluency_score": 82,
    "grammar_score": 75,
    "confidence_score": 68,
    "filler_count": 4,
    "wpm": 131,
    "feedback": "Clear structure. Cut the filler words.",
}


def _fallbacks(reason: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "speech_analysis_fallbacks_total", {"reason": reason}
        )
        or 0.0
    )


# ---- parse_analysis ----


def test_parses_well_formed_reply() -> None:
    analysis = parse_analysis(json.dumps(_GOOD))
    assert analysis == SpeechAnalysis(82, 75, 68, 4, 131, _GOOD["feedback"])


def test_strips_markdown_fences() -> None:
    content = "```json\n" + json.dumps(_GOOD) + "\n```"
    assert parse_analysis(content).fluency_score == 82


def test_clamps_scores_into_range() -> None:
    reply = {**_GOOD, "fluency_score": 140, "grammar_score": -3, "filler_count": -1}
    analysis = parse_analysis(json.dumps(reply))
    assert analysis.fluency_score == 100
    assert analysis.grammar_score == 0
    assert analysis.filler_count == 0


@pytest.mark.parametrize(
    "content",
    [
        "I think the candidate did well!",
        "[]",
        json.dumps({**_GOOD, "fluency_score": "high"}),
        json.dumps({k: v for k, v in _GOOD.items() if k != "grammar_score"}),
        json.dumps({**_GOOD, "feedback": ""}),
        json.dumps({**_GOOD, "confidence_score": True}),
    ],
)
def test_unparseable_reply_falls_back(content: str) -> None:
    before = _fallbacks("unparseable")
    assert parse_analysis(content) == SpeechAnalysis.fallback()
    assert _fallbacks("unparseable") == before + 1


def test_fallback_payload_values() -> None:
    fallback = SpeechAnalysis.fallback()
    assert (fallback.fluency_score, fallback.grammar_score, fallback.confidence_score) == (
        50,
        50,
        50,
    )
    assert fallback.words_per_minute == 120
    assert fallback.filler_count == 0
    assert fallback.feedback == DEFAULT_FEEDBACK


# ---- FakeSpeechAnalyzer ----


def test_fake_analyzer_records_calls() -> None:
    fake = FakeSpeechAnalyzer(reply=json.dumps(_GOOD))
    analysis = asyncio.run(fake.analyze("my answer", "Tell me about yourself"))

    assert analysis.grammar_score == 75
    assert fake.calls == [("my answer", "Tell me about yourself")]


# ---- HttpSpeechAnalyzer ----


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_http_analyzer_posts_chat_completion() -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion(json.dumps(_GOOD)))

    analyzer = HttpSpeechAnalyzer(
        "https://gateway.test/v1/",
        "secret-key",
        "test-model",
        transport=httpx.MockTransport(_handler),
    )
    analysis = asyncio.run(analyzer.analyze("I led a team of four.", "Leadership?"))

    assert analysis.words_per_minute == 131
    (request,) = seen
    assert str(request.url) == "https://gateway.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer secret-key"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert "Leadership?" in body["messages"][1]["content"]
    assert "I led a team of four." in body["messages"][1]["content"]


def test_http_error_falls_back() -> None:
    before = _fallbacks("transport")
    analyzer = HttpSpeechAnalyzer(
        "https://gateway.test",
        "k",
        "m",
        transport=httpx.MockTransport(lambda _r: httpx.Response(429)),
    )
    assert asyncio.run(analyzer.analyze("t", "q")) == SpeechAnalysis.fallback()
    assert _fallbacks("transport") == before + 1


def test_connection_error_falls_back() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    analyzer = HttpSpeechAnalyzer(
        "https://gateway.test", "k", "m", transport=httpx.MockTransport(_refuse)
    )
    assert asyncio.run(analyzer.analyze("t", "q")) == SpeechAnalysis.fallback()


def test_empty_choices_falls_back() -> None:
    analyzer = HttpSpeechAnalyzer(
        "https://gateway.test",
        "k",
        "m",
        transport=httpx.MockTransport(lambda _r: httpx.Response(200, json={"choices": []})),
    )
    assert asyncio.run(analyzer.analyze("t", "q")) == SpeechAnalysis.fallback()


@pytest.mark.parametrize("value", ["1e400", "-1e400", "Infinity", "1" + "0" * 400])
def test_out_of_range_number_falls_back(value: str) -> None:
    content = json.dumps(_GOOD).replace('"fluency_score": 82', f'"fluency_score": {value}')
    assert parse_analysis(content) == SpeechAnalysis.fallback()


@pytest.mark.parametrize("content", [["not", "text"], {"fluency_score": 80}, None, 42])
def test_non_text_content_falls_back(content) -> None:
    assert parse_analysis(content) == SpeechAnalysis.fallback()


def test_missing_wpm_keeps_parsed_scores() -> None:
    reply = {k: v for k, v in _GOOD.items() if k != "wpm"}
    analysis = parse_analysis(json.dumps(reply))
    assert analysis.fluency_score == 82
    assert analysis.grammar_score == 75
    assert analysis.words_per_minute == DEFAULT_WPM


def test_list_content_from_gateway_falls_back() -> None:
    analyzer = HttpSpeechAnalyzer(
        "https://gateway.test",
        "k",
        "m",
        transport=httpx.MockTransport(
            lambda _r: httpx.Response(200, json=_completion([{"type": "text"}]))
        ),
    )
    assert asyncio.run(analyzer.analyze("t", "q")) == SpeechAnalysis.fallback()
