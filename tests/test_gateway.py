"""
Tests for the model gateway: reply parsing, fallbacks on the text path and
hard failures on the vision path.
"""

from __future__ import annotations

import json

import pytest
import requests

from tests.fakes import FakeResponse, FakeSession, chat_reply
from verity.errors import DetectionFailedError, MalformedResponseError, UpstreamError
from verity.gateway import (
    ModelGateway,
    PLACEHOLDER_SUMMARY,
    parse_text_verdict,
    parse_vision_verdict,
    strip_code_fence,
)
from verity.models import Confidence, MediaVerdict, Verdict


def test_strip_code_fence_variants():
    body = '{"score": 1}'
    assert strip_code_fence(body) == body
    assert strip_code_fence("```json\n" + body + "\n```") == body
    assert strip_code_fence("```\n" + body + "\n```") == body
    assert strip_code_fence("  " + body + "```  ") == body


def test_parse_text_verdict_rounds_and_clamps():
    v = parse_text_verdict('{"score": 72.6, "verdict": "Real", "reasoning": "ok"}')
    assert v.score == 73
    assert v.verdict is Verdict.REAL
    assert v.degraded is False
    assert parse_text_verdict('{"score": 140, "verdict": "Fake", "reasoning": "x"}').score == 100
    assert parse_text_verdict('{"score": -3, "verdict": "Fake", "reasoning": "x"}').score == 0


@pytest.mark.parametrize(
    "reply",
    [
        "not json at all",
        "[1, 2, 3]",
        '{"score": "80", "verdict": "Real", "reasoning": "x"}',
        '{"score": true, "verdict": "Real", "reasoning": "x"}',
        '{"score": 80, "verdict": "True", "reasoning": "x"}',
        '{"score": 80, "verdict": "Real", "reasoning": 5}',
        '{"verdict": "Real", "reasoning": "x"}',
    ],
)
def test_parse_text_verdict_rejects_bad_shapes(reply):
    with pytest.raises(MalformedResponseError):
        parse_text_verdict(reply)


def test_parse_vision_verdict_checks_confidence():
    good = '{"score": 12, "verdict": "Likely Fake", "confidence": "High", "analysis": "warped ears"}'
    v = parse_vision_verdict(good)
    assert v.verdict is MediaVerdict.LIKELY_FAKE
    assert v.confidence is Confidence.HIGH
    with pytest.raises(MalformedResponseError):
        parse_vision_verdict(good.replace('"High"', '"Very high"'))


def test_text_verifier_unconfigured_returns_fallback_without_calling(bare_settings):
    session = FakeSession()
    v = ModelGateway(bare_settings, session).invoke_text_verifier("some claim to check")
    assert (v.score, v.verdict, v.degraded) == (50, Verdict.INCONCLUSIVE, True)
    assert "not configured" in v.reasoning
    assert session.calls == []


def test_text_verifier_sends_rubric_and_timeout(settings):
    session = FakeSession(chat_reply('```json\n{"score": 88, "verdict": "Real", "reasoning": "sourced"}\n```'))
    v = ModelGateway(settings, session).invoke_text_verifier("The sky is blue today.")
    assert v.score == 88 and v.verdict is Verdict.REAL

    url, kwargs = session.calls[0]
    assert url == settings.SAMBANOVA_URL
    assert kwargs["timeout"] == settings.PROVIDER_TIMEOUT_SECONDS
    assert kwargs["headers"]["Authorization"] == "Bearer test-sambanova"
    system, user = kwargs["json"]["messages"]
    assert "0-30" in system["content"] and "61-100" in system["content"]
    assert "The sky is blue today." in user["content"]


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(500, text="boom"),
        FakeResponse(429, text="slow down"),
        requests.Timeout("timed out"),
        requests.ConnectionError("refused"),
    ],
)
def test_text_verifier_upstream_failure_degrades(settings, response):
    v = ModelGateway(settings, FakeSession(response)).invoke_text_verifier("some claim to check")
    assert (v.score, v.verdict, v.degraded) == (50, Verdict.INCONCLUSIVE, True)
    assert "service error" in v.reasoning


@pytest.mark.parametrize(
    "response",
    [
        chat_reply("I think it is probably real."),
        chat_reply('{"score": 90, "verdict": "Maybe", "reasoning": "x"}'),
        chat_reply('{"score": 1' + "0" * 400 + ', "verdict": "Real", "reasoning": "x"}'),
        FakeResponse(200, {"choices": []}),
        FakeResponse(200, None),
    ],
)
def test_text_verifier_malformed_reply_degrades(settings, response):
    v = ModelGateway(settings, FakeSession(response)).invoke_text_verifier("some claim to check")
    assert (v.score, v.verdict, v.degraded) == (50, Verdict.INCONCLUSIVE, True)


def test_vision_verifier_builds_data_url(settings):
    reply = {"score": 91, "verdict": "Likely Real", "confidence": "Medium", "analysis": "consistent lighting"}
    session = FakeSession(chat_reply(json.dumps(reply)))
    v = ModelGateway(settings, session).invoke_vision_verifier(b"\x89PNG", "image/png", is_video=True)
    assert v.score == 91
    assert v.verdict is MediaVerdict.LIKELY_REAL

    _, kwargs = session.calls[0]
    text_part, image_part = kwargs["json"]["messages"][0]["content"]
    assert "video frame" in text_part["text"]
    assert image_part["image_url"]["url"] == "data:image/png;base64,iVBORw=="
    assert kwargs["headers"]["X-Title"] == "NewsLens Deepfake Detector"


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(502, text="bad gateway"),
        requests.Timeout("timed out"),
        chat_reply('{"score": 50, "verdict": "Real", "confidence": "High", "analysis": "x"}'),
        chat_reply("no idea"),
    ],
)
def test_vision_verifier_fails_loud(settings, response):
    with pytest.raises(DetectionFailedError):
        ModelGateway(settings, FakeSession(response)).invoke_vision_verifier(b"img", "image/jpeg")


def test_vision_verifier_unconfigured_fails(bare_settings):
    with pytest.raises(DetectionFailedError):
        ModelGateway(bare_settings, FakeSession()).invoke_vision_verifier(b"img", "image/jpeg")


def test_summarize_keeps_three_bullets(settings):
    reply = "Here you go:\n• one\n  • two\n• three\n• four"
    bullets = ModelGateway(settings, FakeSession(chat_reply(reply))).summarize_article("Title", None)
    assert bullets == ["• one", "• two", "• three"]


def test_summarize_without_bullets_uses_placeholder(settings):
    bullets = ModelGateway(settings, FakeSession(chat_reply("plain prose"))).summarize_article("Title", "Body")
    assert bullets == PLACEHOLDER_SUMMARY


def test_summarize_upstream_error_raises(settings):
    with pytest.raises(UpstreamError):
        ModelGateway(settings, FakeSession(FakeResponse(500))).summarize_article("Title", "Body")
