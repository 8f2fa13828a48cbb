# verity/gateway.py
"""
Model gateway: one place that talks to the hosted LLM providers.

Text verification goes to SambaNova and degrades to a neutral verdict on
any failure. Media verification and article summaries go to OpenRouter
and raise on failure, since there is no safe default authenticity score.
"""
import base64
import json
import logging
import math
from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .errors import DetectionFailedError, MalformedResponseError, UpstreamError
from .models import Confidence, MediaVerdict, TextVerdict, Verdict, VisionVerdict

logger = logging.getLogger(__name__)

TEXT_SYSTEM_PROMPT = """You are NewsLens, a world-class fact-checking AI with expertise in identifying misinformation, propaganda, and fake news. Your role is to analyze content objectively and provide accurate assessments.

When analyzing content, evaluate:
1. **Logical Fallacies**: Check for strawman arguments, false dichotomies, slippery slopes, ad hominem attacks, and circular reasoning.
2. **Bias Detection**: Identify political bias, emotional manipulation, loaded language, and one-sided reporting.
3. **Factual Accuracy**: Assess claims against known facts, scientific consensus, and verified information.
4. **Source Quality Indicators**: Look for sensationalism, clickbait patterns, anonymous sources, and lack of citations.
5. **Misleading Techniques**: Detect cherry-picking data, out-of-context quotes, manipulated statistics, and false equivalences.

CRITICAL INSTRUCTIONS:
- You MUST return ONLY a valid JSON object with no additional text, markdown, or formatting.
- Do not include any explanation outside the JSON structure.
- Do not wrap the JSON in code blocks or quotes.

Return exactly this JSON structure:
{
  "score": <number between 0-100>,
  "verdict": "<exactly one of: Real, Fake, or Inconclusive>",
  "reasoning": "<brief 1-2 sentence explanation>"
}

Score Guidelines:
- 0-30: Highly likely false, contains clear misinformation or manipulation (Fake)
- 31-60: Cannot be verified, contains mixed or unclear information (Inconclusive)
- 61-100: Appears factually accurate, well-sourced, and unbiased (Real)"""

VISION_PROMPT = """You are a deepfake detection expert. Analyze this {subject} for signs of AI generation or manipulation.

Look for:
1. Unnatural facial features, skin texture, or expressions
2. Inconsistent lighting or shadows
3. Blurry edges around face/hair
4. Artifacts, distortions, or glitches
5. Unnatural eye reflections or blinking patterns
6. Background inconsistencies

Respond with ONLY this JSON format:
{{
  "score": <0-100 authenticity score>,
  "verdict": "<Likely Real | Uncertain | Likely Fake>",
  "confidence": "<High | Medium | Low>",
  "analysis": "<Brief 1-2 sentence explanation of findings>"
}}"""

SUMMARY_PROMPT = """You are an intelligence analyst. Summarize this news article in exactly 3 bullet points.
Each bullet should be concise (max 15 words) and capture a key insight.
Format: Return ONLY 3 lines starting with "•" - no other text.

Article Title: {title}
Article Content: {content}"""

NOT_CONFIGURED = "Analysis unavailable: AI service not configured."
SERVICE_ERROR = "Analysis unavailable due to service error. Please try again later."
UNPARSEABLE = "Unable to complete analysis. Please try again with different content."

PLACEHOLDER_SUMMARY = ["• Analysis unavailable", "• Try again later", "• Check original source"]
BULLET = "•"


def fallback_verdict(reasoning: str) -> TextVerdict:
    return TextVerdict(score=50, verdict=Verdict.INCONCLUSIVE, reasoning=reasoning, degraded=True)


def strip_code_fence(text: str) -> str:
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _load_object(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(strip_code_fence(text))
    except ValueError as e:
        raise MalformedResponseError(f"Reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Reply is not a JSON object")
    return data


def _score(value: Any) -> int:
    # bool is an int subclass but never a valid score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponseError("score must be numeric")
    try:
        if not math.isfinite(value):
            raise MalformedResponseError("score must be finite")
        return max(0, min(100, int(round(value))))
    except (OverflowError, ValueError):
        raise MalformedResponseError("score is out of range")


def _choice(enum_cls, value: Any, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise MalformedResponseError(f"{field} has unexpected value {value!r}")


def _string(data: Dict[str, Any], field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str):
        raise MalformedResponseError(f"{field} must be a string")
    return value


def parse_text_verdict(text: str) -> TextVerdict:
    data = _load_object(text)
    return TextVerdict(
        score=_score(data.get("score")),
        verdict=_choice(Verdict, data.get("verdict"), "verdict"),
        reasoning=_string(data, "reasoning"),
    )


def parse_vision_verdict(text: str) -> VisionVerdict:
    data = _load_object(text)
    return VisionVerdict(
        score=_score(data.get("score")),
        verdict=_choice(MediaVerdict, data.get("verdict"), "verdict"),
        confidence=_choice(Confidence, data.get("confidence"), "confidence"),
        analysis=_string(data, "analysis"),
    )


def extract_reply(payload: Any) -> str:
    """Pull choices[0].message.content out of a chat-completions payload."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise MalformedResponseError("Reply has no choices[0].message.content")
    if not isinstance(content, str):
        raise MalformedResponseError("Reply content is not text")
    return content


def parse_bullets(text: str) -> List[str]:
    lines = [line.strip() for line in (text or "").split("\n")]
    return [line for line in lines if line.startswith(BULLET)][:3]


class ModelGateway:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def _post(self, url: str, api_key: str, body: Dict[str, Any], extra_headers: Dict[str, str] = None):
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        headers.update(extra_headers or {})
        return self.session.post(url, headers=headers, json=body, timeout=self.settings.PROVIDER_TIMEOUT_SECONDS)

    def _openrouter_headers(self, title: str) -> Dict[str, str]:
        return {"HTTP-Referer": self.settings.OPENROUTER_REFERER, "X-Title": title}

    # --- text ---

    def invoke_text_verifier(self, content: str) -> TextVerdict:
        api_key = self.settings.SAMBANOVA_API_KEY
        if not api_key:
            logger.warning("Text verifier: no API key configured, using fallback")
            return fallback_verdict(NOT_CONFIGURED)

        body = {
            "model": self.settings.SAMBANOVA_MODEL,
            "messages": [
                {"role": "system", "content": TEXT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f'CONTENT TO ANALYZE:\n"""\n{content}\n"""\n\n'
                               f"Analyze the above content and return ONLY the JSON response:",
                },
            ],
            "temperature": 0.1,
            "max_tokens": 500,
        }
        try:
            resp = self._post(self.settings.SAMBANOVA_URL, api_key, body)
        except requests.RequestException as e:
            logger.warning("Text verifier request failed: %s", e)
            return fallback_verdict(SERVICE_ERROR)

        if not resp.ok:
            logger.warning("Text verifier API error %s: %s", resp.status_code, resp.text[:500])
            return fallback_verdict(SERVICE_ERROR)

        try:
            return parse_text_verdict(extract_reply(resp.json()))
        except ValueError as e:
            logger.warning("Text verifier returned non-JSON body: %s", e)
        except MalformedResponseError as e:
            logger.warning("Text verifier reply rejected: %s", e.message)
        return fallback_verdict(UNPARSEABLE)

    # --- media ---

    def invoke_vision_verifier(self, media: bytes, mime_type: str, is_video: bool = False) -> VisionVerdict:
        api_key = self.settings.OPENROUTER_API_KEY
        if not api_key:
            logger.error("Vision verifier: no API key configured")
            raise DetectionFailedError()

        data_url = f"data:{mime_type};base64,{base64.b64encode(media).decode('ascii')}"
        body = {
            "model": self.settings.OPENROUTER_MODEL,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_PROMPT.format(subject="video frame" if is_video else "image")},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            "temperature": 0.2,
            "max_tokens": 300,
        }
        try:
            resp = self._post(self.settings.OPENROUTER_URL, api_key, body,
                              self._openrouter_headers("NewsLens Deepfake Detector"))
        except requests.RequestException as e:
            logger.error("Vision verifier request failed: %s", e)
            raise DetectionFailedError() from e

        if not resp.ok:
            logger.error("Vision verifier API error %s: %s", resp.status_code, resp.text[:500])
            raise DetectionFailedError()

        try:
            return parse_vision_verdict(extract_reply(resp.json()))
        except ValueError as e:
            logger.error("Vision verifier returned non-JSON body: %s", e)
            raise DetectionFailedError() from e
        except MalformedResponseError as e:
            logger.error("Vision verifier reply rejected: %s", e.message)
            raise DetectionFailedError() from e

    # --- summaries ---

    def summarize_article(self, title: Optional[str], content: Optional[str]) -> List[str]:
        api_key = self.settings.OPENROUTER_API_KEY
        if not api_key:
            logger.error("Summarizer: no API key configured")
            raise UpstreamError("Failed to generate summary")

        prompt = SUMMARY_PROMPT.format(
            title=title or "",
            content=content or "Content not available - summarize based on title",
        )
        body = {
            "model": self.settings.OPENROUTER_MODEL,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.3,
            "max_tokens": 300,
        }
        try:
            resp = self._post(self.settings.OPENROUTER_URL, api_key, body,
                              self._openrouter_headers("VerityAI Intel Feed"))
        except requests.RequestException as e:
            logger.error("Summarizer request failed: %s", e)
            raise UpstreamError("Failed to generate summary") from e

        if not resp.ok:
            logger.error("Summarizer API error %s: %s", resp.status_code, resp.text[:500])
            raise UpstreamError("Failed to generate summary")

        try:
            bullets = parse_bullets(extract_reply(resp.json()))
        except (ValueError, MalformedResponseError) as e:
            logger.warning("Summarizer reply unusable: %s", e)
            bullets = []
        return bullets or list(PLACEHOLDER_SUMMARY)
