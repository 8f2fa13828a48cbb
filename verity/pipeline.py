# verity/pipeline.py
import base64
import binascii
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import PersistenceError, ValidationError
from .gateway import ModelGateway
from .models import AnalysisResult, InputKind, MediaResult
from .store import AuditLog

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 10
MAX_CONTENT_LENGTH = 10000

DEFAULT_HISTORY_LIMIT = 10
MAX_HISTORY_LIMIT = 50

DEFAULT_MEDIA_TYPE = "image/jpeg"


class PipelineState(str, Enum):
    RECEIVED = "Received"
    VALIDATED = "Validated"
    SCORING = "Scoring"
    LOGGED = "Logged"
    COMPLETED = "Completed"
    REJECTED = "Rejected"
    DEGRADED = "Degraded"


def _reject(message: str):
    logger.info("analyze: %s (%s)", PipelineState.REJECTED.value, message)
    raise ValidationError(message)


class VerificationPipeline:
    """Validate -> score -> audit -> answer.

    The audit write never decides the outcome: a verdict that has been
    computed is always returned, even when it could not be persisted.
    """

    def __init__(self, gateway: ModelGateway, audit_log: AuditLog):
        self.gateway = gateway
        self.audit_log = audit_log

    def analyze(self, url: Optional[str] = None, text: Optional[str] = None) -> AnalysisResult:
        logger.debug("analyze: %s", PipelineState.RECEIVED.value)
        if not url and not text:
            _reject("Please provide either a URL or text to analyze")

        kind = InputKind.URL if url else InputKind.TEXT
        content = url or text
        if not isinstance(content, str):
            _reject("Content must be a string")
        if len(content) < MIN_CONTENT_LENGTH:
            _reject("Content is too short. Please provide more text to analyze.")
        if len(content) > MAX_CONTENT_LENGTH:
            _reject("Content is too long. Please limit to 10,000 characters.")
        logger.debug("analyze: %s", PipelineState.VALIDATED.value)

        logger.debug("Analyzing %s: %s...", kind.value, content[:50])
        verdict = self.gateway.invoke_text_verifier(content)
        state = PipelineState.DEGRADED if verdict.degraded else PipelineState.SCORING
        logger.info("analyze: %s (score=%s verdict=%s)", state.value, verdict.score, verdict.verdict.value)

        analyzed_at = datetime.now(timezone.utc)
        try:
            record_id = self.audit_log.record(kind, content, verdict, created_at=analyzed_at)
            logger.info("analyze: %s (record=%s)", PipelineState.LOGGED.value, record_id)
        except PersistenceError as e:
            logger.error("Failed to log analysis: %s (%r)", e.message, e.__cause__)

        if not verdict.degraded:
            logger.debug("analyze: %s", PipelineState.COMPLETED.value)
        return AnalysisResult(
            score=verdict.score,
            verdict=verdict.verdict,
            reasoning=verdict.reasoning,
            analyzed_at=analyzed_at,
            input_kind=kind,
            degraded=verdict.degraded,
        )

    def list_recent(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        if not limit or limit < 1:
            limit = DEFAULT_HISTORY_LIMIT
        return self.audit_log.list_recent(min(limit, MAX_HISTORY_LIMIT))

    def analyze_media(self, media: Optional[str], media_type: Optional[str] = None,
                      file_name: Optional[str] = None, is_video: bool = False) -> MediaResult:
        if not media:
            raise ValidationError("Please provide media to analyze")
        if media.startswith("data:") and "," in media:
            media = media.split(",", 1)[1]
        try:
            raw = base64.b64decode(media, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Media must be base64 encoded")
        if not raw:
            raise ValidationError("Please provide media to analyze")

        mime = media_type or DEFAULT_MEDIA_TYPE
        logger.info("Analyzing deepfake: %s (%s)", file_name or "<unnamed>", mime)
        found = self.gateway.invoke_vision_verifier(raw, mime, is_video)
        return MediaResult(
            score=found.score,
            verdict=found.verdict,
            confidence=found.confidence,
            analysis=found.analysis,
            analyzed_at=datetime.now(timezone.utc),
        )
